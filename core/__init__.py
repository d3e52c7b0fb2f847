"""Catalog, identity and configuration primitives."""
