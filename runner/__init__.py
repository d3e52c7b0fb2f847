"""Command-line entry points and component assembly."""
