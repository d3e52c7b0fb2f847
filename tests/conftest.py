"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def pytest_configure(config):
    """Configure pytest with required path modifications."""
    if str(PROJECT_ROOT) not in sys.path:
        sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture
def entry_data():
    from tests.factories import make_entry_data

    return make_entry_data


@pytest.fixture
def product_page():
    from tests.factories import make_product_page

    return make_product_page
