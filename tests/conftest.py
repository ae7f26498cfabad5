"""Shared fixtures."""

import pytest

from constants import Constants
from common import http_client


@pytest.fixture(autouse=True)
def restore_constants():
    """Undo Constants overrides applied by config tests."""
    saved = {k: v for k, v in vars(Constants).items() if k.isupper()}
    http_client.clear_cache()
    yield
    for key, value in saved.items():
        setattr(Constants, key, value)
    http_client.clear_cache()

