"""Configuration for unit tests."""

import logging

import pytest


@pytest.fixture(autouse=True)
def setup_logging(caplog):
    """Capture debug logs from the publisher package."""
    caplog.set_level(logging.DEBUG, logger="photo_gallery_publisher")
    yield
