"""Shared pytest fixtures for calibration tests."""

import os

import pytest


# Run Qt tests headlessly by default.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt6.QtCore import QCoreApplication


@pytest.fixture(scope="session")
def qapp():
    """Provide a single Qt application instance for worker tests."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    yield app
    app.processEvents()
