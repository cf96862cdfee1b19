"""Shared fixtures: a headless QApplication and an isolated config file."""
from __future__ import annotations

import os
import sys

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6.QtGui import QColor, QImage
from PySide6.QtWidgets import QApplication

from imagemarkup.editor.session import AnnotationSession
from imagemarkup.services.config_service import ConfigService


@pytest.fixture(scope="session")
def qapp():
    """Provide a single QApplication for the entire test session."""
    app = QApplication.instance() or QApplication(sys.argv)
    yield app


@pytest.fixture()
def config(tmp_path):
    return ConfigService(tmp_path / "config.json")


@pytest.fixture()
def session(qapp):
    """A session with an 800x600 background in a 600x500 viewport."""
    s = AnnotationSession()
    s.set_image("background.png", (800, 600))
    return s


@pytest.fixture()
def background(qapp):
    image = QImage(200, 100, QImage.Format.Format_ARGB32)
    image.fill(QColor("#336699"))
    return image
