"""Shared fixtures: render context wired to fakes, offscreen Qt application."""

from __future__ import annotations

import os

import pytest

from mermaidpad.orchestrator import RenderContext
from mermaidpad.surface import DocumentSurface, StatusLine
from tests.helpers import FakeCompiler, FakeInteraction, FakePort


@pytest.fixture
def compiler():
    return FakeCompiler()


@pytest.fixture
def interaction():
    return FakeInteraction()


@pytest.fixture
def opened_ports():
    return []


@pytest.fixture
def context(compiler, interaction, opened_ports):
    """RenderContext with an inline runner and a viewer opener that records ports."""

    def open_viewer():
        port = FakePort()
        opened_ports.append(port)
        return port

    return RenderContext(
        surface=DocumentSurface(),
        compiler=compiler,
        status=StatusLine(),
        interaction=interaction,
        open_viewer=open_viewer,
    )


@pytest.fixture(scope="session")
def qapp():
    """Offscreen QGuiApplication for tests that paint."""
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    qtgui = pytest.importorskip("PySide6.QtGui")
    pytest.importorskip("PySide6.QtSvg")
    app = qtgui.QGuiApplication.instance() or qtgui.QGuiApplication([])
    yield app
