"""Pytest configuration.

The engine paints with QPainter and the UI tests build widgets, so a single
`QApplication` is created for the whole session as early as possible and shut
down at the end.

Image fixtures come in two flavours: lossless QImage-built working bitmaps for
exact pixel checks on the engine, and pyvips-built encoded files for intake.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import pytest

_APP: Any | None = None

RGB = tuple[int, int, int]


def pytest_configure(config) -> None:  # noqa: ARG001
    """Ensure a QApplication exists before collecting/running tests."""

    try:
        from PySide6.QtWidgets import QApplication
    except ImportError:
        return

    global _APP

    app = QApplication.instance()
    if app is None:
        # Keep a strong ref so it isn't GC'd mid-session.
        _APP = QApplication([])
    else:
        _APP = app


def pytest_sessionfinish(session, exitstatus) -> None:  # noqa: ARG001
    try:
        from PySide6.QtWidgets import QApplication
    except ImportError:
        return

    app = QApplication.instance()
    if app is None:
        return
    app.quit()
    app.processEvents()


def _qimage_quadrants(w: int, h: int, colors: Sequence[RGB]):
    from PySide6.QtGui import QColor, QImage, QPainter

    img = QImage(w, h, QImage.Format.Format_RGB32)
    tl, tr, bl, br = colors
    hw, hh = w // 2, h // 2
    painter = QPainter(img)
    painter.fillRect(0, 0, hw, hh, QColor(*tl))
    painter.fillRect(hw, 0, w - hw, hh, QColor(*tr))
    painter.fillRect(0, hh, hw, h - hh, QColor(*bl))
    painter.fillRect(hw, hh, w - hw, h - hh, QColor(*br))
    painter.end()
    return img


def _png_bytes(img) -> bytes:
    from PySide6.QtCore import QBuffer, QByteArray, QIODevice

    arr = QByteArray()
    buf = QBuffer(arr)
    buf.open(QIODevice.OpenModeFlag.WriteOnly)
    assert img.save(buf, "PNG")
    buf.close()
    return bytes(arr.data())


@pytest.fixture
def make_bitmap():
    """Build a lossless WorkingBitmap of solid color or four colored quadrants."""
    from photo_cropper.intake.decoder import WorkingBitmap

    def _make(w: int, h: int, color: RGB = (68, 85, 102), quadrants: Sequence[RGB] | None = None) -> WorkingBitmap:
        img = _qimage_quadrants(w, h, quadrants or (color, color, color, color))
        return WorkingBitmap(_png_bytes(img), w, h, mime="image/png")

    return _make


@pytest.fixture
def vips_image_bytes():
    """Encode a pyvips image of four colored quadrants (or a solid color)."""
    pyvips = pytest.importorskip("pyvips")

    def _solid(w: int, h: int, rgb: RGB):
        return (pyvips.Image.black(w, h) + list(rgb)).cast("uchar")

    def _make(
        w: int,
        h: int,
        color: RGB = (68, 85, 102),
        quadrants: Sequence[RGB] | None = None,
        suffix: str = ".png",
    ) -> bytes:
        tl, tr, bl, br = quadrants or (color, color, color, color)
        hw, hh = w // 2, h // 2
        top = _solid(hw, hh, tl).join(_solid(w - hw, hh, tr), "horizontal")
        bottom = _solid(hw, h - hh, bl).join(_solid(w - hw, h - hh, br), "horizontal")
        img = top.join(bottom, "vertical").copy(interpretation="srgb")
        return img.write_to_buffer(suffix)

    return _make


@pytest.fixture
def engine_events():
    """Record engine signals as a list of (name, payload) tuples."""

    def _attach(engine) -> list[tuple[str, object]]:
        events: list[tuple[str, object]] = []
        engine.phaseChanged.connect(lambda p: events.append(("phase", p)))
        engine.sessionStarted.connect(lambda s: events.append(("session_started", s)))
        engine.sessionEnded.connect(lambda s: events.append(("session_ended", s)))
        engine.finished.connect(lambda r: events.append(("finished", r)))
        return events

    return _attach
