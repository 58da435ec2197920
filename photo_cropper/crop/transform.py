"""Transform math and rasterisation shared by the live preview and the final output.

The preview and the confirmed bitmap both go through render_frame(); that is
what keeps the output identical to what the user saw.

Coordinates: bitmap points are relative to the bitmap centre, and
    viewport_point = viewport_center + zoom * (bitmap_point + pan)
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field, replace

from PySide6.QtCore import QBuffer, QByteArray, QIODevice, QPointF
from PySide6.QtGui import QColor, QImage, QPainter

from photo_cropper.errors import RenderError
from photo_cropper.intake.datauri import encode_data_uri
from photo_cropper.logger import get_logger

_logger = get_logger("transform")

ZOOM_MIN = 0.1
ZOOM_MAX = 3.0
ZOOM_STEP = 0.1
DRAG_DAMPING = 5.0
OUTPUT_QUALITY = 0.95

Point = tuple[float, float]


def clamp_zoom(value: float, lo: float = ZOOM_MIN, hi: float = ZOOM_MAX) -> float:
    return max(lo, min(hi, float(value)))


@dataclass(frozen=True, slots=True)
class TransformState:
    zoom: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0

    @classmethod
    def identity(cls) -> TransformState:
        return cls()

    def with_zoom(self, zoom: float, lo: float = ZOOM_MIN, hi: float = ZOOM_MAX) -> TransformState:
        return replace(self, zoom=clamp_zoom(zoom, lo, hi))

    def panned(self, dx: float, dy: float) -> TransformState:
        return replace(self, pan_x=self.pan_x + dx, pan_y=self.pan_y + dy)


def wheel_zoom(zoom: float, delta_y: float, step: float = ZOOM_STEP, lo: float = ZOOM_MIN, hi: float = ZOOM_MAX) -> float:
    """One wheel event moves zoom by one step; negative delta zooms in."""
    if delta_y == 0:
        return clamp_zoom(zoom, lo, hi)
    direction = 1.0 if delta_y < 0 else -1.0
    return clamp_zoom(zoom + direction * step, lo, hi)


def pinch_zoom(zoom: float, anchor_distance: float, distance: float, lo: float = ZOOM_MIN, hi: float = ZOOM_MAX) -> float:
    if anchor_distance <= 0:
        return clamp_zoom(zoom, lo, hi)
    return clamp_zoom(zoom * (distance / anchor_distance), lo, hi)


def damped_delta(previous: Point, current: Point, damping: float = DRAG_DAMPING) -> Point:
    return (current[0] - previous[0]) / damping, (current[1] - previous[1]) / damping


def touch_distance(touches: Sequence[Point]) -> float:
    (x0, y0), (x1, y1) = touches[0], touches[1]
    return math.hypot(x0 - x1, y0 - y1)


def render_frame(
    source: QImage,
    transform: TransformState,
    frame_size: tuple[int, int],
    *,
    scale: float = 1.0,
    background: QColor | str = "#ffffff",
) -> QImage:
    """Rasterise source through transform into a new frame_size * scale image.

    frame_size is the logical output size; scale only changes the sampling
    resolution (e.g. a HiDPI preview), never the framing.
    """
    fw, fh = int(frame_size[0]), int(frame_size[1])
    if fw < 1 or fh < 1:
        raise RenderError(f"invalid frame size {fw}x{fh}")
    pw, ph = max(1, int(round(fw * scale))), max(1, int(round(fh * scale)))
    if source.isNull():
        raise RenderError("cannot render a null source image")

    frame = QImage(pw, ph, QImage.Format.Format_RGB32)
    if frame.isNull():
        raise RenderError(f"cannot allocate {pw}x{ph} frame")
    frame.fill(QColor(background))

    painter = QPainter()
    if not painter.begin(frame):
        raise RenderError("cannot begin painting on frame")
    try:
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform, True)
        painter.scale(pw / fw, ph / fh)
        painter.translate(fw / 2.0, fh / 2.0)
        painter.scale(transform.zoom, transform.zoom)
        painter.translate(transform.pan_x, transform.pan_y)
        painter.drawImage(QPointF(-source.width() / 2.0, -source.height() / 2.0), source)
    finally:
        painter.end()
    return frame


def encode_jpeg(image: QImage, quality: float = OUTPUT_QUALITY) -> bytes:
    arr = QByteArray()
    buf = QBuffer(arr)
    buf.open(QIODevice.OpenModeFlag.WriteOnly)
    ok = image.save(buf, "JPEG", int(round(quality * 100)))
    buf.close()
    if not ok:
        raise RenderError("JPEG encoding failed")
    return bytes(arr.data())


@dataclass(frozen=True, slots=True)
class OutputBitmap:
    """Final fixed-size bitmap handed to the caller."""

    data: bytes = field(repr=False)
    width: int
    height: int
    quality: float = OUTPUT_QUALITY
    mime: str = "image/jpeg"

    def to_data_uri(self) -> str:
        return encode_data_uri(self.data, self.mime)


@dataclass(frozen=True, slots=True)
class CropResult:
    """Outcome of a crop session; bitmap is None when the user cancelled."""

    bitmap: OutputBitmap | None = None

    @classmethod
    def empty(cls) -> CropResult:
        return cls(None)

    @property
    def is_empty(self) -> bool:
        return self.bitmap is None

    @property
    def data_uri(self) -> str:
        return "" if self.bitmap is None else self.bitmap.to_data_uri()
