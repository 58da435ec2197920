"""Pixel sampling helpers for checking that the preview matches the output."""

from __future__ import annotations

import numpy as np
from PySide6.QtCore import Qt
from PySide6.QtGui import QImage

_RGB_CHANNELS = 3


def qimage_to_array(image: QImage) -> np.ndarray:
    """Return an (h, w, 3) uint8 RGB copy of image."""
    if image.isNull():
        raise ValueError("null image")
    img = image.convertToFormat(QImage.Format.Format_RGB888)
    w, h = img.width(), img.height()
    bpl = img.bytesPerLine()
    # Rows can be padded to 4-byte alignment; slice the padding off.
    buf = np.frombuffer(img.constBits(), dtype=np.uint8, count=bpl * h).reshape(h, bpl)
    return buf[:, : w * _RGB_CHANNELS].reshape(h, w, _RGB_CHANNELS).copy()


def frame_difference(a: QImage, b: QImage) -> float:
    """Mean absolute per-channel difference after resampling b to a's size."""
    if (a.width(), a.height()) != (b.width(), b.height()):
        b = b.scaled(a.width(), a.height(), Qt.AspectRatioMode.IgnoreAspectRatio, Qt.TransformationMode.SmoothTransformation)
    arr_a = qimage_to_array(a).astype(np.int16)
    arr_b = qimage_to_array(b).astype(np.int16)
    return float(np.abs(arr_a - arr_b).mean())


def sample(image: QImage, x: int, y: int) -> tuple[int, int, int]:
    r, g, b = qimage_to_array(image)[int(y), int(x)]
    return int(r), int(g), int(b)
