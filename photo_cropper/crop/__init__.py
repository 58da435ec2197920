"""Crop package public API.

The engine and transform math have no widget dependencies (QImage/QPainter
only). For the interactive UI import directly:
    - `from photo_cropper.ui.crop_dialog import PhotoCropDialog`
"""

from .engine import CropEngine, CropPhase
from .gesture import GestureKind, GestureSession, InputSource
from .presets import PORTRAIT, PRESETS, SQUARE, CropPreset, get_preset
from .transform import (
    CropResult,
    OutputBitmap,
    TransformState,
    clamp_zoom,
    encode_jpeg,
    render_frame,
)

__all__ = [
    "PORTRAIT",
    "PRESETS",
    "SQUARE",
    "CropEngine",
    "CropPhase",
    "CropPreset",
    "CropResult",
    "GestureKind",
    "GestureSession",
    "InputSource",
    "OutputBitmap",
    "TransformState",
    "clamp_zoom",
    "encode_jpeg",
    "get_preset",
    "render_frame",
]
