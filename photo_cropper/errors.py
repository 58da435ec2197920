"""Error taxonomy for the intake and crop pipeline.

Every failure here is local to one load/confirm attempt. Callers treat any of
them as "no edited photo produced", the same as a cancellation.
"""

from __future__ import annotations


class PhotoCropperError(Exception):
    """Base class for pipeline errors."""


class DecodeError(PhotoCropperError):
    """The source could not be decoded as an image (corrupt, empty, unsupported)."""


class RenderError(PhotoCropperError):
    """The drawing surface could not be allocated, drawn or encoded."""


class GestureConflict(PhotoCropperError):
    """A second exclusive gesture session was requested while one is active.

    Never surfaced to users: the engine drops the newer event.
    """
