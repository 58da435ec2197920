"""Bitmap intake using pyvips.

Decodes a user-selected photo and bounds it to a working size so the crop
engine never has to paint camera-resolution images. Pure functions, no Qt
dependencies, safe to run on a worker thread.
"""

from __future__ import annotations

import contextlib
import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Union

from photo_cropper.errors import DecodeError, RenderError
from photo_cropper.logger import get_logger

from .datauri import decode_data_uri, encode_data_uri, is_data_uri

if TYPE_CHECKING:
    from photo_cropper.settings_manager import CropConfig

_logger = get_logger("decoder")

MAX_DIMENSION = 2000
WORKING_QUALITY = 0.8
_RGB_BANDS = 3

RawImageSource = Union[bytes, bytearray, memoryview, str, "os.PathLike[str]"]

_pyvips: Any | None = None


def _get_pyvips_module() -> Any:
    global _pyvips
    if _pyvips is None:
        import pyvips  # type: ignore

        # Configure pyvips caches to avoid memory growth across many selections
        with contextlib.suppress(Exception):
            pyvips.cache_set_max(0)
            pyvips.cache_set_max_mem(0)
            pyvips.cache_set_max_files(0)
        _pyvips = pyvips
    return _pyvips


@dataclass(frozen=True, slots=True)
class WorkingBitmap:
    """Decoded, dimension-bounded photo re-encoded for editing."""

    data: bytes = field(repr=False)
    width: int
    height: int
    mime: str = "image/jpeg"

    def __post_init__(self) -> None:
        if self.width < 1 or self.height < 1:
            raise ValueError(f"bitmap dimensions must be >= 1, got {self.width}x{self.height}")

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    def to_data_uri(self) -> str:
        return encode_data_uri(self.data, self.mime)


def bounded_size(width: int, height: int, max_dimension: int = MAX_DIMENSION) -> tuple[int, int]:
    """Return (width, height) scaled down so neither side exceeds max_dimension.

    The longer side lands exactly on max_dimension; the other side is floored.
    Sizes already within bounds are returned unchanged.
    """
    w, h = int(width), int(height)
    if w < 1 or h < 1:
        raise ValueError(f"invalid image size {w}x{h}")
    if w <= max_dimension and h <= max_dimension:
        return w, h
    # Integer arithmetic keeps the long side exact (3001 * 2000/3001 must not floor to 1999).
    if w >= h:
        return max_dimension, max(1, h * max_dimension // w)
    return max(1, w * max_dimension // h), max_dimension


def read_raw_source(raw: RawImageSource) -> bytes:
    """Return the encoded bytes behind a raw source (bytes, path or data URI)."""
    if isinstance(raw, (bytes, bytearray, memoryview)):
        data = bytes(raw)
    elif is_data_uri(raw):
        _mime, data = decode_data_uri(raw)  # type: ignore[arg-type]
    elif isinstance(raw, (str, os.PathLike)):
        try:
            with open(raw, "rb") as f:
                data = f.read()
        except OSError as e:
            raise DecodeError(f"cannot read image file {raw}: {e}") from e
    else:
        raise DecodeError(f"unsupported image source type: {type(raw).__name__}")

    if not data:
        raise DecodeError("empty image source")
    return data


# EXIF orientations 5-8 rotate by a quarter turn, so width and height swap.
_QUARTER_TURN_ORIENTATIONS = (5, 6, 7, 8)


def _oriented_size(header: Any) -> tuple[int, int]:
    """Display size from the image header, after EXIF orientation, without decoding pixels."""
    w, h = header.width, header.height
    if header.get_typeof("orientation") and header.get("orientation") in _QUARTER_TURN_ORIENTATIONS:
        return h, w
    return w, h


def _decode_bounded(data: bytes, max_dimension: int) -> tuple[Any, tuple[int, int]]:
    """Decode data straight to its bounded size; returns (image, source size).

    Only the header is read at full resolution. thumbnail_buffer shrinks on
    load (JPEG shrink-on-load, sequential access elsewhere) and applies the
    EXIF orientation the way browsers do when drawing a photo.
    """
    pyvips = _get_pyvips_module()
    try:
        header = pyvips.Image.new_from_buffer(data, "")
        src_w, src_h = _oriented_size(header)
        if src_w < 1 or src_h < 1:
            raise DecodeError(f"decoded image has no pixels: {src_w}x{src_h}")
        dst_w, dst_h = bounded_size(src_w, src_h, max_dimension)
        image = pyvips.Image.thumbnail_buffer(data, dst_w, height=dst_h, size="force")
        # Force the decode here, at working size, so truncated files fail as decode errors.
        image = image.copy_memory()
    except pyvips.Error as e:
        raise DecodeError(f"cannot decode image: {e}") from e
    return image, (src_w, src_h)


def _to_srgb8(image: Any) -> Any:
    """Convert to 3-band 8-bit sRGB, flattening alpha onto black like a canvas JPEG export."""
    pyvips = _get_pyvips_module()
    with contextlib.suppress(pyvips.Error):
        image = image.colourspace("srgb")
    if image.hasalpha():
        image = image.flatten(background=[0, 0, 0])
    if image.bands > _RGB_BANDS:
        image = image.extract_band(0, n=_RGB_BANDS)
    elif image.bands < _RGB_BANDS:
        image = pyvips.Image.bandjoin([image] * _RGB_BANDS)
    if image.format != "uchar":
        image = image.cast("uchar")
    return image


def bound(raw: RawImageSource, config: CropConfig | None = None) -> WorkingBitmap:
    """Decode raw and produce a working bitmap bounded to max_dimension.

    Raises:
        DecodeError: the source is empty, unreadable, or not a decodable image.
        RenderError: the working surface could not be converted or encoded.
    """
    max_dimension = config.max_dimension if config is not None else MAX_DIMENSION
    quality = config.working_quality if config is not None else WORKING_QUALITY

    data = read_raw_source(raw)
    image, (src_w, src_h) = _decode_bounded(data, max_dimension)
    dst_w, dst_h = image.width, image.height

    pyvips = _get_pyvips_module()
    try:
        encoded = _to_srgb8(image).jpegsave_buffer(Q=int(round(quality * 100)))
    except (pyvips.Error, MemoryError) as e:
        _logger.error("working bitmap render failed for %dx%d source: %s", src_w, src_h, e, exc_info=True)
        raise RenderError(f"cannot render working bitmap: {e}") from e

    _logger.debug("bound %dx%d -> %dx%d (%d bytes)", src_w, src_h, dst_w, dst_h, len(encoded))
    return WorkingBitmap(bytes(encoded), dst_w, dst_h)


def compress_to_data_uri(raw: RawImageSource, config: CropConfig | None = None) -> str:
    """Quick-save path: bound and recompress without any cropping."""
    return bound(raw, config).to_data_uri()
