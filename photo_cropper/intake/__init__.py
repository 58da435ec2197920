"""Bitmap intake public API.

Keep this module lightweight: the decoder is pure pyvips and does not pull in
Qt. Import the async loader directly when needed:
    - `from photo_cropper.intake.loader import IntakeLoader`
"""

from .datauri import decode_data_uri, encode_data_uri, is_data_uri
from .decoder import (
    MAX_DIMENSION,
    WORKING_QUALITY,
    RawImageSource,
    WorkingBitmap,
    bound,
    bounded_size,
    compress_to_data_uri,
    read_raw_source,
)

__all__ = [
    "MAX_DIMENSION",
    "WORKING_QUALITY",
    "RawImageSource",
    "WorkingBitmap",
    "bound",
    "bounded_size",
    "compress_to_data_uri",
    "decode_data_uri",
    "encode_data_uri",
    "is_data_uri",
    "read_raw_source",
]
