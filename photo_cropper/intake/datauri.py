"""base64 data URIs, the portable form bitmaps are handed to callers in."""

from __future__ import annotations

import base64
import binascii

from photo_cropper.errors import DecodeError

_PREFIX = "data:"
_B64_MARKER = ";base64"


def encode_data_uri(data: bytes, mime: str = "image/jpeg") -> str:
    return f"{_PREFIX}{mime}{_B64_MARKER},{base64.b64encode(data).decode('ascii')}"


def is_data_uri(value: object) -> bool:
    return isinstance(value, str) and value.startswith(_PREFIX)


def decode_data_uri(uri: str) -> tuple[str, bytes]:
    """Return (mime, payload) for a base64 data URI.

    Raises DecodeError for anything that is not a base64 data URI.
    """
    if not is_data_uri(uri):
        raise DecodeError("not a data URI")
    header, sep, payload = uri.partition(",")
    if not sep:
        raise DecodeError("data URI has no payload separator")
    if not header.endswith(_B64_MARKER):
        raise DecodeError("only base64 data URIs are supported")
    mime = header[len(_PREFIX) : -len(_B64_MARKER)] or "application/octet-stream"
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"invalid base64 payload: {e}") from e
    return mime, data
