from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .transform import Point


class GestureKind(Enum):
    DRAG = "drag"
    PINCH = "pinch"


class InputSource(Enum):
    POINTER = "pointer"
    TOUCH = "touch"


@dataclass(slots=True)
class GestureSession:
    """One contiguous pointer/touch interaction.

    For drags the anchor is the press point and last_sample tracks the latest
    position. For pinches the anchor is the inter-touch distance of the
    previous sample (pinch zoom is incremental).
    """

    kind: GestureKind
    source: InputSource
    anchor: Point | float
    last_sample: Point | None = None

    @classmethod
    def drag(cls, source: InputSource, point: Point) -> GestureSession:
        return cls(GestureKind.DRAG, source, point, point)

    @classmethod
    def pinch(cls, distance: float) -> GestureSession:
        return cls(GestureKind.PINCH, InputSource.TOUCH, float(distance))
