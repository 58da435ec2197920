from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CropPreset:
    name: str
    width: int
    height: int

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height


SQUARE = CropPreset("square", 200, 200)
# Portrait-style avatars (student cards)
PORTRAIT = CropPreset("portrait", 128, 192)

PRESETS: dict[str, CropPreset] = {p.name: p for p in (SQUARE, PORTRAIT)}


def get_preset(name: str) -> CropPreset:
    try:
        return PRESETS[(name or "").strip().lower()]
    except KeyError:
        raise ValueError(f"unknown crop preset: {name!r}") from None
