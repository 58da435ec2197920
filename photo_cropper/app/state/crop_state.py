from __future__ import annotations

from PySide6.QtCore import Property, QObject, Signal


class CropState(QObject):
    """Bindable view of the crop engine.

    Design:
    - Values mirror the engine's TransformState and phase; the engine is
      authoritative and is the only writer.
    - Pan is in bitmap pixels relative to the bitmap centre.
    """

    phaseChanged = Signal(str)
    zoomChanged = Signal(float)
    panXChanged = Signal(float)
    panYChanged = Signal(float)
    imageWidthChanged = Signal(int)
    imageHeightChanged = Signal(int)
    interactingChanged = Signal(bool)

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._phase = "idle"
        self._zoom = 1.0
        self._pan_x = 0.0
        self._pan_y = 0.0
        self._image_w = 0
        self._image_h = 0
        self._interacting = False

    # ---- read-only properties (mutate via engine) ----
    def _get_phase(self) -> str:
        return str(self._phase)

    phase = Property(str, _get_phase, notify=phaseChanged)  # type: ignore[arg-type]

    def _get_zoom(self) -> float:
        return float(self._zoom)

    zoom = Property(float, _get_zoom, notify=zoomChanged)  # type: ignore[arg-type]

    def _get_pan_x(self) -> float:
        return float(self._pan_x)

    panX = Property(float, _get_pan_x, notify=panXChanged)  # type: ignore[arg-type]

    def _get_pan_y(self) -> float:
        return float(self._pan_y)

    panY = Property(float, _get_pan_y, notify=panYChanged)  # type: ignore[arg-type]

    def _get_image_width(self) -> int:
        return int(self._image_w)

    imageWidth = Property(int, _get_image_width, notify=imageWidthChanged)  # type: ignore[arg-type]

    def _get_image_height(self) -> int:
        return int(self._image_h)

    imageHeight = Property(int, _get_image_height, notify=imageHeightChanged)  # type: ignore[arg-type]

    def _get_interacting(self) -> bool:
        return bool(self._interacting)

    interacting = Property(bool, _get_interacting, notify=interactingChanged)  # type: ignore[arg-type]

    # ---- internal mutation helpers (called by engine) ----
    def _set_phase(self, value: str) -> None:
        p = str(value)
        if p == self._phase:
            return
        self._phase = p
        self.phaseChanged.emit(p)

    def _set_transform(self, zoom: float, pan_x: float, pan_y: float) -> None:
        z = float(zoom)
        px = float(pan_x)
        py = float(pan_y)

        if z != self._zoom:
            self._zoom = z
            self.zoomChanged.emit(z)
        if px != self._pan_x:
            self._pan_x = px
            self.panXChanged.emit(px)
        if py != self._pan_y:
            self._pan_y = py
            self.panYChanged.emit(py)

    def _set_image_size(self, w: int, h: int) -> None:
        iw = int(w)
        ih = int(h)
        if iw != self._image_w:
            self._image_w = iw
            self.imageWidthChanged.emit(iw)
        if ih != self._image_h:
            self._image_h = ih
            self.imageHeightChanged.emit(ih)

    def _set_interacting(self, value: bool) -> None:
        v = bool(value)
        if v == self._interacting:
            return
        self._interacting = v
        self.interactingChanged.emit(v)
