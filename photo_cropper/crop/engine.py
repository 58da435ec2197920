"""Crop/zoom engine: the interactive state machine behind the photo cropper.

The engine is UI-agnostic. Bindings (the Qt viewport widget, a native view's
gesture recognizers, or a test harness) feed it device events through the
on_* methods; it keeps zoom/pan/gesture state, re-renders the preview after
every transform change and produces the final bitmap on confirm().

Phases:
    IDLE -> READY (load) -> INTERACTING (gesture) -> READY (gesture end)
    READY/INTERACTING -> CONFIRMED (confirm) | CANCELLED (cancel)
load() may be called in any phase and starts over with the new bitmap.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import Any

from PySide6.QtCore import QObject, Signal
from PySide6.QtGui import QImage

from photo_cropper.app.state.crop_state import CropState
from photo_cropper.errors import DecodeError, GestureConflict, RenderError
from photo_cropper.intake.decoder import WorkingBitmap
from photo_cropper.logger import get_logger
from photo_cropper.settings_manager import CropConfig

from .gesture import GestureKind, GestureSession, InputSource
from .presets import SQUARE
from .transform import (
    CropResult,
    OutputBitmap,
    Point,
    TransformState,
    damped_delta,
    encode_jpeg,
    pinch_zoom,
    render_frame,
    touch_distance,
    wheel_zoom,
)

_logger = get_logger("engine")

_PINCH_TOUCHES = 2


class CropPhase(Enum):
    IDLE = "idle"
    READY = "ready"
    INTERACTING = "interacting"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


def _as_point(value: Any) -> Point:
    """Accept (x, y) sequences as well as QPoint/QPointF-like objects."""
    x = getattr(value, "x", None)
    if callable(x):
        return float(value.x()), float(value.y())
    return float(value[0]), float(value[1])


class CropEngine(QObject):
    """Interactive pan/zoom over a working bitmap inside a fixed output frame."""

    previewChanged = Signal(QImage)
    transformChanged = Signal(object)  # TransformState
    phaseChanged = Signal(str)
    sessionStarted = Signal(str)  # input source ("pointer" / "touch")
    sessionEnded = Signal(str)
    finished = Signal(object)  # CropResult

    def __init__(
        self,
        output_size: tuple[int, int] = SQUARE.size,
        config: CropConfig | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        w, h = int(output_size[0]), int(output_size[1])
        if w < 1 or h < 1:
            raise ValueError(f"output size must be positive, got {w}x{h}")
        self._output_size = (w, h)
        self._config = config or CropConfig()
        self.state = CropState(self)

        self._phase = CropPhase.IDLE
        self._transform = TransformState.identity()
        self._bitmap: WorkingBitmap | None = None
        self._source: QImage | None = None
        self._session: GestureSession | None = None
        self._preview = QImage()
        self._preview_scale = 1.0

    # ---- read-only state --------------------------------------------
    @property
    def phase(self) -> CropPhase:
        return self._phase

    @property
    def transform(self) -> TransformState:
        return self._transform

    @property
    def preview(self) -> QImage:
        return self._preview

    @property
    def bitmap(self) -> WorkingBitmap | None:
        return self._bitmap

    @property
    def bitmap_size(self) -> tuple[int, int] | None:
        if self._source is None:
            return None
        return self._source.width(), self._source.height()

    @property
    def output_size(self) -> tuple[int, int]:
        return self._output_size

    @property
    def preview_scale(self) -> float:
        return self._preview_scale

    @property
    def config(self) -> CropConfig:
        return self._config

    @property
    def session(self) -> GestureSession | None:
        return self._session

    @property
    def has_session(self) -> bool:
        return self._session is not None

    def is_live(self) -> bool:
        return self._phase in (CropPhase.READY, CropPhase.INTERACTING)

    # ---- loading ----------------------------------------------------
    def load(self, bitmap: WorkingBitmap) -> None:
        """Show bitmap at the identity transform.

        Raises DecodeError (or RenderError) without touching the current
        state when the bitmap cannot be decoded or drawn.
        """
        source = QImage.fromData(bitmap.data)
        if source.isNull():
            raise DecodeError(f"cannot decode working bitmap ({len(bitmap.data)} bytes)")
        identity = TransformState.identity()
        preview = self._render(source, identity)

        self._end_session()
        self._bitmap = bitmap
        self._source = source
        self._commit(identity, preview)
        self.state._set_image_size(source.width(), source.height())
        self._set_phase(CropPhase.READY)
        _logger.debug("loaded %dx%d bitmap into %dx%d frame", source.width(), source.height(), *self._output_size)

    # ---- pointer ----------------------------------------------------
    def on_pointer_down(self, point: Any, primary: bool = True) -> None:
        if not self.is_live() or not primary:
            return
        if self._session is not None and self._session.source is InputSource.POINTER:
            return
        try:
            self._begin_session(GestureSession.drag(InputSource.POINTER, _as_point(point)))
        except GestureConflict as e:
            _logger.debug("pointer down dropped: %s", e)

    def on_pointer_move(self, point: Any) -> None:
        s = self._session
        if s is None or s.source is not InputSource.POINTER or s.kind is not GestureKind.DRAG:
            return
        self._drag_to(s, _as_point(point))

    def on_pointer_up(self) -> None:
        if self._session is not None and self._session.source is InputSource.POINTER:
            self._end_session()

    def on_wheel(self, delta_y: float) -> None:
        if not self.is_live():
            return
        c = self._config
        zoom = wheel_zoom(self._transform.zoom, delta_y, c.zoom_step, c.zoom_min, c.zoom_max)
        self._apply(self._transform.with_zoom(zoom, c.zoom_min, c.zoom_max))

    # ---- touch ------------------------------------------------------
    def on_touch_start(self, touches: Iterable[Any]) -> None:
        if not self.is_live():
            return
        pts = [_as_point(t) for t in touches]
        try:
            if len(pts) == _PINCH_TOUCHES:
                self._begin_session(GestureSession.pinch(touch_distance(pts)))
            elif len(pts) == 1:
                self._begin_session(GestureSession.drag(InputSource.TOUCH, pts[0]))
            elif self._session is not None and self._session.source is InputSource.TOUCH:
                self._end_session()
        except GestureConflict as e:
            _logger.debug("touch start dropped: %s", e)

    def on_touch_move(self, touches: Iterable[Any]) -> None:
        s = self._session
        if s is None or s.source is not InputSource.TOUCH:
            return
        pts = [_as_point(t) for t in touches]
        if s.kind is GestureKind.PINCH and len(pts) == _PINCH_TOUCHES:
            distance = touch_distance(pts)
            c = self._config
            zoom = pinch_zoom(self._transform.zoom, float(s.anchor), distance, c.zoom_min, c.zoom_max)
            s.anchor = distance
            self._apply(self._transform.with_zoom(zoom, c.zoom_min, c.zoom_max))
        elif s.kind is GestureKind.DRAG and len(pts) == 1:
            self._drag_to(s, pts[0])
        else:
            _logger.debug("touch count changed to %d during %s, ending session", len(pts), s.kind.value)
            self._end_session()

    def on_touch_end(self) -> None:
        if self._session is not None and self._session.source is InputSource.TOUCH:
            self._end_session()

    # ---- programmatic -----------------------------------------------
    def set_transform(self, zoom: float, pan_x: float = 0.0, pan_y: float = 0.0) -> None:
        if not self.is_live():
            raise RuntimeError("no bitmap loaded")
        c = self._config
        self._apply(TransformState(zoom=1.0, pan_x=float(pan_x), pan_y=float(pan_y)).with_zoom(zoom, c.zoom_min, c.zoom_max))

    def reset(self) -> None:
        if self.is_live():
            self._apply(TransformState.identity())

    def set_preview_scale(self, scale: float) -> None:
        s = float(scale)
        if s <= 0:
            raise ValueError(f"preview scale must be positive, got {scale}")
        if s == self._preview_scale:
            return
        self._preview_scale = s
        if self.is_live() and self._source is not None:
            self._commit(self._transform, self._render(self._source, self._transform))

    # ---- terminal ---------------------------------------------------
    def confirm(self) -> CropResult:
        """Rasterise the current view into the output frame and finish.

        Raises RenderError if the frame cannot be drawn or encoded; the engine
        then stays READY so the user can retry or cancel.
        """
        if not self.is_live() or self._source is None:
            _logger.warning("confirm ignored in phase %s", self._phase.value)
            return CropResult.empty()
        self._end_session()

        w, h = self._output_size
        quality = self._config.output_quality
        try:
            frame = render_frame(self._source, self._transform, self._output_size, background=self._config.background_color)
            data = encode_jpeg(frame, quality)
        except RenderError:
            _logger.error("confirm failed for %dx%d output", w, h, exc_info=True)
            raise

        result = CropResult(OutputBitmap(data, w, h, quality))
        _logger.info(
            "crop confirmed: zoom=%.3f pan=(%.2f, %.2f) -> %dx%d (%d bytes)",
            self._transform.zoom,
            self._transform.pan_x,
            self._transform.pan_y,
            w,
            h,
            len(data),
        )
        self._discard()
        self._set_phase(CropPhase.CONFIRMED)
        self.finished.emit(result)
        return result

    def cancel(self) -> CropResult:
        self._end_session()
        self._discard()
        self._set_phase(CropPhase.CANCELLED)
        _logger.debug("crop cancelled")
        result = CropResult.empty()
        self.finished.emit(result)
        return result

    # ---- internals --------------------------------------------------
    def _render(self, source: QImage, transform: TransformState) -> QImage:
        return render_frame(
            source,
            transform,
            self._output_size,
            scale=self._preview_scale,
            background=self._config.background_color,
        )

    def _commit(self, transform: TransformState, preview: QImage) -> None:
        self._transform = transform
        self._preview = preview
        self.state._set_transform(transform.zoom, transform.pan_x, transform.pan_y)
        self.transformChanged.emit(transform)
        self.previewChanged.emit(preview)

    def _apply(self, transform: TransformState) -> None:
        if self._source is None or transform == self._transform:
            return
        try:
            preview = self._render(self._source, transform)
        except RenderError:
            _logger.error("preview render failed; keeping previous transform", exc_info=True)
            return
        self._commit(transform, preview)

    def _drag_to(self, session: GestureSession, point: Point) -> None:
        last = session.last_sample if session.last_sample is not None else point
        dx, dy = damped_delta(last, point, self._config.drag_damping)
        session.last_sample = point
        self._apply(self._transform.panned(dx, dy))

    def _begin_session(self, session: GestureSession) -> None:
        current = self._session
        if current is not None:
            if current.source is not session.source:
                raise GestureConflict(
                    f"{session.source.value} {session.kind.value} requested while "
                    f"{current.source.value} {current.kind.value} is active"
                )
            # Same device, different touch count: the old interaction is over.
            self._end_session()
        self._session = session
        self.state._set_interacting(True)
        self._set_phase(CropPhase.INTERACTING)
        self.sessionStarted.emit(session.source.value)

    def _end_session(self) -> None:
        session = self._session
        if session is None:
            return
        self._session = None
        self.state._set_interacting(False)
        if self._phase is CropPhase.INTERACTING:
            self._set_phase(CropPhase.READY)
        self.sessionEnded.emit(session.source.value)

    def _discard(self) -> None:
        self._bitmap = None
        self._source = None
        self._transform = TransformState.identity()
        self._preview = QImage()
        self.state._set_transform(1.0, 0.0, 0.0)
        self.state._set_image_size(0, 0)

    def _set_phase(self, phase: CropPhase) -> None:
        if phase is self._phase:
            return
        _logger.debug("phase %s -> %s", self._phase.value, phase.value)
        self._phase = phase
        self.state._set_phase(phase.value)
        self.phaseChanged.emit(phase.value)
