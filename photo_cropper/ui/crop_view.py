"""Qt viewport widget feeding mouse, wheel and touch input into a CropEngine."""

from __future__ import annotations

from PySide6.QtCore import QCoreApplication, QEvent, QObject, QPointF, Qt
from PySide6.QtGui import QColor, QEventPoint, QMouseEvent, QPainter
from PySide6.QtWidgets import QSizePolicy, QWidget

from photo_cropper.crop.engine import CropEngine
from photo_cropper.crop.gesture import InputSource
from photo_cropper.logger import get_logger

_logger = get_logger("crop_view")


class _GlobalPointerCapture(QObject):
    """Application-wide mouse filter that lives for exactly one pointer drag.

    Panning has to keep following the mouse after it leaves the small preview,
    and the release has to end the drag wherever it happens. The filter is
    installed when the engine starts a pointer session and removed when that
    session ends, whatever ended it (release, cancel, confirm, reload).
    """

    def __init__(self, viewport: CropViewport) -> None:
        super().__init__(viewport)
        self._viewport = viewport
        self._installed = False

    @property
    def active(self) -> bool:
        return self._installed

    def acquire(self) -> None:
        app = QCoreApplication.instance()
        if app is None or self._installed:
            return
        app.installEventFilter(self)
        self._installed = True
        _logger.debug("global pointer capture acquired")

    def release(self) -> None:
        if not self._installed:
            return
        app = QCoreApplication.instance()
        if app is not None:
            app.removeEventFilter(self)
        self._installed = False
        _logger.debug("global pointer capture released")

    def eventFilter(self, obj: QObject, event: QEvent) -> bool:  # type: ignore[override]
        # Mouse events also pass through the top-level QWindow; only widget deliveries count.
        if not isinstance(obj, QWidget):
            return False
        et = event.type()
        # Copies propagated to parent widgets repeat the same global point and pan by zero.
        if et == QEvent.Type.MouseMove and isinstance(event, QMouseEvent):
            self._viewport.engine.on_pointer_move(_global_point(event))
        elif et == QEvent.Type.MouseButtonRelease and isinstance(event, QMouseEvent):
            if event.button() == Qt.MouseButton.LeftButton:
                self._viewport.engine.on_pointer_up()
        return False


def _global_point(event: QMouseEvent) -> tuple[float, float]:
    # Pan deltas only need a stable frame; global coordinates stay valid outside the widget.
    p: QPointF = event.globalPosition()
    return p.x(), p.y()


class CropViewport(QWidget):
    """Fixed-size preview of the engine's current frame.

    The widget is a thin binding: every input event is translated into an
    engine call and every preview change triggers a repaint of the engine's
    already-rendered frame.
    """

    def __init__(self, engine: CropEngine, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.engine = engine
        self._capture = _GlobalPointerCapture(self)

        w, h = engine.output_size
        self.setFixedSize(w, h)
        self.setSizePolicy(QSizePolicy.Policy.Fixed, QSizePolicy.Policy.Fixed)
        self.setAttribute(Qt.WidgetAttribute.WA_AcceptTouchEvents, True)
        self.setCursor(Qt.CursorShape.OpenHandCursor)

        engine.previewChanged.connect(self.update)
        engine.sessionStarted.connect(self._on_session_started)
        engine.sessionEnded.connect(self._on_session_ended)

    @property
    def capture_active(self) -> bool:
        return self._capture.active

    # ---- engine session hooks ---------------------------------------
    def _on_session_started(self, source: str) -> None:
        if source == InputSource.POINTER.value:
            self._capture.acquire()
            self.setCursor(Qt.CursorShape.ClosedHandCursor)

    def _on_session_ended(self, source: str) -> None:
        if source == InputSource.POINTER.value:
            self._capture.release()
            self.setCursor(Qt.CursorShape.OpenHandCursor)

    # ---- Qt events --------------------------------------------------
    def showEvent(self, event) -> None:  # type: ignore[override]
        super().showEvent(event)
        # Render the preview at device resolution so HiDPI screens get a sharp frame.
        self.engine.set_preview_scale(self.devicePixelRatioF())

    def paintEvent(self, event) -> None:  # type: ignore[override]
        painter = QPainter(self)
        try:
            preview = self.engine.preview
            if preview.isNull():
                painter.fillRect(self.rect(), QColor(self.engine.config.background_color))
            else:
                painter.drawImage(self.rect(), preview)
        finally:
            painter.end()

    def mousePressEvent(self, event: QMouseEvent) -> None:  # type: ignore[override]
        primary = event.button() == Qt.MouseButton.LeftButton
        self.engine.on_pointer_down(_global_point(event), primary=primary)
        event.accept()

    def mouseMoveEvent(self, event: QMouseEvent) -> None:  # type: ignore[override]
        # Moves are handled by the global capture while a drag is active.
        event.accept()

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:  # type: ignore[override]
        event.accept()

    def wheelEvent(self, event) -> None:  # type: ignore[override]
        # Qt reports wheel-up as a positive angle; the engine takes DOM-style deltaY.
        angle = event.angleDelta().y()
        if angle:
            self.engine.on_wheel(-angle)
        event.accept()

    def event(self, event: QEvent) -> bool:  # type: ignore[override]
        et = event.type()
        if et in (QEvent.Type.TouchBegin, QEvent.Type.TouchUpdate, QEvent.Type.TouchEnd, QEvent.Type.TouchCancel):
            self._handle_touch(event)
            event.accept()
            return True
        return super().event(event)

    def _handle_touch(self, event) -> None:
        et = event.type()
        if et in (QEvent.Type.TouchEnd, QEvent.Type.TouchCancel):
            self.engine.on_touch_end()
            return

        points = list(event.points())
        active = [
            (p.position().x(), p.position().y())
            for p in points
            if p.state() != QEventPoint.State.Released
        ]
        states = {p.state() for p in points}
        if not active or QEventPoint.State.Released in states:
            # A lifted finger ends the gesture; remaining fingers need a new press.
            self.engine.on_touch_end()
        elif et == QEvent.Type.TouchBegin or QEventPoint.State.Pressed in states:
            self.engine.on_touch_start(active)
        else:
            self.engine.on_touch_move(active)
