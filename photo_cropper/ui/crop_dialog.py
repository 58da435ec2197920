"""Crop dialog UI.

Modal dialog hosting a CropViewport, a zoom readout and Cancel/Confirm
buttons. Closing the dialog in any way other than Confirm yields an empty
CropResult.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QDialog, QHBoxLayout, QLabel, QPushButton, QVBoxLayout, QWidget

from photo_cropper.crop.engine import CropEngine
from photo_cropper.crop.presets import SQUARE
from photo_cropper.crop.transform import CropResult
from photo_cropper.errors import RenderError
from photo_cropper.logger import get_logger

from .crop_view import CropViewport

if TYPE_CHECKING:
    from PySide6.QtGui import QKeyEvent

    from photo_cropper.intake.decoder import WorkingBitmap
    from photo_cropper.settings_manager import CropConfig

_logger = get_logger("crop_dialog")


class PhotoCropDialog(QDialog):
    """Pan/zoom a working bitmap and confirm the framed result."""

    def __init__(
        self,
        parent: QWidget | None,
        bitmap: WorkingBitmap,
        output_size: tuple[int, int] = SQUARE.size,
        config: CropConfig | None = None,
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle("Crop and zoom your photo")
        self.setModal(True)

        self._result = CropResult.empty()
        self.engine = CropEngine(output_size, config, parent=self)
        # DecodeError propagates: there is nothing to show without a bitmap.
        self.engine.load(bitmap)

        self._setup_ui()
        self.engine.state.zoomChanged.connect(self._update_zoom_label)
        self._update_zoom_label(self.engine.transform.zoom)
        _logger.debug("crop dialog opened: %dx%d -> %dx%d", bitmap.width, bitmap.height, *output_size)

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(12, 12, 12, 12)
        layout.setSpacing(8)

        layout.addWidget(QLabel("Crop preview (drag to move, scroll to zoom)"))

        self.viewport = CropViewport(self.engine, self)
        layout.addWidget(self.viewport, alignment=Qt.AlignmentFlag.AlignHCenter)

        self.zoom_label = QLabel()
        self.zoom_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self.zoom_label)

        hint = QLabel("Drag to move • Scroll to zoom • Pinch to zoom")
        hint.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(hint)

        self.status_label = QLabel()
        self.status_label.setVisible(False)
        layout.addWidget(self.status_label)

        buttons = QHBoxLayout()
        buttons.addStretch()
        self.cancel_btn = QPushButton("Cancel")
        self.cancel_btn.clicked.connect(self._on_cancel)
        buttons.addWidget(self.cancel_btn)
        self.confirm_btn = QPushButton("Confirm crop")
        self.confirm_btn.setDefault(True)
        self.confirm_btn.clicked.connect(self._on_confirm)
        buttons.addWidget(self.confirm_btn)
        layout.addLayout(buttons)

    def _update_zoom_label(self, zoom: float) -> None:
        self.zoom_label.setText(f"Zoom: {zoom * 100:.0f}%")

    def crop_result(self) -> CropResult:
        return self._result

    def _on_confirm(self) -> None:
        try:
            self._result = self.engine.confirm()
        except RenderError as e:
            self.status_label.setText(f"Could not produce the cropped photo: {e}")
            self.status_label.setVisible(True)
            return
        self.accept()

    def _on_cancel(self) -> None:
        self.reject()

    def reject(self) -> None:  # type: ignore[override]
        if self.engine.is_live():
            self._result = self.engine.cancel()
        super().reject()

    def keyPressEvent(self, arg__1: QKeyEvent) -> None:  # type: ignore[override]
        """Enter confirms; Escape goes through reject() and cancels."""
        event = arg__1
        if event.key() in (Qt.Key.Key_Return, Qt.Key.Key_Enter):
            self._on_confirm()
        else:
            super().keyPressEvent(event)


def run_crop_dialog(
    parent: QWidget | None,
    bitmap: WorkingBitmap,
    output_size: tuple[int, int] = SQUARE.size,
    config: CropConfig | None = None,
) -> CropResult:
    """Run the crop dialog modally and return its result (empty when cancelled)."""
    dialog = PhotoCropDialog(parent, bitmap, output_size, config)
    try:
        result = dialog.exec()
        _logger.debug("crop dialog closed, exec() returned %s", result)
        return dialog.crop_result()
    finally:
        dialog.deleteLater()
