"""Photo edit workflow.

Bridges a caller (profile / student record screens) and the crop pipeline:
pick a file, bound it off the UI thread, let the user frame it, and hand the
resulting data URI back. Persisting the photo stays with the caller.
"""

from __future__ import annotations

import functools

from PySide6.QtCore import QObject, Signal

from photo_cropper.crop.engine import CropEngine
from photo_cropper.crop.presets import get_preset
from photo_cropper.crop.transform import CropResult
from photo_cropper.errors import PhotoCropperError, RenderError
from photo_cropper.intake.decoder import RawImageSource, WorkingBitmap, bound, compress_to_data_uri
from photo_cropper.intake.loader import IntakeLoader
from photo_cropper.logger import get_logger
from photo_cropper.settings_manager import CropConfig

_logger = get_logger("photo_editor")


class PhotoEditSession(QObject):
    """One photo field: current photo, pending selection and the crop engine."""

    photoSelected = Signal(str)  # data URI
    photoCleared = Signal()
    editingChanged = Signal(bool)
    error = Signal(str, str)  # where, message

    def __init__(
        self,
        output_size: tuple[int, int] | None = None,
        config: CropConfig | None = None,
        current_photo: str | None = None,
        loader: IntakeLoader | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._config = config or CropConfig()
        if output_size is None:
            output_size = get_preset(self._config.default_preset).size
        self.engine = CropEngine(output_size, self._config, parent=self)
        self.loader = loader or IntakeLoader(functools.partial(bound, config=self._config), parent=self)
        self.loader.bitmapReady.connect(self._on_bitmap_ready)
        self.loader.failed.connect(self._on_intake_failed)

        self._current_photo = current_photo or None
        self._editing = False
        self._pending: int | None = None

    @property
    def current_photo(self) -> str | None:
        return self._current_photo

    @property
    def editing(self) -> bool:
        return self._editing

    @property
    def pending_request(self) -> int | None:
        return self._pending

    # ---- selection --------------------------------------------------
    def select(self, raw: RawImageSource) -> int:
        """Start intake of a newly selected file; supersedes any pending selection."""
        self._pending = self.loader.request(raw)
        _logger.debug("photo selected, intake request %s", self._pending)
        return self._pending

    def edit_existing(self) -> int | None:
        """Re-open the current photo in the cropper."""
        if not self._current_photo:
            self.error.emit("edit_existing", "there is no photo to edit")
            return None
        return self.select(self._current_photo)

    def quick_compress(self, raw: RawImageSource) -> str | None:
        """Bound and recompress raw without cropping and make it the current photo."""
        try:
            uri = compress_to_data_uri(raw, self._config)
        except PhotoCropperError as e:
            _logger.warning("quick compress failed: %s", e)
            self.error.emit("compress", str(e))
            return None
        self._current_photo = uri
        self.photoSelected.emit(uri)
        return uri

    def _on_bitmap_ready(self, request_id: int, bitmap: WorkingBitmap) -> None:
        if request_id != self._pending:
            _logger.debug("ignoring stale bitmap for request %s (pending %s)", request_id, self._pending)
            return
        self._pending = None
        try:
            self.engine.load(bitmap)
        except PhotoCropperError as e:
            _logger.warning("cannot load working bitmap: %s", e)
            self.error.emit("load", str(e))
            return
        self._set_editing(True)

    def _on_intake_failed(self, request_id: int, exc: object) -> None:
        if request_id != self._pending:
            return
        self._pending = None
        self.error.emit("intake", str(exc))

    # ---- finishing --------------------------------------------------
    def confirm(self) -> CropResult:
        if not self._editing:
            return CropResult.empty()
        try:
            result = self.engine.confirm()
        except RenderError as e:
            # Engine stays ready; the user may retry or cancel.
            self.error.emit("confirm", str(e))
            return CropResult.empty()
        self._finish(result)
        return result

    def cancel(self) -> CropResult:
        result = self.engine.cancel()
        self._finish(result)
        return result

    def clear(self) -> None:
        self.loader.discard_pending()
        self._pending = None
        if self._editing:
            self.engine.cancel()
            self._set_editing(False)
        self._current_photo = None
        self.photoCleared.emit()

    def shutdown(self) -> None:
        self.loader.shutdown()

    def _finish(self, result: CropResult) -> None:
        if not result.is_empty:
            self._current_photo = result.data_uri
            self.photoSelected.emit(self._current_photo)
        self._set_editing(False)

    def _set_editing(self, value: bool) -> None:
        v = bool(value)
        if v == self._editing:
            return
        self._editing = v
        self.editingChanged.emit(v)
