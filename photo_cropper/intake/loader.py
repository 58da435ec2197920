import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable

from PySide6.QtCore import QObject, Signal

from photo_cropper.errors import PhotoCropperError
from photo_cropper.logger import get_logger

from .decoder import RawImageSource, WorkingBitmap, bound

_logger = get_logger("loader")


class IntakeLoader(QObject):
    """Runs bitmap intake off the UI thread.

    Only the most recent request is reported. A completion for an older request
    is dropped rather than cancelled, so a slow decode of a previous selection
    can never overwrite a newer one.

    bound_fn takes a raw source and returns a WorkingBitmap, raising
    DecodeError/RenderError on failure.
    """

    bitmapReady = Signal(int, object)  # request_id, WorkingBitmap
    failed = Signal(int, object)  # request_id, exception

    def __init__(self, bound_fn: Callable[[RawImageSource], WorkingBitmap] = bound, parent: QObject | None = None):
        super().__init__(parent)
        self._bound_fn = bound_fn
        self.io_pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="photo-intake")
        self._next_id = 1
        self._latest_id: int | None = None
        self._lock = threading.Lock()

    @property
    def latest_request(self) -> int | None:
        with self._lock:
            return self._latest_id

    def is_current(self, request_id: int) -> bool:
        with self._lock:
            return self._latest_id == request_id

    def request(self, raw: RawImageSource) -> int:
        with self._lock:
            req_id = self._next_id
            self._next_id += 1
            self._latest_id = req_id
        _logger.debug("intake request id=%s", req_id)
        future = self.io_pool.submit(self._bound_fn, raw)
        future.add_done_callback(lambda f, rid=req_id: self._on_finished(rid, f))
        return req_id

    def discard_pending(self) -> None:
        """Forget the outstanding request so its completion is dropped."""
        with self._lock:
            self._latest_id = None

    def _on_finished(self, req_id: int, future: Future) -> None:
        if not self.is_current(req_id):
            _logger.debug("dropping stale intake result id=%s", req_id)
            return
        try:
            bitmap = future.result()
        except PhotoCropperError as e:
            _logger.warning("intake failed id=%s: %s", req_id, e)
            self.failed.emit(req_id, e)
            return
        except Exception as e:
            _logger.exception("intake crashed id=%s", req_id)
            self.failed.emit(req_id, e)
            return
        self.bitmapReady.emit(req_id, bitmap)

    def shutdown(self) -> None:
        self.discard_pending()
        self.io_pool.shutdown(wait=False, cancel_futures=True)
