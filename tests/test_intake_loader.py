from __future__ import annotations

import threading

import pytest

pytest.importorskip("PySide6")

from photo_cropper.errors import DecodeError
from photo_cropper.intake.decoder import WorkingBitmap
from photo_cropper.intake.loader import IntakeLoader


class _GatedBound:
    """bound() stand-in whose completion is controlled by the test."""

    def __init__(self) -> None:
        self.gates: dict[bytes, threading.Event] = {}

    def gate(self, raw: bytes) -> threading.Event:
        return self.gates.setdefault(raw, threading.Event())

    def __call__(self, raw: bytes) -> WorkingBitmap:
        self.gate(raw).wait(5)
        if raw == b"bad":
            raise DecodeError("cannot decode image")
        return WorkingBitmap(raw, len(raw), 1)


def test_latest_request_is_delivered(qtbot) -> None:
    fn = _GatedBound()
    loader = IntakeLoader(fn)
    try:
        fn.gate(b"abc").set()
        with qtbot.waitSignal(loader.bitmapReady, timeout=5000) as blocker:
            req = loader.request(b"abc")
        rid, bitmap = blocker.args
        assert rid == req
        assert bitmap.data == b"abc"
    finally:
        loader.shutdown()


def test_stale_result_is_discarded(qtbot) -> None:
    fn = _GatedBound()
    loader = IntakeLoader(fn)
    received: list[int] = []
    loader.bitmapReady.connect(lambda rid, _bm: received.append(rid))
    try:
        first = loader.request(b"first")
        second = loader.request(b"second")
        assert loader.latest_request == second

        fn.gate(b"second").set()
        with qtbot.waitSignal(loader.bitmapReady, timeout=5000):
            # The single worker finishes the superseded decode before the newer one.
            fn.gate(b"first").set()

        assert received == [second]
        assert first not in received
    finally:
        loader.shutdown()


def test_failure_is_reported_for_latest_request(qtbot) -> None:
    fn = _GatedBound()
    fn.gate(b"bad").set()
    loader = IntakeLoader(fn)
    try:
        with qtbot.waitSignal(loader.failed, timeout=5000) as blocker:
            req = loader.request(b"bad")
        rid, err = blocker.args
        assert rid == req
        assert isinstance(err, DecodeError)
    finally:
        loader.shutdown()


def test_discard_pending_drops_outstanding_result(qtbot) -> None:
    fn = _GatedBound()
    loader = IntakeLoader(fn)
    try:
        loader.request(b"late")
        loader.discard_pending()
        assert loader.latest_request is None

        with qtbot.assertNotEmitted(loader.bitmapReady, wait=200):
            fn.gate(b"late").set()
    finally:
        loader.shutdown()
