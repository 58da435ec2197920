"""What the user sees is what the engine emits."""

from __future__ import annotations

import pytest

pytest.importorskip("PySide6")

from PySide6.QtGui import QImage

from photo_cropper.crop.engine import CropEngine
from photo_cropper.crop.presets import PORTRAIT
from tests.helpers.parity import frame_difference, qimage_to_array, sample

RED = (255, 0, 0)
BLUE = (0, 0, 255)
GREEN = (0, 255, 0)
YELLOW = (255, 255, 0)
QUADS = (RED, BLUE, GREEN, YELLOW)


def _near(actual, expected, tol: int = 40) -> bool:
    return all(abs(a - e) <= tol for a, e in zip(actual, expected))


@pytest.mark.parametrize(
    "zoom, pan",
    [(1.0, (0.0, 0.0)), (2.0, (10.0, 10.0)), (0.35, (-80.0, 40.0)), (3.0, (-5.5, 7.25))],
)
def test_preview_matches_confirmed_output(make_bitmap, zoom, pan) -> None:
    eng = CropEngine((200, 200))
    eng.load(make_bitmap(600, 400, quadrants=QUADS))
    eng.set_transform(zoom, *pan)
    preview = QImage(eng.preview)

    result = eng.confirm()
    output = QImage.fromData(result.bitmap.data)

    assert (output.width(), output.height()) == (200, 200)
    assert frame_difference(preview, output) < 4.0


def test_hidpi_preview_matches_output(make_bitmap) -> None:
    eng = CropEngine((200, 200))
    eng.load(make_bitmap(600, 400, quadrants=QUADS))
    eng.set_preview_scale(2.0)
    eng.set_transform(1.7, 12, -30)
    preview = QImage(eng.preview)
    assert (preview.width(), preview.height()) == (400, 400)

    output = QImage.fromData(eng.confirm().bitmap.data)

    assert frame_difference(output, preview) < 4.0


def test_zoom_two_pan_ten_frames_expected_crop(make_bitmap) -> None:
    # Quadrant boundaries sit at bitmap centre; with zoom 2 and pan (10, 10)
    # they land at 100 + 2 * 10 = 120 on both output axes.
    eng = CropEngine((200, 200))
    eng.load(make_bitmap(2000, 1500, quadrants=QUADS))
    eng.set_transform(2.0, 10, 10)

    output = QImage.fromData(eng.confirm().bitmap.data)

    assert _near(sample(output, 80, 80), RED)
    assert _near(sample(output, 160, 80), BLUE)
    assert _near(sample(output, 80, 160), GREEN)
    assert _near(sample(output, 160, 160), YELLOW)
    assert _near(sample(output, 112, 40), RED)
    assert _near(sample(output, 128, 40), BLUE)


def test_camera_photo_scenario(vips_image_bytes) -> None:
    from photo_cropper.intake.decoder import bound

    bitmap = bound(vips_image_bytes(4000, 3000, quadrants=QUADS))
    assert bitmap.size == (2000, 1500)

    eng = CropEngine((200, 200))
    eng.load(bitmap)
    eng.set_transform(2.0, 10, 10)
    result = eng.confirm()
    output = QImage.fromData(result.bitmap.data)

    assert (result.bitmap.width, result.bitmap.height) == (200, 200)
    assert _near(sample(output, 80, 80), RED, tol=60)
    assert _near(sample(output, 160, 80), BLUE, tol=60)
    assert _near(sample(output, 80, 160), GREEN, tol=60)
    assert _near(sample(output, 160, 160), YELLOW, tol=60)


def test_image_dragged_out_of_view_confirms_blank_frame(make_bitmap) -> None:
    eng = CropEngine((200, 200))
    eng.load(make_bitmap(100, 100, color=(0, 0, 0)))
    eng.on_pointer_down((0, 0))
    eng.on_pointer_move((5000, 0))  # pan 1000
    eng.on_pointer_up()

    output = QImage.fromData(eng.confirm().bitmap.data)
    pixels = qimage_to_array(output)

    assert pixels.min() >= 245


def test_portrait_output_dimensions(make_bitmap) -> None:
    eng = CropEngine(PORTRAIT.size)
    eng.load(make_bitmap(300, 500, quadrants=QUADS))
    assert (eng.preview.width(), eng.preview.height()) == (128, 192)

    result = eng.confirm()
    output = QImage.fromData(result.bitmap.data)
    assert (output.width(), output.height()) == (128, 192)
    assert (result.bitmap.width, result.bitmap.height) == (128, 192)


def test_identity_transform_centres_bitmap(make_bitmap) -> None:
    eng = CropEngine((200, 200))
    eng.load(make_bitmap(100, 60, color=(0, 0, 0)))
    preview = eng.preview

    assert sample(preview, 100, 100) == (0, 0, 0)
    assert sample(preview, 52, 72) == (0, 0, 0)
    assert sample(preview, 48, 100) == (255, 255, 255)
    assert sample(preview, 100, 66) == (255, 255, 255)


def test_pixel_helpers_are_test_only() -> None:
    import importlib.util

    assert importlib.util.find_spec("photo_cropper.crop.parity") is None
    assert importlib.util.find_spec("tests.helpers.parity") is not None
