import pytest
from PIL import Image

from conftest import encode, gradient_image, solid_image_bytes
from epd_pipeline.canvas import decode, normalize
from epd_pipeline.errors import DecodeError, ResizeError
from epd_pipeline.palette import DEFAULT_PANEL
from epd_pipeline.transforms import PillowTransform, RasterTransform, fit_size

BLACK = (0, 0, 0)


def run(data, tmp_path):
    return normalize(data, DEFAULT_PANEL, PillowTransform(), str(tmp_path))


@pytest.mark.parametrize("source, expected", [
    ((800, 480), (800, 480)),
    ((1600, 960), (800, 480)),
    ((1600, 480), (800, 240)),
    ((100, 100), (480, 480)),
    ((480, 800), (288, 480)),
    ((4000, 1), (800, 1)),
])
def test_fit_size_preserves_aspect(source, expected):
    assert fit_size(source, (800, 480)) == expected


def test_output_is_always_panel_sized(tmp_path):
    for size in [(800, 480), (123, 45), (3000, 2000), (10, 900)]:
        assert run(solid_image_bytes((255, 255, 255), size), tmp_path).size == (800, 480)


def test_wide_image_is_letterboxed_with_black(tmp_path):
    canvas = run(solid_image_bytes((255, 255, 255), (1600, 480)), tmp_path)
    # 800x240 content centred vertically: rows 120..359
    for y in (0, 60, 119, 360, 479):
        assert canvas.getpixel((400, y)) == BLACK
    assert min(canvas.getpixel((400, 240))) >= 250


def test_small_image_is_upscaled_and_pillarboxed(tmp_path):
    canvas = run(solid_image_bytes((255, 255, 255), (100, 100)), tmp_path)
    # 480x480 content at x 160..639
    for x in (0, 100, 159, 640, 799):
        assert canvas.getpixel((x, 240)) == BLACK
    assert min(canvas.getpixel((400, 240))) >= 250


def test_transparency_is_flattened_onto_black():
    img = Image.new("RGBA", (10, 10), (255, 255, 255, 0))
    assert decode(encode(img)).getpixel((5, 5)) == BLACK


def test_greyscale_input_becomes_rgb():
    img = decode(encode(Image.new("L", (8, 8), 200)))
    assert img.mode == "RGB"
    assert img.getpixel((0, 0)) == (200, 200, 200)


@pytest.mark.parametrize("data", [b"", b"definitely not an image", b"\x89PNG\r\n\x1a\n\x00\x00"])
def test_undecodable_input_raises_decode_error(data):
    with pytest.raises(DecodeError):
        decode(data)


def test_truncated_jpeg_raises_decode_error():
    data = encode(gradient_image((128, 128)), "JPEG")
    with pytest.raises(DecodeError):
        decode(data[: len(data) * 3 // 4])


def test_transform_returning_wrong_size_is_a_resize_error(tmp_path):
    class Broken(RasterTransform):
        def fit(self, image, size, background, workdir):
            return Image.new("RGB", (10, 10))

    with pytest.raises(ResizeError):
        normalize(solid_image_bytes((0, 0, 0), (20, 20)), DEFAULT_PANEL, Broken(), str(tmp_path))
