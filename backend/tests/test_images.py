import io
import os

import pytest
from PIL import Image, ImageStat

from conftest import make_image_bytes
from recipe_api.core.errors import ProcessingError, UnsupportedFormat
from recipe_api.services.images import (
    MAX_IMAGE_WIDTH,
    fit_width,
    normalize_image,
    output_filename,
)


def _open_stored(upload_dir, path):
    assert path.startswith("/uploads/")
    return Image.open(os.path.join(upload_dir, path.rsplit("/", 1)[-1]))


def test_wide_image_is_downsized_proportionally(tmp_path):
    upload_dir = str(tmp_path / "uploads")
    path = normalize_image(make_image_bytes((1600, 1200)), "big.png", upload_dir)

    with _open_stored(upload_dir, path) as img:
        assert img.format == "JPEG"
        assert img.size == (MAX_IMAGE_WIDTH, 600)


@pytest.mark.parametrize("size", [(800, 533), (320, 240)])
def test_narrow_image_keeps_geometry(tmp_path, size):
    upload_dir = str(tmp_path / "uploads")
    path = normalize_image(make_image_bytes(size, fmt="JPEG"), "small.jpg", upload_dir)

    with _open_stored(upload_dir, path) as img:
        assert img.size == size


def test_height_truncates_like_integer_scaling():
    img = Image.new("RGB", (1000, 333))
    assert fit_width(img).size == (800, 266)


def test_transparent_png_is_flattened(tmp_path):
    upload_dir = str(tmp_path / "uploads")
    path = normalize_image(make_image_bytes((50, 50), mode="RGBA"), "alpha.png", upload_dir)

    with _open_stored(upload_dir, path) as img:
        assert img.mode == "RGB"
        assert img.getpixel((10, 10)) != (0, 0, 0)


def test_creates_upload_dir_and_leaves_no_temp_files(tmp_path):
    upload_dir = tmp_path / "nested" / "uploads"
    normalize_image(make_image_bytes((10, 10)), "a.png", str(upload_dir))

    files = os.listdir(upload_dir)
    assert len(files) == 1
    assert files[0].endswith("_a.jpg")


def test_non_image_rejected(tmp_path):
    with pytest.raises(UnsupportedFormat):
        normalize_image(b"definitely not an image", "fake.jpg", str(tmp_path))
    assert os.listdir(tmp_path) == []


def test_other_formats_rejected(tmp_path):
    with pytest.raises(UnsupportedFormat) as exc:
        normalize_image(make_image_bytes((10, 10), fmt="GIF", mode="P"), "anim.png", str(tmp_path))
    # 하나의 "처리 실패" 에러로 합쳐진다
    assert isinstance(exc.value, ProcessingError)


def test_write_failure_is_processing_error(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    with pytest.raises(ProcessingError):
        normalize_image(make_image_bytes((10, 10)), "a.png", str(blocker / "uploads"))


def test_output_filename_is_unique_and_sanitized():
    first = output_filename("my fancy pasta.PNG")
    second = output_filename("my fancy pasta.PNG")

    assert first != second
    assert first.endswith("_my_fancy_pasta.jpg")
    assert int(first.split("_", 1)[0]) < int(second.split("_", 1)[0])


def test_output_filename_drops_directories():
    assert output_filename("../../etc/passwd.png").endswith("_passwd.jpg")
    assert output_filename("C:\\photos\\dish.jpg").endswith("_dish.jpg")
    assert output_filename("").endswith("_image.jpg")




@pytest.mark.parametrize("mode", ["P", "1"])
def test_palette_and_bilevel_images_are_resized_smoothly(tmp_path, mode):
    # 흑백 1px 세로줄 교차 → 절반 축소 시 부드러운 필터면 회색으로 섞인다
    stripes = Image.frombytes("L", (1600, 10), bytes([0, 255] * 800 * 10)).convert(mode)
    buf = io.BytesIO()
    stripes.save(buf, format="PNG")
    upload_dir = str(tmp_path / "uploads")

    path = normalize_image(buf.getvalue(), "stripes.png", upload_dir)

    with _open_stored(upload_dir, path) as img:
        assert img.size == (800, 5)
        mean = ImageStat.Stat(img.convert("L")).mean[0]
        assert 64 < mean < 192
