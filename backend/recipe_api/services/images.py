# recipe_api/services/images.py
# 업로드 이미지 정규화: 디코드 → 가로 800 이하로 축소 → JPEG(q75) 재인코딩 → uploads/에 저장
# 동기 함수. 라우터에서 run_in_threadpool로 호출한다.

from __future__ import annotations
import io
import os
import logging
import tempfile
import threading
import time

from PIL import Image

from recipe_api.core.errors import ProcessingError, UnsupportedFormat

log = logging.getLogger(__name__)

ACCEPTED_FORMATS = {"JPEG", "PNG"}
MAX_IMAGE_WIDTH = 800
JPEG_QUALITY = 75
UPLOAD_URL_PREFIX = "/uploads"

FAILED = "Failed to process image"

_last_stamp = 0
_stamp_lock = threading.Lock()

def _next_stamp() -> int:
    # ns 타임스탬프, 같은 ns에 두 번 불려도 증가 보장
    global _last_stamp
    with _stamp_lock:
        _last_stamp = max(time.time_ns(), _last_stamp + 1)
        return _last_stamp

def output_filename(original: str) -> str:
    """'my pasta.png' → '1712345678901234567_my_pasta.jpg'"""
    base = (original or "").replace("\\", "/").rsplit("/", 1)[-1]
    stem = os.path.splitext(base)[0].replace(" ", "_") or "image"
    return f"{_next_stamp()}_{stem}.jpg"

def fit_width(img: Image.Image, max_width: int = MAX_IMAGE_WIDTH) -> Image.Image:
    width, height = img.size
    if width <= max_width:
        return img
    new_height = max(1, int(height * max_width / width))
    return img.resize((max_width, new_height), Image.Resampling.LANCZOS)

def to_rgb(img: Image.Image) -> Image.Image:
    # JPEG은 알파 없음 → 흰 배경에 합성
    if img.mode in ("RGBA", "LA", "P"):
        if img.mode == "P":
            img = img.convert("RGBA")
        rgb = Image.new("RGB", img.size, (255, 255, 255))
        rgb.paste(img, mask=img.split()[-1])
        return rgb
    if img.mode != "RGB":
        return img.convert("RGB")
    return img

def decode(data: bytes) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise UnsupportedFormat(FAILED) from e
    if img.format not in ACCEPTED_FORMATS:
        raise UnsupportedFormat(FAILED)
    return img

def normalize_image(data: bytes, filename: str, upload_dir: str) -> str:
    """이미지를 저장하고 서버 상대 경로(/uploads/<name>)를 돌려준다."""
    img = decode(data)
    # 팔레트(P)/1비트 이미지는 LANCZOS 대신 NEAREST로 떨어짐 → RGB 변환 후 축소
    out = fit_width(to_rgb(img))
    name = output_filename(filename)

    try:
        os.makedirs(upload_dir, exist_ok=True)
        # 임시 파일에 쓰고 rename → 실패 시 최종 이름으로 깨진 파일이 남지 않음
        fd, tmp_path = tempfile.mkstemp(dir=upload_dir, suffix=".part")
        try:
            with os.fdopen(fd, "wb") as f:
                out.save(f, format="JPEG", quality=JPEG_QUALITY)
            os.replace(tmp_path, os.path.join(upload_dir, name))
        except BaseException:
            try:
                os.remove(tmp_path)
            except OSError:
                pass
            raise
    except (OSError, ValueError) as e:
        log.exception("image write failed (%s)", filename)
        raise ProcessingError(FAILED) from e

    log.info("image stored %s (%dx%d -> %dx%d)", name, img.width, img.height, out.width, out.height)
    return f"{UPLOAD_URL_PREFIX}/{name}"
