# recipe_api/api/routes_recipes.py
# 레시피 생성/목록/검색/단건/평점/랭킹
# 주의: /top, /search 는 /{recipe_id} 보다 먼저 등록해야 함

from __future__ import annotations
from typing import List, Optional
import os
import logging

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from starlette.concurrency import run_in_threadpool

from recipe_api.core.config import settings
from recipe_api.core.deps import get_recipe_cache, get_recipe_store
from recipe_api.core.errors import ValidationError
from recipe_api.db.models.recipe import MessageOut, RatingIn, RecipeOut
from recipe_api.services.cache import RecipeCache
from recipe_api.services.images import normalize_image
from recipe_api.services.recipe_store import TOP_LIMIT, RecipeStore
from recipe_api.services.utils import clean_field, split_csv, split_ingredients

log = logging.getLogger(__name__)

router = APIRouter(prefix="/recipes", tags=["recipes"])

ALLOWED_IMAGE_EXTS = {".jpg", ".jpeg", ".png"}

def _size_label(n: int) -> str:
    # 2097152 → "2MB", 524288 → "512KB", 1000 → "1000 bytes"
    if n >= 1024 * 1024 and n % (1024 * 1024) == 0:
        return f"{n // (1024 * 1024)}MB"
    if n >= 1024 and n % 1024 == 0:
        return f"{n // 1024}KB"
    return f"{n} bytes"

async def _read_image(image: Optional[UploadFile]) -> bytes:
    if image is None or not image.filename:
        raise ValidationError("Image file is required")

    ext = os.path.splitext(image.filename)[1].lower()
    if ext not in ALLOWED_IMAGE_EXTS:
        raise ValidationError("Only jpg/png allowed")

    limit = settings.MAX_UPLOAD_BYTES
    data = await image.read(limit + 1)
    if len(data) > limit:
        raise ValidationError(f"File size exceeds {_size_label(limit)}")
    if not data:
        raise ValidationError("Image file is empty")
    return data

@router.post("", status_code=201, response_model=RecipeOut)
async def create_recipe(
    title: str = Form(""),
    description: str = Form(""),
    ingredients: str = Form(""),
    image: Optional[UploadFile] = File(None),
    store: RecipeStore = Depends(get_recipe_store),
):
    title = clean_field(title)
    description = clean_field(description)
    ings = split_ingredients(ingredients)
    if not title or not description or not ings:
        raise ValidationError("Missing required fields")

    data = await _read_image(image)

    # Pillow 작업은 동기 → 스레드풀에서 (다른 요청 블로킹 방지)
    image_path = await run_in_threadpool(normalize_image, data, image.filename, settings.UPLOAD_DIR)

    # insert 실패 시 이미지 파일은 남는다 (정리하지 않음)
    recipe = await store.insert(title, description, ings, image_path)
    log.info("recipe created id=%s image=%s", recipe["id"], image_path)
    return recipe

@router.get("", response_model=List[RecipeOut])
async def list_recipes(store: RecipeStore = Depends(get_recipe_store)):
    return await store.list_all()

@router.get("/top", response_model=List[RecipeOut])
async def top_recipes(store: RecipeStore = Depends(get_recipe_store)):
    return await store.top_rated(TOP_LIMIT)

@router.get("/search", response_model=List[RecipeOut])
async def search_recipes(
    ingredients: Optional[str] = Query(None, description="쉼표 구분 재료 (예: egg,flour)"),
    store: RecipeStore = Depends(get_recipe_store),
):
    terms = split_csv(ingredients or "")
    if not terms:
        raise ValidationError("Missing ingredients parameter")
    return await store.search_by_ingredients(terms)

@router.get("/{recipe_id}", response_model=RecipeOut)
async def get_recipe(recipe_id: str, cache: RecipeCache = Depends(get_recipe_cache)):
    return await cache.get(recipe_id)

@router.post("/{recipe_id}/rate", response_model=MessageOut)
async def rate_recipe(
    recipe_id: str,
    payload: RatingIn,
    store: RecipeStore = Depends(get_recipe_store),
    cache: RecipeCache = Depends(get_recipe_cache),
):
    await store.append_rating(recipe_id, payload.rating)
    # DB 반영(매칭 확인) 이후에만 무효화
    cache.invalidate(recipe_id)
    log.info("recipe rated id=%s rating=%d", recipe_id, payload.rating)
    return {"message": "Rating added successfully"}
