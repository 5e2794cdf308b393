# recipe_api/main.py
# FastAPI 앱 초기화, 라우터/정적 파일/에러 핸들러 설정

from __future__ import annotations

import logging
import os
from asyncio import sleep
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from recipe_api.api.routes_recipes import router as recipes_router
from recipe_api.core.config import settings
from recipe_api.core.errors import RecipeError
from recipe_api.db.indexes import ensure_indexes
from recipe_api.db.init import close_db, init_db
from recipe_api.services.cache import RecipeCache
from recipe_api.services.recipe_store import RecipeStore

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # 1) DB 먼저 붙는다 (1초 간격 재시도)
    db = None
    for i in range(settings.DB_CONNECT_RETRIES):
        try:
            db = await init_db()
            log.info("db ready (%s/%s)", settings.MONGO_URI, settings.MONGO_DB)
            break
        except Exception as e:
            log.warning("db init retry %d: %s", i + 1, e)
            await sleep(1.0)
    if db is None:
        raise RuntimeError("db init failed after retries")

    recipes = db[settings.MONGO_COLLECTION]

    # 2) 인덱스 보장 (실패해도 서비스는 뜬다, 검색만 느려짐)
    try:
        await ensure_indexes(recipes)
        log.info("indexes ensured")
    except Exception as e:
        log.error("ensure_indexes failed: %s", e)

    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)

    # 3) store/cache는 프로세스당 하나
    store = RecipeStore(recipes, timeout=settings.DB_TIMEOUT_SEC)
    app.state.recipe_store = store
    app.state.recipe_cache = RecipeCache(store)
    try:
        yield
    finally:
        app.state.recipe_cache.clear()
        await close_db()

app = FastAPI(title="Recipe API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(RecipeError)
async def recipe_error_handler(request: Request, exc: RecipeError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc.message,
                  exc_info=exc)
    else:
        log.info("%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # FastAPI 기본 422 대신 400 + 단일 메시지
    log.info("%s %s -> 400: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"error": "Invalid request payload"})

@app.get("/")
async def root():
    return {"message": "Welcome to the Recipe API! Use /recipes to access the data."}

@app.get("/health")
async def health(request: Request):
    ok = {"status": "ok", "db": "skip"}
    store = getattr(request.app.state, "recipe_store", None)
    if store is not None:
        try:
            await store.ping()
            ok["db"] = "ok"
        except RecipeError as e:
            ok["db"] = f"error: {e.message}"
    return ok

app.include_router(recipes_router)

# 업로드 이미지 정적 서빙 (없는 파일은 404)
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")
