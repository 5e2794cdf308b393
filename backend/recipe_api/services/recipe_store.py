# recipe_api/services/recipe_store.py
# 레시피 도메인 연산 → Mongo 쿼리/집계 파이프라인
# - avg_rating은 저장하지 않고 매 조회마다 $avg로 계산
# - 모든 DB 호출은 timeout 초 안에 끝나야 함 (초과/드라이버 에러 → PersistenceError, 재시도 없음)

from __future__ import annotations
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Dict, List, TypeVar

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import PyMongoError

from recipe_api.core.errors import NotFoundError, PersistenceError, ValidationError
from recipe_api.db.models.recipe import to_recipe_dict
from recipe_api.services.utils import dedupe

log = logging.getLogger(__name__)

T = TypeVar("T")

MIN_RATING, MAX_RATING = 1, 5
TOP_LIMIT = 5

# 모든 읽기 경로 공통 단계
ADD_AVG_RATING = {"$addFields": {"avg_rating": {"$avg": "$ratings"}}}

def parse_object_id(recipe_id: str) -> ObjectId:
    # 24자리 hex만 허용. 형식 오류는 404가 아니라 400
    if not isinstance(recipe_id, str) or not ObjectId.is_valid(recipe_id):
        raise ValidationError("Invalid ID format")
    return ObjectId(recipe_id)

def canonical_id(recipe_id: str) -> str:
    # 대문자 hex도 유효 → 캐시 키는 소문자 표기로 통일
    return str(parse_object_id(recipe_id))

def validate_rating(rating: Any) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError("Rating must be an integer")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
    return rating


class RecipeStore:
    def __init__(self, collection: AsyncIOMotorCollection, timeout: float = 5.0):
        self.col = collection
        self.timeout = timeout

    async def _run(self, op: Awaitable[T], failure: str) -> T:
        try:
            return await asyncio.wait_for(op, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            log.error("%s: timed out after %.1fs", failure, self.timeout)
            raise PersistenceError(failure) from e
        except PyMongoError as e:
            log.error("%s: %s", failure, e)
            raise PersistenceError(failure) from e

    async def _aggregate(self, pipeline: List[Dict[str, Any]], failure: str) -> List[Dict[str, Any]]:
        async def run() -> List[Dict[str, Any]]:
            cursor = self.col.aggregate(pipeline)
            return await cursor.to_list(length=None)

        docs = await self._run(run(), failure)
        return [to_recipe_dict(d) for d in docs or []]

    async def insert(
        self,
        title: str,
        description: str,
        ingredients: List[str],
        image_path: str,
    ) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "title": title,
            "description": description,
            "ingredients": list(ingredients),
            "image_path": image_path,
            "ratings": [],
            "created_at": datetime.now(timezone.utc),
        }
        result = await self._run(self.col.insert_one(doc), "Failed to save recipe")
        doc["_id"] = result.inserted_id
        return to_recipe_dict(doc)

    async def list_all(self) -> List[Dict[str, Any]]:
        pipeline = [
            ADD_AVG_RATING,
            {"$sort": {"created_at": 1, "_id": 1}},
        ]
        return await self._aggregate(pipeline, "Failed to fetch recipes")

    async def find_by_id(self, recipe_id: str) -> Dict[str, Any]:
        oid = parse_object_id(recipe_id)
        pipeline = [
            {"$match": {"_id": oid}},
            ADD_AVG_RATING,
        ]
        docs = await self._aggregate(pipeline, "Database error")
        if not docs:
            raise NotFoundError("Recipe not found")
        return docs[0]

    async def search_by_ingredients(self, ingredients: List[str]) -> List[Dict[str, Any]]:
        terms = dedupe([s for s in ingredients or [] if s])
        if not terms:
            raise ValidationError("Missing ingredients parameter")
        # $all: 순서 무관, 추가 재료 허용 (superset 매칭)
        pipeline = [
            {"$match": {"ingredients": {"$all": terms}}},
            ADD_AVG_RATING,
            {"$sort": {"created_at": 1, "_id": 1}},
        ]
        return await self._aggregate(pipeline, "Search failed")

    async def append_rating(self, recipe_id: str, rating: int) -> None:
        oid = parse_object_id(recipe_id)
        rating = validate_rating(rating)
        result = await self._run(
            self.col.update_one({"_id": oid}, {"$push": {"ratings": rating}}),
            "Failed to add rating",
        )
        if result.matched_count == 0:
            raise NotFoundError("Recipe not found")

    async def top_rated(self, limit: int = TOP_LIMIT) -> List[Dict[str, Any]]:
        if limit < 1:
            raise ValidationError("limit must be >= 1")
        # 평점 없는 레시피는 avg_rating=null → Mongo 정렬에서 모든 숫자보다 작음 → 항상 맨 뒤
        # 동점은 최신 레시피 우선
        pipeline = [
            ADD_AVG_RATING,
            {"$sort": {"avg_rating": -1, "created_at": -1, "_id": -1}},
            {"$limit": limit},
        ]
        return await self._aggregate(pipeline, "Aggregation failed")

    async def ping(self) -> None:
        await self._run(self.col.database.command("ping"), "Database ping failed")
