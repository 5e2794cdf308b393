# recipe_api/services/cache.py
# 레시피 단건 조회용 read-through 캐시
# - miss → store.find_by_id → 성공 시 저장 (NotFound 등 에러는 캐시하지 않음)
# - 평점 추가 성공 후 invalidate(id)
# - TTL/용량 제한 없음. 무효화로만 제거된다

from __future__ import annotations
import copy
import logging
from typing import Any, Dict

from recipe_api.services.recipe_store import RecipeStore, canonical_id

log = logging.getLogger(__name__)


class RecipeCache:
    """
    앱 전체에서 하나만 만든다 (lifespan에서 생성 → app.state.recipe_cache).

    dict 변경은 이벤트 루프 위에서 await 사이에만 일어나므로 별도 락이 없다.
    키별 세대(generation) 카운터: miss 조회 도중 invalidate가 끼어들면
    그 조회 결과는 저장하지 않는다 (오래된 평균이 다시 캐시되는 것 방지).
    """

    def __init__(self, store: RecipeStore):
        self._store = store
        self._entries: Dict[str, Dict[str, Any]] = {}
        self._generations: Dict[str, int] = {}

    async def get(self, recipe_id: str) -> Dict[str, Any]:
        # 형식 오류는 여기서 ValidationError
        recipe_id = canonical_id(recipe_id)
        cached = self._entries.get(recipe_id)
        if cached is not None:
            log.debug("cache hit %s", recipe_id)
            return copy.deepcopy(cached)

        log.debug("cache miss %s", recipe_id)
        generation = self._generations.get(recipe_id, 0)
        doc = await self._store.find_by_id(recipe_id)
        if self._generations.get(recipe_id, 0) == generation:
            self._entries[recipe_id] = doc
        return copy.deepcopy(doc)

    def invalidate(self, recipe_id: str) -> None:
        recipe_id = canonical_id(recipe_id)
        self._entries.pop(recipe_id, None)
        self._generations[recipe_id] = self._generations.get(recipe_id, 0) + 1
        log.debug("cache invalidated %s", recipe_id)

    def clear(self) -> None:
        self._entries.clear()
        self._generations.clear()

    def __contains__(self, recipe_id: object) -> bool:
        return recipe_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
