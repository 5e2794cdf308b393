# recipe_api/core/deps.py
# 공용 의존성: lifespan에서 app.state에 올려둔 store/cache를 꺼낸다
from fastapi import Request

from recipe_api.services.cache import RecipeCache
from recipe_api.services.recipe_store import RecipeStore

def get_recipe_store(request: Request) -> RecipeStore:
    return request.app.state.recipe_store

def get_recipe_cache(request: Request) -> RecipeCache:
    return request.app.state.recipe_cache
