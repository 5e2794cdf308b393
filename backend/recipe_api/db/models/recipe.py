# recipe_api/db/models/recipe.py
# 레시피 응답/입력 스키마
# - avg_rating은 저장하지 않는다. 읽을 때마다 집계로 계산된 값만 담는다
from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional
from datetime import datetime

from pydantic import BaseModel, Field, StrictInt

class RecipeOut(BaseModel):
    id: str
    title: str
    description: str
    ingredients: List[str] = Field(default_factory=list)
    image_path: str = ""
    ratings: List[int] = Field(default_factory=list)
    avg_rating: Optional[float] = None  # 평점 없으면 null (0 아님)
    created_at: Optional[datetime] = None

class RatingIn(BaseModel):
    # "4", 4.0, true 같은 값은 거부
    rating: StrictInt

class MessageOut(BaseModel):
    message: str

def to_recipe_dict(doc: Mapping[str, Any]) -> Dict[str, Any]:
    """Mongo 문서(_id: ObjectId) → API 응답용 dict (id: str, avg_rating 항상 포함)"""
    return {
        "id": str(doc["_id"]),
        "title": doc.get("title", ""),
        "description": doc.get("description", ""),
        "ingredients": list(doc.get("ingredients") or []),
        "image_path": doc.get("image_path", ""),
        "ratings": list(doc.get("ratings") or []),
        "avg_rating": doc.get("avg_rating"),
        "created_at": doc.get("created_at"),
    }
