# recipe_api/db/indexes.py
# 컬렉션 인덱스 생성
# 앱 스타트업에서 한 번 ensure_indexes()를 await로 호출한다.

from motor.motor_asyncio import AsyncIOMotorCollection

INGREDIENTS_INDEX = "ingredients_1"

async def ensure_indexes(recipes: AsyncIOMotorCollection) -> None:
    # 재료 superset 검색($all)용 멀티키 인덱스. 이미 있으면 no-op
    await recipes.create_index([("ingredients", 1)], name=INGREDIENTS_INDEX)
