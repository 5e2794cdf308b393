import asyncio
import copy
import io
from types import SimpleNamespace

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from PIL import Image

from recipe_api.main import app
from recipe_api.services.cache import RecipeCache
from recipe_api.services.recipe_store import RecipeStore


def _avg(values):
    nums = [v for v in values or [] if isinstance(v, (int, float))]
    return sum(nums) / len(nums) if nums else None


def _matches(doc, query):
    for field, cond in query.items():
        value = doc.get(field)
        if isinstance(cond, dict) and "$all" in cond:
            if not isinstance(value, list) or not all(t in value for t in cond["$all"]):
                return False
        elif value != cond:
            return False
    return True


def _sort(docs, order):
    # null은 모든 값보다 작게 (Mongo 정렬 규칙)
    for field, direction in reversed(list(order.items())):
        docs = sorted(
            docs,
            key=lambda d: (0, 0) if d.get(field) is None else (1, d.get(field)),
            reverse=direction == -1,
        )
    return docs


class FakeCursor:
    def __init__(self, docs, delay=0.0):
        self._docs = docs
        self._delay = delay

    async def to_list(self, length=None):
        if self._delay:
            await asyncio.sleep(self._delay)
        return self._docs if length is None else self._docs[:length]


class FakeCollection:
    """Motor 컬렉션 대역: store가 쓰는 파이프라인 단계만 해석한다."""

    def __init__(self):
        self.docs = []
        self.pipelines = []
        self.updates = []
        self.indexes = []
        self.fail_with = None
        self.delay = 0.0
        self.database = SimpleNamespace(command=self._command)

    def _check(self):
        if self.fail_with is not None:
            raise self.fail_with

    async def _command(self, name):
        self._check()
        return {"ok": 1.0}

    async def create_index(self, keys, **kwargs):
        self.indexes.append((keys, kwargs))
        return kwargs.get("name")

    async def insert_one(self, doc):
        self._check()
        doc.setdefault("_id", ObjectId())
        self.docs.append(copy.deepcopy(doc))
        return SimpleNamespace(inserted_id=doc["_id"])

    async def update_one(self, query, update):
        self._check()
        self.updates.append((query, update))
        for doc in self.docs:
            if _matches(doc, query):
                for field, value in update.get("$push", {}).items():
                    doc.setdefault(field, []).append(value)
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    def aggregate(self, pipeline):
        self._check()
        self.pipelines.append(pipeline)
        docs = [copy.deepcopy(d) for d in self.docs]
        for stage in pipeline:
            if "$match" in stage:
                docs = [d for d in docs if _matches(d, stage["$match"])]
            elif "$addFields" in stage:
                for d in docs:
                    for field, expr in stage["$addFields"].items():
                        d[field] = _avg(d.get(expr["$avg"].lstrip("$")))
            elif "$sort" in stage:
                docs = _sort(docs, stage["$sort"])
            elif "$limit" in stage:
                docs = docs[: stage["$limit"]]
            else:
                raise NotImplementedError(stage)
        return FakeCursor(docs, delay=self.delay)


def make_image_bytes(size, fmt="PNG", mode="RGB"):
    buf = io.BytesIO()
    Image.new(mode, size).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def collection():
    return FakeCollection()


@pytest.fixture
def store(collection):
    return RecipeStore(collection, timeout=1.0)


@pytest.fixture
def cache(store):
    return RecipeCache(store)


@pytest.fixture
def client(store, cache, tmp_path, monkeypatch):
    # uploads/ 는 cwd 기준 상대 경로 → tmp로 이동
    monkeypatch.chdir(tmp_path)
    (tmp_path / "uploads").mkdir()
    app.state.recipe_store = store
    app.state.recipe_cache = cache
    yield TestClient(app)
    del app.state.recipe_store
    del app.state.recipe_cache
