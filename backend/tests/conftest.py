import json
from datetime import datetime, timezone

import httpx
import mongomock
import pytest
from fastapi.testclient import TestClient

from fridgenote.core.deps import get_optional_database, get_rate_limiter
from fridgenote.core.ratelimit import RateLimiter
from fridgenote.core.retry import RetryPolicy
from fridgenote.main import app
from fridgenote.services.catalog import IngredientCatalog
from fridgenote.services.catalog_cache import CatalogCache
from fridgenote.services.mfds import MfdsClient
from fridgenote.services.products import ProductLookup

MFDS_BASE = "https://mfds.test/api"
OFF_BASE = "https://off.test/api/v2/product"


def mfds_payload(rows, total_count=None, code="INFO-000", msg="정상 처리되었습니다."):
    return {
        "COOKRCP01": {
            "total_count": str(total_count if total_count is not None else len(rows)),
            "row": rows,
            "RESULT": {"CODE": code, "MSG": msg},
        }
    }


SAMPLE_ROWS = [
    {
        "RCP_SEQ": "28",
        "RCP_NM": "돼지고기 김치찌개",
        "RCP_WAY2": "끓이기",
        "RCP_PAT2": "국&찌개",
        "INFO_ENG": "320",
        "ATT_FILE_NO_MAIN": "http://www.foodsafetykorea.go.kr/main.jpg",
        "ATT_FILE_NO_MK": "http://www.foodsafetykorea.go.kr/mk.jpg",
        "RCP_PARTS_DTLS": "돼지고기 300g, 대파 1대, 소금 약간",
        "HASH_TAG": "찌개",
        "MANUAL01": "1. 돼지고기를 볶는다.",
        "MANUAL_IMG01": "http://www.foodsafetykorea.go.kr/s1.jpg",
        "MANUAL02": "2. 물을 붓고 끓인다.",
        "MANUAL_IMG02": "",
    },
    {
        "RCP_SEQ": "29",
        "RCP_NM": "두부 계란찜",
        "RCP_WAY2": "찌기",
        "RCP_PAT2": "반찬",
        "INFO_ENG": "150",
        "ATT_FILE_NO_MAIN": "",
        "ATT_FILE_NO_MK": "",
        "RCP_PARTS_DTLS": "두부 1모, 계란 2개",
        "HASH_TAG": "",
    },
]


class Recorder:
    """MockTransport 핸들러: 호출 URL을 기록하고 준비된 응답을 순서대로 돌려준다."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        if isinstance(item, httpx.Response):
            return item
        return httpx.Response(200, content=json.dumps(item).encode(), headers={"content-type": "application/json"})

    @property
    def paths(self):
        return [r.url.path for r in self.requests]


async def _no_sleep(_delay):
    return None


def make_mfds_client(handler, retries: int = 2) -> MfdsClient:
    return MfdsClient(
        "test-key",
        base_url=MFDS_BASE,
        retry=RetryPolicy(max_retries=retries, base_delay=0.25, sleep=_no_sleep),
        transport=httpx.MockTransport(handler),
    )


def make_catalog(all_names=(), by_category=None, built_at=None) -> IngredientCatalog:
    return IngredientCatalog(
        built_at=built_at or datetime.now(timezone.utc),
        scanned_recipe_count=len(all_names),
        all_names=tuple(all_names),
        by_category=by_category or {},
    )


class _AsyncCursor:
    def __init__(self, cursor):
        self._cursor = cursor

    def sort(self, *args, **kwargs):
        self._cursor.sort(*args, **kwargs)
        return self

    async def to_list(self, length=None):
        docs = list(self._cursor)
        return docs if length is None else docs[:length]


class _AsyncCollection:
    """mongomock 컬렉션을 motor처럼 await 할 수 있게 감싼다."""

    def __init__(self, coll):
        self._coll = coll

    def find(self, *args, **kwargs):
        return _AsyncCursor(self._coll.find(*args, **kwargs))

    def __getattr__(self, name):
        method = getattr(self._coll, name)

        async def _call(*args, **kwargs):
            return method(*args, **kwargs)

        return _call


class AsyncMockDatabase:
    def __init__(self, db):
        self._db = db

    def __getitem__(self, name):
        return _AsyncCollection(self._db[name])


@pytest.fixture
def mongo_db():
    return AsyncMockDatabase(mongomock.MongoClient()["fridgenote_test"])


@pytest.fixture
def limiter():
    return RateLimiter(60, 1000)


@pytest.fixture
def client(mongo_db, limiter):
    saved = (app.state.mfds_client, app.state.catalog_cache, app.state.product_lookup)
    app.dependency_overrides[get_optional_database] = lambda: mongo_db
    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    # startup 이벤트(Mongo 연결)는 돌리지 않는다
    yield TestClient(app)
    app.dependency_overrides.clear()
    app.state.mfds_client, app.state.catalog_cache, app.state.product_lookup = saved


@pytest.fixture
def use_mfds():
    """app.state에 MockTransport 기반 식약처 클라이언트를 꽂는다."""

    def _use(*responses) -> Recorder:
        rec = Recorder(*responses)
        app.state.mfds_client = make_mfds_client(rec)
        return rec

    return _use


@pytest.fixture
def use_catalog():
    def _use(catalog: IngredientCatalog) -> CatalogCache:
        async def _never():
            raise AssertionError("catalog should not be rebuilt")

        cache = CatalogCache(_never, ttl_seconds=900)
        cache._snapshot = catalog
        app.state.catalog_cache = cache
        return cache

    return _use


@pytest.fixture
def use_products():
    def _use(*responses) -> Recorder:
        rec = Recorder(*responses)
        app.state.product_lookup = ProductLookup(base_url=OFF_BASE, transport=httpx.MockTransport(rec))
        return rec

    return _use
