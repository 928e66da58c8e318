# fridgenote/main.py
# FastAPI 앱 초기화 및 라우터 설정
# 라우터는 각 기능별로 분리하여 관리, 공유 서비스 객체는 app.state에 한 번만 만든다

from __future__ import annotations

import logging
from asyncio import sleep

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fridgenote.api.routes_community import router as community_router
from fridgenote.api.routes_favorites import router as favorites_router
from fridgenote.api.routes_ingredients import router as ingredients_router
from fridgenote.api.routes_pantry import router as pantry_router
from fridgenote.api.routes_products import router as products_router
from fridgenote.api.routes_recipes import router as recipes_router
from fridgenote.core.config import settings
from fridgenote.core.deps import get_catalog_cache, get_optional_database, mfds_client_for
from fridgenote.core.errors import register_exception_handlers
from fridgenote.core.ratelimit import RateLimiter
from fridgenote.db.indexes import ensure_indexes
from fridgenote.db.init import close_db, init_db
from fridgenote.models.schemas import HealthResponse
from fridgenote.services.catalog import IngredientCatalog, build_catalog
from fridgenote.services.catalog_cache import CatalogCache
from fridgenote.services.products import ProductLookup

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
# httpx는 요청 URL(키 포함)을 INFO로 남기므로 끈다
logging.getLogger("httpx").setLevel(logging.WARNING)
log = logging.getLogger(__name__)

DB_INIT_ATTEMPTS = 20
DB_INIT_DELAY_SECONDS = 1.0

app = FastAPI(title="FridgeNote - API", version="0.1.0")
register_exception_handlers(app)

# CORS: 프론트(웹/앱 웹뷰) 허용 + 쿠키 전달
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def _build_ingredient_catalog() -> IngredientCatalog:
    # 키 확인은 빌드 시점에 (임포트 시점엔 키 없어도 앱이 뜬다)
    return await build_catalog(mfds_client_for(app))


app.state.mfds_client = None
app.state.catalog_cache = CatalogCache(_build_ingredient_catalog)
app.state.rate_limiter = RateLimiter(settings.RATE_LIMIT_WINDOW_SECONDS, settings.rate_limit_max_requests)
app.state.product_lookup = ProductLookup()


# 앱 시작/종료 이벤트 핸들러
@app.on_event("startup")
async def on_startup() -> None:
    # 1) DB 먼저 붙는다 (최대 20회, 1초 간격). 실패해도 DB 없는 API는 동작
    db = None
    for i in range(DB_INIT_ATTEMPTS):
        try:
            db = await init_db()
            log.info("db ready")
            break
        except Exception as e:
            log.warning("db init retry %d: %s", i + 1, e)
            await sleep(DB_INIT_DELAY_SECONDS)
    if db is None:
        log.error("db init failed after retries")
        return

    # 2) 인덱스 보장
    try:
        await ensure_indexes(db)
        log.info("indexes ensured")
    except Exception:
        log.exception("ensure_indexes failed")


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await app.state.catalog_cache.aclose()
    if app.state.mfds_client is not None:
        await app.state.mfds_client.aclose()
        app.state.mfds_client = None
    await app.state.product_lookup.aclose()
    # 몽고db 커넥션 정리
    await close_db()


@app.get("/")
async def root():
    return {"status": "ok"}


@app.get("/health", response_model=HealthResponse)
async def health(db=Depends(get_optional_database), cache: CatalogCache = Depends(get_catalog_cache)):
    ok = {"status": "ok", "db": "skip", "catalog": cache.state}
    if db is not None:
        try:
            await db.command("ping")
            ok["db"] = "ok"
        except Exception as e:
            log.warning("health db ping failed: %s", e)
            ok["db"] = f"error: {type(e).__name__}"
    return ok


# 라우터 prefix는 각 파일 내에서 정의함, 중복 prefix 금지
app.include_router(ingredients_router)
app.include_router(recipes_router)
app.include_router(products_router)
app.include_router(pantry_router)
app.include_router(favorites_router)
app.include_router(community_router)
