# fridgenote/services/catalog_cache.py
# 재료 카탈로그 캐시 (프로세스당 1개, app.state에 두고 의존성으로 주입)
# - 비어 있음: 빌드 시작 후 완료까지 대기 (실패는 호출자에게 전파)
# - 신선(TTL 이내): 즉시 반환
# - 만료: 기존 스냅샷 즉시 반환 + 백그라운드 갱신 1회 (stale-while-revalidate)
# - 동시에 여러 요청이 와도 빌드는 하나만 (같은 Task를 공유)
# - 갱신 실패 시 기존 스냅샷 유지, 로그만 남김

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from fridgenote.core.config import settings
from fridgenote.services.catalog import IngredientCatalog

log = logging.getLogger(__name__)

CatalogBuilder = Callable[[], Awaitable[IngredientCatalog]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CatalogCache:
    def __init__(
        self,
        build: CatalogBuilder,
        ttl_seconds: float = settings.CATALOG_TTL_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._build = build
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._snapshot: Optional[IngredientCatalog] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def snapshot(self) -> Optional[IngredientCatalog]:
        return self._snapshot

    @property
    def building(self) -> bool:
        return self._task is not None

    @property
    def state(self) -> str:
        if self._snapshot is None:
            return "building" if self.building else "empty"
        if self.is_fresh():
            return "fresh"
        return "stale+refreshing" if self.building else "stale"

    def is_fresh(self, snapshot: Optional[IngredientCatalog] = None) -> bool:
        snap = snapshot or self._snapshot
        if snap is None:
            return False
        return snap.age_seconds(self._clock()) < self.ttl_seconds

    def _ensure_task(self) -> asyncio.Task:
        # 확인→생성 사이에 await가 없으므로 이벤트 루프 안에서는 원자적
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name="ingredient-catalog-build")
        return self._task

    async def _run(self) -> IngredientCatalog:
        try:
            catalog = await self._build()
            self._snapshot = catalog
            return catalog
        except Exception:
            if self._snapshot is not None:
                log.exception("재료 추천 카탈로그 갱신 실패 - 기존 캐시 유지")
                return self._snapshot
            raise
        finally:
            self._task = None

    async def get(self) -> IngredientCatalog:
        snap = self._snapshot
        if snap is not None:
            if not self.is_fresh(snap):
                self._ensure_task()
            return snap
        # 요청이 취소돼도 공유 빌드는 끝까지 돈다
        return await asyncio.shield(self._ensure_task())

    async def refresh(self) -> IngredientCatalog:
        """TTL과 상관없이 갱신 (진행 중이면 그 결과를 기다림)."""
        return await asyncio.shield(self._ensure_task())

    async def aclose(self) -> None:
        task = self._task
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
