# fridgenote/services/catalog.py
# 식약처 레시피를 일정 범위만 훑어서 재료 추천 카탈로그(전체 + 카테고리별)를 만든다
# - 200건씩 순서대로 가져온다 (다음 페이지는 앞 페이지 반영 후에만)
# - 최대 1200건, 업스트림 total_count가 더 작으면 거기까지만
# - 빈 페이지/덜 찬 페이지면 종료
# - 실패는 그대로 전파 (부분 카탈로그 없음, 폴백은 캐시 쪽 책임)

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Protocol, Set, Tuple

from fridgenote.core.config import settings
from fridgenote.models.categories import CATEGORIES, IngredientCategory
from fridgenote.services.classifier import classify_ingredient
from fridgenote.services.matching import extract_recipe_ingredients
from fridgenote.services.mfds import RecipeChunk

log = logging.getLogger(__name__)

INGREDIENT_FIELD = "RCP_PARTS_DTLS"
MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 24


class ChunkSource(Protocol):
    async def fetch_recipe_chunk(self, start: int, end: int) -> RecipeChunk: ...


def sort_ko(names: Iterable[str]) -> Tuple[str, ...]:
    # 완성형 한글은 코드포인트 순서가 가나다 순서와 같다
    return tuple(sorted(names))


@dataclass(frozen=True)
class IngredientCatalog:
    built_at: datetime
    scanned_recipe_count: int
    all_names: Tuple[str, ...]
    by_category: Mapping[IngredientCategory, Tuple[str, ...]] = field(default_factory=dict)

    def names(self, category: Optional[IngredientCategory] = None) -> Tuple[str, ...]:
        if category is None:
            return self.all_names
        return self.by_category.get(category, ())

    def age_seconds(self, now: Optional[datetime] = None) -> float:
        now = now or datetime.now(timezone.utc)
        return (now - self.built_at).total_seconds()


class CatalogAccumulator:
    """행 단위로 재료를 모아 두었다가 스냅샷으로 굳힌다."""

    def __init__(self):
        self.all: Set[str] = set()
        self.by_category: Dict[IngredientCategory, Set[str]] = {c: set() for c in CATEGORIES}
        self.scanned = 0

    def add_row(self, row: Mapping) -> None:
        for name in extract_recipe_ingredients(row.get(INGREDIENT_FIELD) or ""):
            # 너무 짧으면 잡음, 너무 길면 문장이 잘못 쪼개진 것
            if not (MIN_NAME_LENGTH <= len(name) <= MAX_NAME_LENGTH):
                continue
            self.all.add(name)
            self.by_category[classify_ingredient(name)].add(name)

    def add_rows(self, rows: Iterable[Mapping]) -> None:
        n = 0
        for row in rows:
            self.add_row(row)
            n += 1
        self.scanned += n

    def freeze(self) -> IngredientCatalog:
        return IngredientCatalog(
            built_at=datetime.now(timezone.utc),
            scanned_recipe_count=self.scanned,
            all_names=sort_ko(self.all),
            by_category=MappingProxyType({c: sort_ko(self.by_category[c]) for c in CATEGORIES}),
        )


async def build_catalog(
    source: ChunkSource,
    *,
    chunk_size: int = settings.CATALOG_CHUNK_SIZE,
    max_scan: int = settings.CATALOG_MAX_SCAN,
) -> IngredientCatalog:
    started = time.monotonic()
    acc = CatalogAccumulator()
    target = max_scan
    start = 1

    while acc.scanned < target:
        end = start + chunk_size - 1
        chunk = await source.fetch_recipe_chunk(start, end)

        if chunk.total_count is not None:
            target = min(max_scan, chunk.total_count)

        if not chunk.rows:
            break

        acc.add_rows(chunk.rows)

        if len(chunk.rows) < chunk_size:
            break
        start += chunk_size

    catalog = acc.freeze()
    log.info(
        "ingredient catalog built: recipes=%d names=%d elapsed=%.2fs",
        catalog.scanned_recipe_count, len(catalog.all_names), time.monotonic() - started,
    )
    return catalog
