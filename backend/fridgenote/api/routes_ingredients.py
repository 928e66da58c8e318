# fridgenote/api/routes_ingredients.py
# 재료 추천(자동완성) / 재료명 분류

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from fridgenote.core.deps import enforce_rate_limit, get_catalog_cache, get_mfds_client
from fridgenote.core.errors import FridgeNoteError
from fridgenote.core.validation import normalize_search, parse_cursor, parse_limit
from fridgenote.models.categories import parse_category
from fridgenote.models.schemas import ClassifyResponse, SuggestionsResponse
from fridgenote.services.catalog_cache import CatalogCache
from fridgenote.services.classifier import classify_normalized, normalize_for_category

log = logging.getLogger(__name__)

router = APIRouter(prefix="/ingredients", tags=["ingredients"], dependencies=[Depends(enforce_rate_limit)])


# 키 확인은 캐시 상태와 상관없이 먼저 (키 없이 캐시만 서빙하지 않음)
@router.get("/suggestions", response_model=SuggestionsResponse, dependencies=[Depends(get_mfds_client)])
async def ingredient_suggestions(
    category: Optional[str] = None,
    cursor: Optional[str] = None,
    limit: Optional[str] = None,
    q: Optional[str] = None,
    cache: CatalogCache = Depends(get_catalog_cache),
):
    cat = parse_category(category)
    start = parse_cursor(cursor)
    size = parse_limit(limit)
    keyword = normalize_search(q)

    try:
        catalog = await cache.get()
    except FridgeNoteError:
        raise
    except Exception as e:
        log.exception("재료 추천 API 오류")
        raise FridgeNoteError("재료 추천 목록을 불러오는 중 오류가 발생했습니다.") from e

    names = catalog.names(cat)
    if keyword:
        names = [n for n in names if keyword in n.lower()]

    items = list(names[start:start + size])
    next_cursor = start + size if start + size < len(names) else None
    return SuggestionsResponse(
        items=items,
        total=len(names),
        nextCursor=next_cursor,
        builtAt=catalog.built_at,
    )


@router.get("/classify", response_model=ClassifyResponse)
async def classify(name: str = Query(..., min_length=1, max_length=60)):
    normalized = normalize_for_category(name)
    return ClassifyResponse(name=name.strip(), normalized=normalized, category=classify_normalized(normalized))
