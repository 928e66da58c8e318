# fridgenote/api/routes_recipes.py
# 레시피 목록(식약처) / 내 재료 매칭 목록 / 매칭 계산 / 상세

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, Request

from fridgenote.core.deps import (
    enforce_rate_limit,
    get_database,
    get_device_id,
    get_mfds_client,
    get_optional_database,
    mfds_client_for,
)
from fridgenote.core.errors import FridgeNoteError, NotFoundError, StorageUnavailable
from fridgenote.core.validation import normalize_recipe_category, parse_page, parse_size, sanitize_query
from fridgenote.db.indexes import PANTRY, RECIPES
from fridgenote.models.schemas import (
    RecipeDetail,
    RecipeListResponse,
    RecipeMatchRequest,
    RecipeMatchResult,
    RecipeRecord,
    RecipeWithMatch,
    RecipeWithMatchListResponse,
)
from fridgenote.services.matching import calculate_recipe_match
from fridgenote.services.mfds import SUCCESS_CODE, MfdsClient, RecipeChunk
from fridgenote.services.recipes import is_storage_id, row_to_detail, row_to_recipe, stored_to_detail

log = logging.getLogger(__name__)

router = APIRouter(prefix="/recipes", tags=["recipes"], dependencies=[Depends(enforce_rate_limit)])

MAX_PANTRY_NAMES = 500
LISTING_ERROR = "레시피 정보를 가져오는 중 오류가 발생했습니다."


async def _fetch_listing(
    client: MfdsClient, page: int, size: int, q: Optional[str], category: Optional[str]
) -> Tuple[RecipeChunk, Dict[str, Any]]:
    start = (page - 1) * size + 1
    end = start + size - 1
    try:
        chunk = await client.fetch_page(start, end, {"RCP_NM": q, "RCP_PAT2": category})
    except FridgeNoteError:
        raise
    except Exception as e:
        log.exception("MFDS API 요청 실패")
        raise FridgeNoteError(LISTING_ERROR) from e

    # 서비스 섹션이 없으면 빈 목록 + 업스트림 코드 그대로 (에러 아님)
    if not chunk.has_service:
        meta = {
            "totalCount": 0,
            "page": page,
            "size": size,
            "code": chunk.code or "NO_DATA",
            "message": chunk.message or "응답에 COOKRCP01 데이터가 없습니다.",
        }
        return chunk, meta

    meta = {
        "totalCount": chunk.total_count or len(chunk.rows),
        "page": page,
        "size": size,
        "code": chunk.code or SUCCESS_CODE,
        "message": chunk.message or "정상 처리되었습니다.",
    }
    return chunk, meta


@router.get("", response_model=RecipeListResponse)
async def list_recipes(
    page: Optional[str] = None,
    size: Optional[str] = None,
    q: Optional[str] = None,
    category: Optional[str] = None,
    client: MfdsClient = Depends(get_mfds_client),
):
    chunk, meta = await _fetch_listing(
        client, parse_page(page), parse_size(size), sanitize_query(q), normalize_recipe_category(category)
    )
    return RecipeListResponse(recipes=[RecipeRecord(**row_to_recipe(r)) for r in chunk.rows], **meta)


async def _pantry_names(db, device_id: str) -> List[str]:
    cursor = db[PANTRY].find({"device_id": device_id}, {"name": 1, "_id": 0})
    docs = await cursor.to_list(length=MAX_PANTRY_NAMES)
    return [d["name"] for d in docs if isinstance(d.get("name"), str)]


@router.get("/matched", response_model=RecipeWithMatchListResponse)
async def list_recipes_with_match(
    page: Optional[str] = None,
    size: Optional[str] = None,
    q: Optional[str] = None,
    category: Optional[str] = None,
    client: MfdsClient = Depends(get_mfds_client),
    device_id: str = Depends(get_device_id),
    db=Depends(get_database),
):
    """목록 + 내 재료 기준 매칭률. 정렬은 업스트림 순서 그대로 (화면에서 정렬)."""
    chunk, meta = await _fetch_listing(
        client, parse_page(page), parse_size(size), sanitize_query(q), normalize_recipe_category(category)
    )
    pantry = await _pantry_names(db, device_id)

    recipes = []
    for row in chunk.rows:
        record = row_to_recipe(row)
        match = RecipeMatchResult.from_match(calculate_recipe_match(pantry, record["ingredients"]))
        recipes.append(RecipeWithMatch(**record, **match.model_dump()))
    return RecipeWithMatchListResponse(recipes=recipes, pantryCount=len(pantry), **meta)


@router.post("/match", response_model=RecipeMatchResult)
async def match_recipe(body: RecipeMatchRequest):
    return RecipeMatchResult.from_match(calculate_recipe_match(body.pantry, body.ingredients))


@router.get("/{recipe_id}", response_model=RecipeDetail)
async def recipe_detail(recipe_id: str, request: Request, db=Depends(get_optional_database)):
    recipe_id = recipe_id.strip()
    if not recipe_id:
        raise NotFoundError("레시피를 찾을 수 없습니다.")

    # UUID면 저장소(시드된 레시피), 아니면 식약처 RCP_SEQ
    if is_storage_id(recipe_id):
        if db is None:
            raise StorageUnavailable()
        doc = await db[RECIPES].find_one({"id": recipe_id}, {"_id": 0})
        if not doc:
            raise NotFoundError("레시피를 찾을 수 없습니다.")
        return RecipeDetail(**stored_to_detail(doc))

    row = await mfds_client_for(request.app).get_recipe(recipe_id)
    if row is None:
        raise NotFoundError("레시피를 찾을 수 없습니다.")
    return RecipeDetail(**row_to_detail(row, recipe_id))
