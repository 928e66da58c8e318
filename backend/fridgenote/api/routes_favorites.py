# fridgenote/api/routes_favorites.py
# 레시피 즐겨찾기 (기기별, 최신 저장순)

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from fridgenote.core.deps import enforce_rate_limit, get_database, get_device_id
from fridgenote.db.indexes import FAVORITES
from fridgenote.models.schemas import DeleteResponse, FavoriteIn, FavoriteOut, FavoriteToggleResponse

router = APIRouter(prefix="/favorites", tags=["favorites"], dependencies=[Depends(enforce_rate_limit)])

MAX_FAVORITES = 500


def _to_out(doc) -> FavoriteOut:
    return FavoriteOut(
        id=doc["recipe_id"],
        name=doc.get("name") or "",
        category=doc.get("category") or "기타",
        thumbnailUrl=doc.get("thumbnail_url"),
        savedAt=doc["saved_at"],
    )


@router.get("", response_model=list[FavoriteOut])
async def list_favorites(device_id: str = Depends(get_device_id), db=Depends(get_database)):
    cursor = db[FAVORITES].find({"device_id": device_id}, {"_id": 0}).sort("saved_at", -1)
    return [_to_out(d) for d in await cursor.to_list(length=MAX_FAVORITES)]


@router.post("", response_model=FavoriteToggleResponse)
async def toggle_favorite(body: FavoriteIn, device_id: str = Depends(get_device_id), db=Depends(get_database)):
    """있으면 해제, 없으면 저장. 결과 상태를 돌려준다."""
    key = {"device_id": device_id, "recipe_id": body.id}
    removed = await db[FAVORITES].delete_one(key)
    if removed.deleted_count:
        return FavoriteToggleResponse(id=body.id, favorite=False)

    await db[FAVORITES].insert_one({
        **key,
        "name": body.name,
        "category": body.category,
        "thumbnail_url": body.thumbnailUrl,
        "saved_at": datetime.now(timezone.utc),
    })
    return FavoriteToggleResponse(id=body.id, favorite=True)


@router.delete("/{recipe_id}", response_model=DeleteResponse)
async def remove_favorite(recipe_id: str, device_id: str = Depends(get_device_id), db=Depends(get_database)):
    res = await db[FAVORITES].delete_one({"device_id": device_id, "recipe_id": recipe_id})
    return DeleteResponse(deleted=res.deleted_count)


@router.delete("", response_model=DeleteResponse)
async def clear_favorites(device_id: str = Depends(get_device_id), db=Depends(get_database)):
    res = await db[FAVORITES].delete_many({"device_id": device_id})
    return DeleteResponse(deleted=res.deleted_count)
