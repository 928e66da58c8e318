# fridgenote/api/routes_pantry.py
# 내 재료(냉장고) CRUD, 기기 id 단위
# 저장 문서는 snake_case, 응답은 camelCase

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Any, Dict, Mapping, Optional

from fastapi import APIRouter, Depends

from fridgenote.core.deps import enforce_rate_limit, get_database, get_device_id
from fridgenote.core.errors import NotFoundError
from fridgenote.db.indexes import PANTRY
from fridgenote.models.categories import IngredientCategory, parse_category
from fridgenote.models.schemas import (
    DEFAULT_STORAGE_TYPE,
    DeleteResponse,
    ExpiryOut,
    PantryItemIn,
    PantryItemOut,
    PantryItemUpdate,
    PantryListResponse,
    ReminderListResponse,
    ReminderOut,
)
from fridgenote.services.classifier import classify_ingredient
from fridgenote.services.expiry import DEFAULT_NOTIFICATION_HOUR, expiry_status, schedule_expiry_reminders

router = APIRouter(prefix="/pantry", tags=["pantry"], dependencies=[Depends(enforce_rate_limit)])

MAX_ITEMS = 1000

# 요청 필드 → 문서 필드
FIELD_MAP = {
    "name": "name",
    "category": "category",
    "storageType": "storage_type",
    "quantity": "quantity",
    "expiryDate": "expiry_date",
    "barcode": "barcode",
    "imageUrl": "image_url",
    "memo": "memo",
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _to_doc_value(v: Any) -> Any:
    # Mongo는 date를 못 담으므로 YYYY-MM-DD 문자열로
    if isinstance(v, IngredientCategory):
        return v.value
    if isinstance(v, date):
        return v.isoformat()
    return v


def to_pantry_out(doc: Mapping[str, Any], today: Optional[date] = None) -> PantryItemOut:
    return PantryItemOut(
        id=doc["id"],
        deviceId=doc["device_id"],
        name=doc["name"],
        category=doc.get("category"),
        storageType=doc.get("storage_type") or DEFAULT_STORAGE_TYPE,
        quantity=doc.get("quantity"),
        expiryDate=doc.get("expiry_date"),
        barcode=doc.get("barcode"),
        imageUrl=doc.get("image_url"),
        memo=doc.get("memo"),
        createdAt=doc["created_at"],
        updatedAt=doc["updated_at"],
        expiry=ExpiryOut(**expiry_status(doc.get("expiry_date"), today).to_dict()),
    )


def sort_by_expiry(docs):
    # 최근 등록순 → 유통기한 임박순 (기한 없는 재료는 뒤로), 정렬은 안정적이라 두 번에 나눔
    docs = sorted(docs, key=lambda d: d.get("created_at") or datetime.min, reverse=True)
    return sorted(docs, key=lambda d: (d.get("expiry_date") is None, d.get("expiry_date") or ""))


@router.get("", response_model=PantryListResponse)
async def list_pantry(
    category: Optional[str] = None,
    device_id: str = Depends(get_device_id),
    db=Depends(get_database),
):
    query: Dict[str, Any] = {"device_id": device_id}
    cat = parse_category(category)
    if cat is not None:
        query["category"] = cat.value

    docs = await db[PANTRY].find(query, {"_id": 0}).to_list(length=MAX_ITEMS)
    today = date.today()
    items = [to_pantry_out(d, today) for d in sort_by_expiry(docs)]
    return PantryListResponse(items=items, total=len(items))


@router.get("/reminders", response_model=ReminderListResponse)
async def pantry_reminders(
    hour: int = DEFAULT_NOTIFICATION_HOUR,
    device_id: str = Depends(get_device_id),
    db=Depends(get_database),
):
    """유통기한 D-3, D-1 알림 예약 목록 (앱이 로컬 알림으로 등록). 시각은 서버 기준."""
    docs = await db[PANTRY].find({"device_id": device_id}, {"_id": 0}).to_list(length=MAX_ITEMS)
    jobs = schedule_expiry_reminders(docs, hour=hour)
    items = [ReminderOut(**j.to_dict()) for j in jobs]
    return ReminderListResponse(items=items, total=len(items))


@router.post("", response_model=PantryItemOut, status_code=201)
async def add_pantry_item(
    body: PantryItemIn,
    device_id: str = Depends(get_device_id),
    db=Depends(get_database),
):
    now = _now()
    doc = {FIELD_MAP[k]: _to_doc_value(v) for k, v in body.model_dump().items()}
    if not doc["category"]:
        doc["category"] = classify_ingredient(body.name).value
    doc.update(id=str(uuid.uuid4()), device_id=device_id, created_at=now, updated_at=now)

    await db[PANTRY].insert_one(dict(doc))
    return to_pantry_out(doc)


@router.patch("/{item_id}", response_model=PantryItemOut)
async def update_pantry_item(
    item_id: str,
    body: PantryItemUpdate,
    device_id: str = Depends(get_device_id),
    db=Depends(get_database),
):
    current = await db[PANTRY].find_one({"id": item_id, "device_id": device_id}, {"_id": 0})
    if not current:
        raise NotFoundError("재료를 찾을 수 없습니다.")

    changes: Dict[str, Any] = {}
    for k, v in body.model_dump(exclude_unset=True).items():
        if v is None and k in ("name", "storageType"):
            continue
        changes[FIELD_MAP[k]] = _to_doc_value(v)

    # 카테고리를 비우면 이름 기준으로 다시 분류
    if "category" in changes and not changes["category"]:
        changes["category"] = classify_ingredient(changes.get("name") or current["name"]).value

    changes["updated_at"] = _now()
    await db[PANTRY].update_one({"id": item_id, "device_id": device_id}, {"$set": changes})
    current.update(changes)
    return to_pantry_out(current)


@router.delete("/{item_id}", response_model=DeleteResponse)
async def delete_pantry_item(
    item_id: str,
    device_id: str = Depends(get_device_id),
    db=Depends(get_database),
):
    res = await db[PANTRY].delete_one({"id": item_id, "device_id": device_id})
    if res.deleted_count == 0:
        raise NotFoundError("재료를 찾을 수 없습니다.")
    return DeleteResponse(deleted=res.deleted_count)
