# fridgenote/services/recipes.py
# 식약처 행 / 저장소 문서 → 앱 레시피 레코드 변환
# 목록용(RecipeRecord)과 상세용(재료 표시 목록 + 조리 단계) 두 가지

from __future__ import annotations

import re
import uuid
from typing import Any, Dict, List, Mapping, Optional

from fridgenote.services.matching import BULLET_RE, SPLIT_RE

UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$", re.I)

MAX_MANUAL_STEPS = 20
MAX_STORED_INGREDIENTS = 200

FALLBACK_STEPS = (
    "재료를 깨끗하게 손질하고 필요한 양을 준비합니다.",
    "조리법에 맞춰 가열하고, 중간에 간을 맞춰가며 조리합니다.",
    "불을 끄고 플레이팅한 뒤, 기호에 맞게 마무리합니다.",
)

_METHOD_RE = re.compile(r"조리법:\s*([^|]+)")
_CALORIES_RE = re.compile(r"열량:\s*([^|]+)")
_BRACKET_RE = re.compile(r"\([^)]*\)|\[[^\]]*\]|\{[^}]*\}")
_NON_WORD_RE = re.compile(r"[^0-9a-zA-Z가-힣\s]")


def _s(row: Mapping[str, Any], key: str) -> str:
    v = row.get(key)
    return v.strip() if isinstance(v, str) else ""


def is_storage_id(recipe_id: str) -> bool:
    return bool(UUID_RE.match(recipe_id or ""))


def normalize_image_url(value: Optional[str]) -> Optional[str]:
    s = (value or "").strip()
    if not s:
        return None
    if s.startswith("http://"):
        return "https://" + s[len("http://"):]
    return s


def parse_ingredient_display_list(raw: Optional[str]) -> List[str]:
    # 화면 표시용: 분량은 그대로 두고 구분자/불릿만 정리
    if not raw:
        return []
    items = (BULLET_RE.sub("", part).strip() for part in SPLIT_RE.split(raw))
    return list(dict.fromkeys(i for i in items if i))


def parse_hash_tags(raw: Optional[str]) -> List[str]:
    tags = [t.strip() for t in re.split(r"[\s,]+", raw or "") if t.strip()]
    return [t if t.startswith("#") else f"#{t}" for t in tags]


def parse_method_and_calories(description: Optional[str]) -> Dict[str, str]:
    if not description:
        return {"method": "정보 없음", "calories": "-"}
    m = _METHOD_RE.search(description)
    c = _CALORIES_RE.search(description)
    return {
        "method": (m.group(1).strip() if m else "") or description,
        "calories": (c.group(1).strip() if c else "") or "-",
    }


def fallback_steps() -> List[Dict[str, Any]]:
    return [{"index": i + 1, "description": d, "imageUrl": None} for i, d in enumerate(FALLBACK_STEPS)]


def parse_manual_steps(row: Mapping[str, Any]) -> List[Dict[str, Any]]:
    # MANUAL01..20 / MANUAL_IMG01..20
    steps: List[Dict[str, Any]] = []
    for i in range(1, MAX_MANUAL_STEPS + 1):
        key = f"{i:02d}"
        desc = _s(row, f"MANUAL{key}")
        if not desc:
            continue
        steps.append({"index": i, "description": desc, "imageUrl": normalize_image_url(_s(row, f"MANUAL_IMG{key}"))})
    return steps


def row_to_recipe(row: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "id": _s(row, "RCP_SEQ"),
        "name": _s(row, "RCP_NM") or "이름 없음",
        "category": _s(row, "RCP_PAT2") or "기타",
        "method": _s(row, "RCP_WAY2") or "정보 없음",
        "calories": _s(row, "INFO_ENG") or "-",
        "thumbnailUrl": _s(row, "ATT_FILE_NO_MK") or _s(row, "ATT_FILE_NO_MAIN") or None,
        "ingredients": _s(row, "RCP_PARTS_DTLS"),
        "hashTag": _s(row, "HASH_TAG"),
    }


def row_to_detail(row: Mapping[str, Any], recipe_id: str) -> Dict[str, Any]:
    base = row_to_recipe(row)
    raw = base["ingredients"]
    base.update(
        id=base["id"] or recipe_id,
        # 상세 화면은 큰 이미지 우선
        thumbnailUrl=normalize_image_url(_s(row, "ATT_FILE_NO_MAIN") or _s(row, "ATT_FILE_NO_MK")),
        ingredientList=parse_ingredient_display_list(raw),
        steps=parse_manual_steps(row) or fallback_steps(),
        hashTags=parse_hash_tags(base["hashTag"]),
    )
    return base


def _stored_ingredients(value: Any) -> List[str]:
    if isinstance(value, list):
        items = (v.strip() for v in value if isinstance(v, str))
        return list(dict.fromkeys(i for i in items if i))
    if isinstance(value, str):
        return parse_ingredient_display_list(value)
    return []


def _stored_steps(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    steps = []
    for pos, item in enumerate(value):
        if not isinstance(item, Mapping):
            continue
        desc = item.get("description")
        desc = desc.strip() if isinstance(desc, str) else ""
        if not desc:
            continue
        raw_index = item.get("order", item.get("index"))
        try:
            index = int(raw_index)
        except (TypeError, ValueError):
            index = 0
        image = item.get("image_url") if isinstance(item.get("image_url"), str) else item.get("imageUrl")
        steps.append({
            "index": index if index > 0 else pos + 1,
            "description": desc,
            "imageUrl": normalize_image_url(image if isinstance(image, str) else None),
        })
    return sorted(steps, key=lambda s: s["index"])


def stored_to_detail(doc: Mapping[str, Any]) -> Dict[str, Any]:
    """recipes 컬렉션 문서 → 상세 레코드."""
    meta = parse_method_and_calories(doc.get("description"))
    ingredient_list = _stored_ingredients(doc.get("ingredients"))
    return {
        "id": str(doc.get("id") or ""),
        "name": (doc.get("title") or "").strip() or "레시피 이름 없음",
        "category": (doc.get("category") or "").strip() or "기타",
        "method": meta["method"],
        "calories": meta["calories"],
        "thumbnailUrl": normalize_image_url(doc.get("thumbnail_url")),
        "ingredients": ", ".join(ingredient_list),
        "hashTag": "",
        "ingredientList": ingredient_list,
        "steps": _stored_steps(doc.get("steps")) or fallback_steps(),
        "hashTags": [],
    }


def _storage_ingredient(text: str) -> str:
    s = _BRACKET_RE.sub(" ", text)
    s = _NON_WORD_RE.sub(" ", s)
    return re.sub(r"\s+", " ", s).strip()


def row_to_stored_doc(row: Mapping[str, Any]) -> Dict[str, Any]:
    """식약처 행 → recipes 컬렉션 문서 (시드 스크립트용)."""
    method = _s(row, "RCP_WAY2") or "정보 없음"
    calories = _s(row, "INFO_ENG") or "-"
    names = []
    for part in SPLIT_RE.split(_s(row, "RCP_PARTS_DTLS")):
        part = BULLET_RE.sub("", part)
        idx = part.rfind(":")
        name = _storage_ingredient(part if idx == -1 else part[idx + 1:])
        if name:
            names.append(name)
    seq = _s(row, "RCP_SEQ")
    return {
        "id": str(uuid.uuid4()),
        "title": _s(row, "RCP_NM") or "이름 없음",
        "description": f"조리법: {method} | 열량: {calories}",
        "category": _s(row, "RCP_PAT2") or "기타",
        "thumbnail_url": _s(row, "ATT_FILE_NO_MK") or _s(row, "ATT_FILE_NO_MAIN") or None,
        "ingredients": list(dict.fromkeys(names))[:MAX_STORED_INGREDIENTS],
        "steps": [
            {"order": s["index"], "description": s["description"], "image_url": _s(row, f"MANUAL_IMG{s['index']:02d}") or None}
            for s in parse_manual_steps(row)
        ],
        "source": f"mfds:{seq}" if seq else "mfds:unknown",
    }
