# 쿼리 파라미터 검증/보정
# - 숫자 파라미터는 잘못된 값이면 기본값으로 보정 (400 아님)
# - 검색어만 길이/문자 위반 시 QueryValidationError

from __future__ import annotations

import math
import re
from typing import Optional

from fridgenote.core.errors import QueryValidationError

DEFAULT_LIMIT = 24
MIN_LIMIT = 1
MAX_LIMIT = 80

DEFAULT_PAGE = 1
DEFAULT_SIZE = 24
MAX_SIZE = 100

MAX_SEARCH_LENGTH = 40
SEARCH_RE = re.compile(r"^[0-9A-Za-z가-힣\s\-_/().,&]+$")

RECIPE_CATEGORIES = frozenset({"한식", "중식", "양식", "일식", "분식", "디저트", "국&찌개", "반찬", "기타"})
_RECIPE_CATEGORY_ALIASES = {"국·찌개": "국&찌개"}


def _to_number(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        n = float(str(value).strip())
    except ValueError:
        return None
    return n if math.isfinite(n) else None


def to_non_negative_int(value: Optional[str], default: int = 0) -> int:
    n = _to_number(value)
    if n is None or n < 0:
        return default
    return int(math.floor(n))


def to_positive_int(value: Optional[str], default: int) -> int:
    n = _to_number(value)
    if n is None or n < 1:
        return default
    return int(math.floor(n))


def parse_cursor(value: Optional[str]) -> int:
    return to_non_negative_int(value, 0)


def parse_limit(value: Optional[str]) -> int:
    # "0" → 1, 숫자 아님 → 기본값
    return min(max(to_non_negative_int(value, DEFAULT_LIMIT), MIN_LIMIT), MAX_LIMIT)


def parse_page(value: Optional[str]) -> int:
    return to_positive_int(value, DEFAULT_PAGE)


def parse_size(value: Optional[str]) -> int:
    return min(to_positive_int(value, DEFAULT_SIZE), MAX_SIZE)


def sanitize_query(value: Optional[str]) -> Optional[str]:
    """검색어 검증. 비어 있으면 None, 규칙 위반이면 QueryValidationError."""
    if not value:
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    if len(trimmed) > MAX_SEARCH_LENGTH:
        raise QueryValidationError(f"검색어는 {MAX_SEARCH_LENGTH}자 이하로 입력해 주세요.")
    if not SEARCH_RE.match(trimmed):
        raise QueryValidationError("검색어에 사용할 수 없는 문자가 포함되어 있습니다.")
    return trimmed


def normalize_search(value: Optional[str]) -> Optional[str]:
    # 재료 추천 필터용 (소문자 비교)
    q = sanitize_query(value)
    return q.lower() if q else None


def normalize_recipe_category(value: Optional[str]) -> Optional[str]:
    """레시피 분류 허용 목록. 전체/모르는 값은 None (필터 없음)."""
    if not value:
        return None
    v = value.strip()
    if v in ("전체", "all"):
        return None
    v = _RECIPE_CATEGORY_ALIASES.get(v, v)
    return v if v in RECIPE_CATEGORIES else None
