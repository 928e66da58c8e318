# fridgenote/services/matching.py
# 레시피 재료 문자열 → 재료명 토큰 추출/정규화, 내 재료(팬트리)와의 매칭률 계산
# - 식약처 RCP_PARTS_DTLS 처럼 구분자/라벨/분량이 섞인 문자열을 다룬다
# - 순수 함수만 둔다 (네트워크/DB 호출 금지, 예외 없이 빈 결과로 수렴)

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from fridgenote.services.pipeline import TextPipeline, aliases, collapse_spaces, lower, sub

SPLIT_RE = re.compile(r"[\n,;|/]+")
BULLET_RE = re.compile(r"^\s*[-•·*]\s*")

BRACKET_RE = re.compile(r"\([^)]*\)|\[[^\]]*\]|\{[^}]*\}")
NOISE_RE = re.compile(r"(약간|적당량|조금|기호에 따라|취향껏|선택|필수)")

# 숫자 + 단위 (긴 단위를 먼저: kg > g, 봉지 > 봉, tbsp > ts)
_UNITS = (
    r"kg|mg|ml|g|l|tbsp|tsp|ts|컵|큰술|작은술|술|스푼|개|장|줄기|봉지|봉|마리|모|쪽|알|팩|톨|한줌|줌|대"
)
UNIT_RE = re.compile(rf"\d+(?:\.\d+)?\s*(?:{_UNITS})", re.I)
# "마늘 한쪽", "양파 반개" 처럼 고유어 수량 (독립된 단어일 때만)
NATIVE_COUNT_RE = re.compile(
    r"(?<![0-9a-z가-힣])(?:한|두|세|네|반)\s*"
    r"(?:큰술|작은술|스푼|컵|개|장|줄기|봉지|봉|마리|모|쪽|알|팩|톨|줌|대)(?![0-9a-z가-힣])"
)
NON_WORD_RE = re.compile(r"[^0-9a-z가-힣\s]")

# 대파/쪽파 → 파 를 먼저 적용해야 "다진 대파" 도 한 번에 "파" 가 된다
ALIAS_RULES: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"대파"), "파"),
    (re.compile(r"쪽파"), "파"),
    (re.compile(r"다진\s*마늘"), "마늘"),
    (re.compile(r"다진\s*파"), "파"),
    (re.compile(r"(청양|홍)\s*고추"), "고추"),
    (re.compile(r"(진|국|양조)\s*간장"), "간장"),
    (re.compile(r"설탕\s*대체"), "설탕"),
)

# 분량 제거 후 남은 앞/뒤 숫자 토큰 (예: "2 양파", "양파 1")
LEADING_NUM_RE = re.compile(r"^(?:\d+(?:\s+|$))+")
TRAILING_NUM_RE = re.compile(r"(?:(?:^|\s+)\d+)+$")

MIN_MATCH_LENGTH = 2

normalize_ingredient_name = TextPipeline(
    "matching",
    [
        lower,
        sub(BRACKET_RE),
        sub(NOISE_RE),
        sub(UNIT_RE),
        sub(NATIVE_COUNT_RE),
        sub(NON_WORD_RE),
        aliases(ALIAS_RULES),
        collapse_spaces,
        sub(LEADING_NUM_RE, ""),
        sub(TRAILING_NUM_RE, ""),
    ],
)


def _fragment_text(fragment: str) -> str:
    # 불릿 제거 → "주재료: 돼지고기" 같은 라벨은 마지막 콜론 뒤만 사용
    s = BULLET_RE.sub("", fragment)
    idx = s.rfind(":")
    return s if idx == -1 else s[idx + 1:]


def extract_recipe_ingredients(raw: Optional[str]) -> List[str]:
    """재료 문자열 → 정규화된 재료명 목록 (중복 제거, 처음 등장 순서 유지)."""
    if not raw or not isinstance(raw, str):
        return []

    out: List[str] = []
    seen = set()
    for fragment in SPLIT_RE.split(raw):
        name = normalize_ingredient_name(_fragment_text(fragment))
        if name and name not in seen:
            seen.add(name)
            out.append(name)
    return out


def is_same_ingredient(base: str, target: str) -> bool:
    # 완전 일치, 또는 둘 다 2글자 이상이면서 한쪽이 다른 쪽을 포함
    if not base or not target:
        return False
    if base == target:
        return True
    if len(base) < MIN_MATCH_LENGTH or len(target) < MIN_MATCH_LENGTH:
        return False
    return base in target or target in base


@dataclass(frozen=True)
class RecipeIngredientMatch:
    ingredient_list: Tuple[str, ...]
    match_rate: int
    matched_ingredients: Tuple[str, ...]
    missing_ingredients: Tuple[str, ...]
    total_recipe_ingredients: int


def _normalize_pantry(names: Iterable[str]) -> List[str]:
    out: List[str] = []
    for n in names or []:
        if not isinstance(n, str):
            continue
        norm = normalize_ingredient_name(n)
        if norm and norm not in out:
            out.append(norm)
    return out


def _round_percent(part: int, total: int) -> int:
    # 0.5 올림 (정수 연산으로 부동소수 오차 회피)
    return (part * 200 + total) // (2 * total)


def calculate_recipe_match(pantry_names: Iterable[str], raw_ingredients: Optional[str]) -> RecipeIngredientMatch:
    ingredient_list = extract_recipe_ingredients(raw_ingredients)
    if not ingredient_list:
        return RecipeIngredientMatch((), 0, (), (), 0)

    mine = _normalize_pantry(pantry_names)
    matched: List[str] = []
    missing: List[str] = []
    for ing in ingredient_list:
        if any(is_same_ingredient(m, ing) for m in mine):
            matched.append(ing)
        else:
            missing.append(ing)

    total = len(ingredient_list)
    return RecipeIngredientMatch(
        ingredient_list=tuple(ingredient_list),
        match_rate=_round_percent(len(matched), total),
        matched_ingredients=tuple(matched),
        missing_ingredients=tuple(missing),
        total_recipe_ingredients=total,
    )
