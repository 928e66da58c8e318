# fridgenote/services/classifier.py
# 재료명 → 카테고리(채소/과일/육류/수산물/유제품/양념/기타) 분류
# 1) 분류 전용 정규화 (매칭용 정규화와 별도 표를 쓴다)
# 2) 소스/오일류 선판정 → 양념
# 3) 카테고리별 키워드 가중치 합산 → 최고점, 동점은 우선순위

from __future__ import annotations

import re
from typing import Mapping, Optional, Sequence, Tuple

from fridgenote.models.categories import (
    CATEGORIES,
    CATEGORY_PRIORITY,
    CATEGORY_RULES,
    CategoryRule,
    IngredientCategory,
)
from fridgenote.services.pipeline import TextPipeline, aliases, collapse_spaces, lower, sub

BRACKET_RE = re.compile(r"\([^)]*\)|\[[^\]]*\]|\{[^}]*\}")
NON_WORD_RE = re.compile(r"[^0-9A-Za-z가-힣\s]")
# 손질/원산지/가공 상태 수식어. "생"은 생크림/생강을 지키기 위해 띄어 쓴 경우만
DESCRIPTOR_RE = re.compile(
    r"(국산|수입|신선한|손질|슬라이스|채썬|깍둑|삶은|데친|볶은|건조|냉동|통조림|해동|무염|저염|유기농|말린)\s*"
    r"|(?<![가-힣])생\s+"
)

CATEGORY_ALIAS_RULES: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"다진\s*마늘"), "다진마늘"),
    (re.compile(r"(청양|홍)\s*고추"), "고추"),
    (re.compile(r"(진|국|양조)\s*간장"), "간장"),
    (re.compile(r"케찹"), "케첩"),
    (re.compile(r"달걀"), "계란"),
    (re.compile(r"(엑스트라\s*버진|버진)\s*올리브\s*오일"), "올리브오일"),
    (re.compile(r"(카놀라|포도씨|해바라기)\s*유"), "식용유"),
)

# 단백질 키워드와 겹쳐도(예: 오일/굴소스) 양념으로 먼저 보낸다
SAUCE_RE = re.compile(r"(액젓|소스|드레싱|시럽|오일|식용유)")

normalize_for_category = TextPipeline(
    "category",
    [
        lower,
        sub(BRACKET_RE),
        aliases(CATEGORY_ALIAS_RULES),
        sub(DESCRIPTOR_RE, " "),
        sub(NON_WORD_RE),
        collapse_spaces,
    ],
)


def rule_score(name: str, rule: CategoryRule) -> int:
    if not name or not rule.keyword:
        return 0
    kw = rule.keyword

    if rule.exact_only:
        return rule.weight + 2 if name == kw else 0

    if name == kw:
        return rule.weight + 3
    if name.startswith(f"{kw} ") or name.endswith(f" {kw}") or f" {kw} " in name:
        return rule.weight + 1
    return rule.weight if kw in name else 0


def category_scores(
    name: str,
    rules: Mapping[IngredientCategory, Sequence[CategoryRule]] = CATEGORY_RULES,
) -> dict:
    return {
        cat: sum(rule_score(name, r) for r in rules.get(cat, ()))
        for cat in CATEGORIES
        if cat is not IngredientCategory.OTHER
    }


def classify_normalized(
    name: str,
    rules: Mapping[IngredientCategory, Sequence[CategoryRule]] = CATEGORY_RULES,
) -> IngredientCategory:
    """이미 분류용 정규화를 거친 이름을 분류."""
    if not name:
        return IngredientCategory.OTHER
    if SAUCE_RE.search(name):
        return IngredientCategory.SEASONING

    best = IngredientCategory.OTHER
    best_score = 0
    for cat, score in category_scores(name, rules).items():
        if score > best_score:
            best, best_score = cat, score
        elif score == best_score and score > 0:
            if CATEGORY_PRIORITY.index(cat) < CATEGORY_PRIORITY.index(best):
                best = cat
    return best


def classify_ingredient(
    ingredient_name: Optional[str],
    rules: Mapping[IngredientCategory, Sequence[CategoryRule]] = CATEGORY_RULES,
) -> IngredientCategory:
    return classify_normalized(normalize_for_category(ingredient_name), rules)
