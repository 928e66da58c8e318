# fridgenote/models/categories.py
# 재료 카테고리 + 분류 규칙 테이블 (선언형 데이터)
# 규칙을 코드 분기에 숨기지 않고 표로 둔다 → 점수 알고리즘과 분리해서 점검/테스트 가능

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple


class IngredientCategory(str, Enum):
    VEGETABLE = "채소"
    FRUIT = "과일"
    MEAT = "육류"
    SEAFOOD = "수산물"
    DAIRY = "유제품"
    SEASONING = "양념"
    OTHER = "기타"


# 열거 순서(응답/저장용)
CATEGORIES: Tuple[IngredientCategory, ...] = tuple(IngredientCategory)

# 동점일 때 우선순위 (앞이 우선)
CATEGORY_PRIORITY: Tuple[IngredientCategory, ...] = (
    IngredientCategory.SEASONING,
    IngredientCategory.MEAT,
    IngredientCategory.SEAFOOD,
    IngredientCategory.DAIRY,
    IngredientCategory.VEGETABLE,
    IngredientCategory.FRUIT,
    IngredientCategory.OTHER,
)

# "전체" 를 뜻하는 쿼리 값
ALL_CATEGORY_VALUES = frozenset({"all", "전체"})

_EN_LABELS = {
    "vegetable": IngredientCategory.VEGETABLE,
    "fruit": IngredientCategory.FRUIT,
    "meat": IngredientCategory.MEAT,
    "seafood": IngredientCategory.SEAFOOD,
    "dairy": IngredientCategory.DAIRY,
    "seasoning": IngredientCategory.SEASONING,
    "other": IngredientCategory.OTHER,
}


def parse_category(value: Optional[str]) -> Optional[IngredientCategory]:
    """한글 라벨/영문 라벨 → 카테고리. 전체·모름이면 None."""
    v = (value or "").strip()
    if not v or v.lower() in ALL_CATEGORY_VALUES:
        return None
    try:
        return IngredientCategory(v)
    except ValueError:
        return _EN_LABELS.get(v.lower())


@dataclass(frozen=True)
class CategoryRule:
    keyword: str
    weight: int
    exact_only: bool = False

    def __post_init__(self):
        if self.weight <= 0:
            raise ValueError(f"rule weight must be positive: {self.keyword}")


R = CategoryRule

# 한 글자/애매한 키워드(파, 무, 배, 굴, 게, 김)는 exact_only
_RULES = {
    IngredientCategory.VEGETABLE: (
        R("양파", 4), R("대파", 4), R("파", 4, True), R("감자", 4), R("고구마", 4),
        R("당근", 4), R("오이", 4), R("호박", 4), R("애호박", 4), R("단호박", 4),
        R("브로콜리", 4), R("버섯", 4), R("시금치", 4), R("배추", 4), R("무", 3, True),
        R("상추", 4), R("깻잎", 4), R("고추", 4), R("콩나물", 4), R("양배추", 4),
        R("가지", 4), R("부추", 4), R("마늘", 3), R("토란", 4), R("샐러리", 4),
        R("케일", 4), R("파프리카", 4), R("토마토", 4), R("청경채", 4),
    ),
    IngredientCategory.FRUIT: (
        R("사과", 4), R("배", 4, True), R("포도", 4), R("딸기", 4), R("바나나", 4),
        R("오렌지", 4), R("귤", 4), R("레몬", 4), R("키위", 4), R("복숭아", 4),
        R("망고", 4), R("자몽", 4), R("체리", 4), R("파인애플", 4), R("블루베리", 4),
        R("아보카도", 3),
    ),
    IngredientCategory.MEAT: (
        R("소고기", 5), R("돼지고기", 5), R("닭고기", 5), R("오리고기", 5), R("양고기", 5),
        R("목살", 4), R("삼겹살", 4), R("갈비", 4), R("베이컨", 4), R("햄", 4),
        R("다짐육", 4), R("불고기", 4), R("차돌", 4), R("소시지", 4), R("닭가슴살", 4),
        R("우삼겹", 4),
    ),
    IngredientCategory.SEAFOOD: (
        R("고등어", 5), R("연어", 5), R("참치", 4), R("오징어", 5), R("문어", 5),
        R("새우", 5), R("조개", 5), R("굴", 4, True), R("멸치", 5), R("게", 4, True),
        R("미역", 5), R("김", 4, True), R("다시마", 5), R("어묵", 4), R("전복", 5),
        R("바지락", 5), R("낙지", 5), R("꽁치", 5),
    ),
    IngredientCategory.DAIRY: (
        R("우유", 5), R("치즈", 5), R("버터", 5), R("요거트", 5), R("요구르트", 5),
        R("생크림", 5), R("연유", 5), R("계란", 4), R("달걀", 4), R("두유", 3),
        R("두부", 3), R("크림치즈", 5), R("모짜렐라", 5), R("파마산", 5),
    ),
    IngredientCategory.SEASONING: (
        R("간장", 6), R("고추장", 6), R("된장", 6), R("쌈장", 6), R("소금", 5),
        R("설탕", 5), R("식초", 5), R("참기름", 6), R("들기름", 6), R("후추", 5),
        R("고춧가루", 6), R("다진마늘", 6), R("케첩", 6), R("마요네즈", 6), R("올리고당", 6),
        R("물엿", 6), R("액젓", 6), R("굴소스", 6), R("식용유", 6), R("올리브오일", 6),
        R("카레가루", 6), R("소스", 4),
    ),
    IngredientCategory.OTHER: (),
}

del R

CATEGORY_RULES: Mapping[IngredientCategory, Tuple[CategoryRule, ...]] = MappingProxyType(_RULES)
