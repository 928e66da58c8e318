import pytest

from fridgenote.models.categories import (
    CATEGORY_RULES,
    CategoryRule,
    IngredientCategory as C,
    parse_category,
)
from fridgenote.services.classifier import (
    classify_ingredient,
    classify_normalized,
    normalize_for_category,
    rule_score,
)


@pytest.mark.parametrize(
    "name, expected",
    [
        ("돼지고기", C.MEAT),
        ("파", C.VEGETABLE),
        ("소금", C.SEASONING),
        ("두부", C.DAIRY),
        ("계란", C.DAIRY),
        ("달걀", C.DAIRY),
        ("올리브오일", C.SEASONING),
        ("엑스트라버진 올리브 오일", C.SEASONING),
        ("모짜렐라 치즈", C.DAIRY),
        ("국산 신선한 깻잎", C.VEGETABLE),
        ("생크림", C.DAIRY),
        ("생 연어", C.SEAFOOD),
        ("굴소스", C.SEASONING),
        ("다진 마늘", C.SEASONING),
        ("마늘", C.VEGETABLE),
        ("배", C.FRUIT),
        ("배추", C.VEGETABLE),
        ("김", C.SEAFOOD),
        ("김치", C.OTHER),
        ("물", C.OTHER),
        ("", C.OTHER),
        (None, C.OTHER),
    ],
)
def test_classify_ingredient(name, expected):
    assert classify_ingredient(name) is expected


def test_normalize_for_category():
    assert normalize_for_category("국산 신선한 깻잎") == "깻잎"
    assert normalize_for_category("달걀(특란)") == "계란"
    assert normalize_for_category("카놀라유") == "식용유"
    assert normalize_for_category("토마토 케찹!") == "토마토 케첩"
    # 붙여 쓴 "생"은 재료명의 일부
    assert normalize_for_category("생크림") == "생크림"
    assert normalize_for_category("생강") == "생강"


def test_pipelines_are_distinct():
    from fridgenote.services.matching import normalize_ingredient_name

    # 매칭용은 "다진 마늘" → "마늘", 분류용은 "다진마늘" (양념)
    assert normalize_ingredient_name("다진 마늘") == "마늘"
    assert normalize_for_category("다진 마늘") == "다진마늘"


def test_rule_score():
    assert rule_score("파", CategoryRule("파", 4, True)) == 6
    assert rule_score("양파", CategoryRule("파", 4, True)) == 0
    assert rule_score("치즈", CategoryRule("치즈", 5)) == 8
    assert rule_score("모짜렐라 치즈", CategoryRule("치즈", 5)) == 6
    assert rule_score("치즈 케이크", CategoryRule("치즈", 5)) == 6
    assert rule_score("슬라이스 치즈 한장", CategoryRule("치즈", 5)) == 6
    assert rule_score("크림치즈", CategoryRule("치즈", 5)) == 5
    assert rule_score("버터", CategoryRule("치즈", 5)) == 0
    assert rule_score("", CategoryRule("치즈", 5)) == 0


def test_tie_break_uses_priority():
    rules = {
        C.VEGETABLE: (CategoryRule("테스트", 4),),
        C.FRUIT: (CategoryRule("테스트", 4),),
    }
    assert classify_ingredient("테스트", rules) is C.VEGETABLE

    rules = {
        C.MEAT: (CategoryRule("테스트", 1),),
        C.SEASONING: (CategoryRule("테스트", 1),),
        C.DAIRY: (CategoryRule("테스트", 1),),
    }
    assert classify_ingredient("테스트", rules) is C.SEASONING


def test_highest_score_wins_over_priority():
    rules = {
        C.SEASONING: (CategoryRule("가", 1),),
        C.FRUIT: (CategoryRule("가나", 9),),
    }
    assert classify_normalized("가나", rules) is C.FRUIT


def test_empty_rule_table_is_other():
    assert classify_ingredient("돼지고기", {}) is C.OTHER


def test_sauce_precheck_beats_rules():
    rules = {C.MEAT: (CategoryRule("고기", 100),)}
    assert classify_ingredient("고기 소스", rules) is C.SEASONING


def test_category_rules_are_read_only():
    with pytest.raises(TypeError):
        CATEGORY_RULES[C.MEAT] = ()


def test_rule_weight_must_be_positive():
    with pytest.raises(ValueError):
        CategoryRule("x", 0)


@pytest.mark.parametrize(
    "value, expected",
    [("채소", C.VEGETABLE), ("seafood", C.SEAFOOD), ("전체", None), ("all", None), ("ALL", None), ("???", None), (None, None)],
)
def test_parse_category(value, expected):
    assert parse_category(value) is expected
