import pytest

from fridgenote.core.errors import UpstreamFailure
from fridgenote.models.categories import IngredientCategory as C
from fridgenote.services.catalog import CatalogAccumulator, build_catalog, sort_ko
from fridgenote.services.mfds import RecipeChunk

from conftest import Recorder, make_mfds_client, mfds_payload


class FakeSource:
    def __init__(self, rows, total_count=None, fail_at=None):
        self.rows = rows
        self.total_count = total_count
        self.fail_at = fail_at
        self.calls = []

    async def fetch_recipe_chunk(self, start, end):
        self.calls.append((start, end))
        if self.fail_at is not None and len(self.calls) == self.fail_at:
            raise UpstreamFailure("boom")
        return RecipeChunk(rows=self.rows[start - 1:end], total_count=self.total_count)


def _rows(n, parts="돼지고기 300g, 대파 1대, 소금 약간"):
    return [{"RCP_SEQ": str(i), "RCP_PARTS_DTLS": parts} for i in range(1, n + 1)]


async def test_stops_on_short_chunk():
    src = FakeSource(_rows(450), total_count=450)
    catalog = await build_catalog(src, chunk_size=200, max_scan=1200)
    assert src.calls == [(1, 200), (201, 400), (401, 600)]
    assert catalog.scanned_recipe_count == 450


async def test_respects_scan_ceiling():
    src = FakeSource(_rows(2000), total_count=2000)
    catalog = await build_catalog(src, chunk_size=200, max_scan=400)
    assert src.calls == [(1, 200), (201, 400)]
    assert catalog.scanned_recipe_count == 400


async def test_shrinks_target_to_reported_total():
    src = FakeSource(_rows(1000), total_count=200)
    catalog = await build_catalog(src, chunk_size=200, max_scan=1200)
    assert src.calls == [(1, 200)]
    assert catalog.scanned_recipe_count == 200


async def test_stops_on_empty_chunk():
    src = FakeSource([], total_count=None)
    catalog = await build_catalog(src, chunk_size=200, max_scan=1200)
    assert src.calls == [(1, 200)]
    assert catalog.scanned_recipe_count == 0
    assert catalog.all_names == ()


async def test_names_are_filtered_classified_and_sorted():
    rows = [
        {"RCP_PARTS_DTLS": "돼지고기 300g, 대파 1대, 소금 약간"},
        {"RCP_PARTS_DTLS": "두부 1모, 계란 2개, " + "가" * 25},
        {"RCP_PARTS_DTLS": None},
    ]
    catalog = await build_catalog(FakeSource(rows), chunk_size=200)

    # "파"(1글자)와 25글자 이름은 빠진다
    assert catalog.all_names == ("계란", "돼지고기", "두부", "소금")
    assert catalog.names(C.MEAT) == ("돼지고기",)
    assert catalog.names(C.DAIRY) == ("계란", "두부")
    assert catalog.names(C.SEASONING) == ("소금",)
    assert catalog.names(C.FRUIT) == ()
    assert catalog.names() == catalog.all_names
    assert catalog.scanned_recipe_count == 3


async def test_failure_propagates_without_partial_catalog():
    src = FakeSource(_rows(600), total_count=600, fail_at=2)
    with pytest.raises(UpstreamFailure):
        await build_catalog(src, chunk_size=200)


async def test_builds_from_mfds_client():
    rec = Recorder(mfds_payload([{"RCP_PARTS_DTLS": "양파 1개, 감자 2개"}], total_count=1))
    client = make_mfds_client(rec)
    catalog = await build_catalog(client, chunk_size=200, max_scan=1200)
    await client.aclose()

    assert rec.paths == ["/api/test-key/COOKRCP01/json/1/200"]
    assert catalog.all_names == ("감자", "양파")
    assert catalog.names(C.VEGETABLE) == ("감자", "양파")


async def test_non_success_code_fails_build():
    rec = Recorder(mfds_payload([], code="INFO-300", msg="인증키가 유효하지 않습니다."))
    client = make_mfds_client(rec)
    with pytest.raises(UpstreamFailure) as ei:
        await build_catalog(client)
    await client.aclose()
    assert ei.value.code == "INFO-300"


def test_sort_ko_orders_hangul_syllables():
    assert sort_ko(["양파", "감자", "가지", "ham", "나물"]) == ("ham", "가지", "감자", "나물", "양파")


def test_snapshot_is_read_only():
    acc = CatalogAccumulator()
    acc.add_rows([{"RCP_PARTS_DTLS": "양파 1개"}])
    snap = acc.freeze()
    with pytest.raises(TypeError):
        snap.by_category[C.VEGETABLE] = ()
    with pytest.raises(AttributeError):
        snap.all_names = ()
