import asyncio
import logging
from datetime import datetime, timedelta, timezone

import pytest

from fridgenote.core.errors import UpstreamFailure
from fridgenote.services.catalog import build_catalog
from fridgenote.services.catalog_cache import CatalogCache

from conftest import Recorder, make_catalog, make_mfds_client, mfds_payload

T0 = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self):
        self.now = T0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


class Builder:
    def __init__(self, clock, fail_on=()):
        self.clock = clock
        self.fail_on = set(fail_on)
        self.calls = 0
        self.gate = None

    async def __call__(self):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.calls in self.fail_on:
            raise UpstreamFailure("upstream down")
        return make_catalog([f"재료{self.calls}"], built_at=self.clock())


@pytest.fixture
def clock():
    return Clock()


async def test_empty_cache_builds_and_waits(clock):
    build = Builder(clock)
    cache = CatalogCache(build, ttl_seconds=900, clock=clock)
    assert cache.state == "empty"

    catalog = await cache.get()
    assert catalog.all_names == ("재료1",)
    assert cache.snapshot is catalog
    assert cache.state == "fresh"
    assert build.calls == 1


async def test_fresh_snapshot_is_served_without_rebuild(clock):
    build = Builder(clock)
    cache = CatalogCache(build, ttl_seconds=900, clock=clock)
    first = await cache.get()
    clock.advance(899)
    assert await cache.get() is first
    assert build.calls == 1
    assert not cache.building


async def test_concurrent_requests_share_one_build(clock):
    build = Builder(clock)
    build.gate = asyncio.Event()
    cache = CatalogCache(build, ttl_seconds=900, clock=clock)

    tasks = [asyncio.create_task(cache.get()) for _ in range(5)]
    await asyncio.sleep(0)
    assert cache.state == "building"
    build.gate.set()
    results = await asyncio.gather(*tasks)

    assert build.calls == 1
    assert all(r is results[0] for r in results)


async def test_concurrent_first_requests_hit_upstream_once():
    rows = [{"RCP_SEQ": str(i), "RCP_PARTS_DTLS": "돼지고기 300g, 감자 1개"} for i in range(1, 4)]
    rec = Recorder(mfds_payload(rows[:2], total_count=3), mfds_payload(rows[2:], total_count=3))
    client = make_mfds_client(rec)
    cache = CatalogCache(lambda: build_catalog(client, chunk_size=2, max_scan=10), ttl_seconds=900)

    first, second = await asyncio.gather(cache.get(), cache.get())
    await client.aclose()

    # 한 번의 빌드 = 2페이지
    assert len(rec.requests) == 2
    assert first is second
    assert first.all_names == ("감자", "돼지고기")
    assert first.scanned_recipe_count == 3


async def test_stale_snapshot_served_while_refreshing(clock):
    build = Builder(clock)
    cache = CatalogCache(build, ttl_seconds=900, clock=clock)
    first = await cache.get()

    clock.advance(901)
    build.gate = asyncio.Event()
    assert await cache.get() is first
    assert cache.state == "stale+refreshing"
    # 갱신 중 추가 요청도 새 빌드를 만들지 않는다
    assert await cache.get() is first

    build.gate.set()
    second = await cache.refresh()
    assert build.calls == 2
    assert second.all_names == ("재료2",)
    assert cache.snapshot is second
    assert cache.state == "fresh"


async def test_failed_refresh_keeps_last_good_snapshot(clock, caplog):
    build = Builder(clock, fail_on={2})
    cache = CatalogCache(build, ttl_seconds=900, clock=clock)
    first = await cache.get()

    clock.advance(1000)
    with caplog.at_level(logging.ERROR, logger="fridgenote.services.catalog_cache"):
        assert await cache.get() is first
        assert await cache.refresh() is first

    assert cache.snapshot is first
    assert not cache.building
    assert "기존 캐시 유지" in caplog.text

    # 다음 요청에서 다시 갱신 시도
    assert await cache.get() is first
    await cache.refresh()
    assert build.calls >= 3
    assert cache.snapshot.all_names[0].startswith("재료")
    assert cache.snapshot is not first


async def test_first_build_failure_propagates(clock):
    build = Builder(clock, fail_on={1})
    cache = CatalogCache(build, ttl_seconds=900, clock=clock)

    with pytest.raises(UpstreamFailure):
        await cache.get()
    assert cache.snapshot is None
    assert not cache.building

    # 실패는 캐시되지 않는다
    catalog = await cache.get()
    assert build.calls == 2
    assert catalog.all_names == ("재료2",)


async def test_cancelled_request_does_not_cancel_shared_build(clock):
    build = Builder(clock)
    build.gate = asyncio.Event()
    cache = CatalogCache(build, ttl_seconds=900, clock=clock)

    waiter = asyncio.create_task(cache.get())
    await asyncio.sleep(0)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    assert cache.building
    build.gate.set()
    catalog = await cache.refresh()
    assert build.calls == 1
    assert cache.snapshot is catalog


async def test_aclose_waits_for_inflight_build(clock):
    build = Builder(clock)
    cache = CatalogCache(build, ttl_seconds=900, clock=clock)
    await cache.get()
    clock.advance(1000)
    await cache.get()
    assert cache.building
    await cache.aclose()
    assert not cache.building
    assert build.calls == 2
