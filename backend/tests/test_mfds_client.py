import logging

import httpx
import pytest

from fridgenote.core.errors import ConfigurationError, UpstreamFailure, UpstreamTransientError
from fridgenote.core.retry import RetryPolicy
from fridgenote.services.mfds import MfdsClient, build_filter_segment, parse_chunk, parse_total_count

from conftest import SAMPLE_ROWS, Recorder, make_mfds_client, mfds_payload


async def test_retries_transient_status_then_succeeds():
    rec = Recorder(httpx.Response(503), mfds_payload(SAMPLE_ROWS))
    client = make_mfds_client(rec)
    chunk = await client.fetch_recipe_chunk(1, 200)
    await client.aclose()

    assert len(rec.requests) == 2
    assert [r["RCP_SEQ"] for r in chunk.rows] == ["28", "29"]
    assert chunk.total_count == 2


async def test_does_not_retry_client_errors():
    rec = Recorder(httpx.Response(404))
    client = make_mfds_client(rec)
    with pytest.raises(UpstreamFailure) as ei:
        await client.fetch_recipe_chunk(1, 200)
    await client.aclose()

    assert len(rec.requests) == 1
    assert ei.value.status == 404
    assert not isinstance(ei.value, UpstreamTransientError)


async def test_exhausted_retries_become_upstream_failure():
    delays = []

    async def fake_sleep(d):
        delays.append(d)

    rec = Recorder(httpx.Response(503))
    client = MfdsClient(
        "test-key",
        base_url="https://mfds.test/api",
        retry=RetryPolicy(max_retries=2, base_delay=0.25, sleep=fake_sleep),
        transport=httpx.MockTransport(rec),
    )
    with pytest.raises(UpstreamFailure) as ei:
        await client.fetch_recipe_chunk(1, 200)
    await client.aclose()

    assert type(ei.value) is UpstreamFailure
    assert ei.value.status == 503
    assert len(rec.requests) == 3
    assert delays == [0.25, 0.5]


async def test_timeouts_and_rate_limits_are_retried():
    rec = Recorder(
        httpx.ConnectTimeout("timed out"),
        httpx.Response(429),
        mfds_payload(SAMPLE_ROWS[:1]),
    )
    client = make_mfds_client(rec)
    chunk = await client.fetch_recipe_chunk(1, 5)
    await client.aclose()
    assert len(rec.requests) == 3
    assert chunk.rows[0]["RCP_NM"] == "돼지고기 김치찌개"


async def test_malformed_json_is_not_retried():
    rec = Recorder(httpx.Response(200, content=b"<html>oops</html>"))
    client = make_mfds_client(rec)
    with pytest.raises(UpstreamFailure):
        await client.fetch_page(1, 5)
    await client.aclose()
    assert len(rec.requests) == 1


async def test_fetch_page_keeps_result_code():
    rec = Recorder(mfds_payload([], code="INFO-200", msg="해당하는 데이터가 없습니다."))
    client = make_mfds_client(rec)
    chunk = await client.fetch_page(1, 24, {"RCP_NM": "없는메뉴"})
    await client.aclose()
    assert chunk.rows == []
    assert chunk.code == "INFO-200"
    assert chunk.has_service


async def test_filter_segment_in_path():
    rec = Recorder(mfds_payload([]))
    client = make_mfds_client(rec)
    await client.fetch_page(25, 48, {"RCP_NM": "김치", "RCP_PAT2": "국&찌개", "EMPTY": "  "})
    await client.aclose()
    assert rec.paths == ["/api/test-key/COOKRCP01/json/25/48/RCP_NM=김치&RCP_PAT2=국&찌개"]


async def test_get_recipe_prefers_matching_sequence():
    rows = [dict(SAMPLE_ROWS[1]), dict(SAMPLE_ROWS[0])]
    rec = Recorder(mfds_payload(rows))
    client = make_mfds_client(rec)
    row = await client.get_recipe("28")
    await client.aclose()
    assert rec.paths == ["/api/test-key/COOKRCP01/json/1/5/RCP_SEQ=28"]
    assert row["RCP_NM"] == "돼지고기 김치찌개"


async def test_get_recipe_not_found():
    rec = Recorder(mfds_payload([], code="INFO-200"))
    client = make_mfds_client(rec)
    assert await client.get_recipe("999999") is None
    await client.aclose()


async def test_api_key_is_masked_in_logs(caplog):
    rec = Recorder(httpx.Response(503), mfds_payload([]))
    client = make_mfds_client(rec)
    with caplog.at_level(logging.DEBUG, logger="fridgenote"):
        await client.fetch_page(1, 5)
    await client.aclose()
    assert "test-key" not in caplog.text
    assert "/***/COOKRCP01" in caplog.text


def test_missing_key_is_configuration_error():
    with pytest.raises(ConfigurationError) as ei:
        MfdsClient(None)
    assert "MFDS_API_KEY" in ei.value.message


def test_parse_chunk_without_service_section():
    chunk = parse_chunk({"RESULT": {"CODE": "INFO-300", "MSG": "유효 인증키가 아닙니다."}})
    assert not chunk.has_service
    assert chunk.rows == []
    assert chunk.code == "INFO-300"


def test_parse_chunk_rejects_non_object():
    with pytest.raises(UpstreamFailure):
        parse_chunk(["not", "an", "object"])


@pytest.mark.parametrize("value, expected", [("1124", 1124), ("0", None), (None, None), ("abc", None), (12.0, 12)])
def test_parse_total_count(value, expected):
    assert parse_total_count(value) == expected


def test_build_filter_segment_encodes_values():
    assert build_filter_segment(None) == ""
    assert build_filter_segment({"RCP_NM": None}) == ""
    assert build_filter_segment({"RCP_NM": "김치 볶음밥"}) == "/RCP_NM=%EA%B9%80%EC%B9%98%20%EB%B3%B6%EC%9D%8C%EB%B0%A5"
