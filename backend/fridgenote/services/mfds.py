# fridgenote/services/mfds.py
# 식약처 조리식품 레시피 OpenAPI(COOKRCP01) 클라이언트
# 경로 형식: {base}/{key}/{serviceId}/json/{start}/{end}[/{필드}={값}&...]
# - 요청마다 타임아웃(기본 4.5초)
# - 429/5xx/타임아웃/네트워크 오류는 RetryPolicy로 재시도, 나머지 HTTP 오류는 즉시 실패
# - 결과 코드 INFO-000 이 아니면 실패 (목록 API는 코드를 그대로 돌려줘야 해서 strict 옵션 분리)

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote

import httpx

from fridgenote.core.config import settings
from fridgenote.core.errors import ConfigurationError, UpstreamFailure, UpstreamTransientError
from fridgenote.core.retry import RetryPolicy

log = logging.getLogger(__name__)

SUCCESS_CODE = "INFO-000"


@dataclass
class RecipeChunk:
    rows: List[Dict[str, Any]] = field(default_factory=list)
    total_count: Optional[int] = None
    code: Optional[str] = None
    message: Optional[str] = None
    has_service: bool = True


def parse_total_count(value: Any) -> Optional[int]:
    try:
        n = int(float(str(value)))
    except (TypeError, ValueError):
        return None
    return n if n > 0 else None


def _resolve_service(payload: Mapping[str, Any], service_id: str) -> Optional[Mapping[str, Any]]:
    service = payload.get(service_id)
    if not service:
        return None
    if isinstance(service, list):
        # 배열로 내려오는 경우 row가 있는 항목 우선
        for item in service:
            if isinstance(item, dict) and isinstance(item.get("row"), list):
                return item
        return service[0] if service and isinstance(service[0], dict) else None
    return service if isinstance(service, dict) else None


def parse_chunk(payload: Any, service_id: str = "COOKRCP01") -> RecipeChunk:
    if not isinstance(payload, dict):
        raise UpstreamFailure("식약처 API 응답 형식이 올바르지 않습니다.")

    service = _resolve_service(payload, service_id)
    result = (service or {}).get("RESULT") or payload.get("RESULT") or {}
    rows = (service or {}).get("row")
    return RecipeChunk(
        rows=[r for r in rows if isinstance(r, dict)] if isinstance(rows, list) else [],
        total_count=parse_total_count((service or {}).get("total_count")),
        code=result.get("CODE") if isinstance(result, dict) else None,
        message=result.get("MSG") if isinstance(result, dict) else None,
        has_service=service is not None,
    )


def build_filter_segment(filters: Optional[Mapping[str, Optional[str]]]) -> str:
    parts = [f"{k}={quote(v.strip(), safe='')}" for k, v in (filters or {}).items() if v and v.strip()]
    return "/" + "&".join(parts) if parts else ""


class MfdsClient:
    def __init__(
        self,
        api_key: Optional[str],
        *,
        base_url: str = settings.MFDS_BASE_URL,
        service_id: str = settings.MFDS_SERVICE_ID,
        timeout: float = settings.UPSTREAM_TIMEOUT_SECONDS,
        retry: Optional[RetryPolicy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise ConfigurationError("MFDS_API_KEY(또는 FOODSAFETY_API_KEY)가 설정되어 있지 않습니다.")
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.service_id = service_id
        self.retry = retry or RetryPolicy(settings.UPSTREAM_RETRY_COUNT, settings.UPSTREAM_RETRY_DELAY_SECONDS)
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(timeout), transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    def _path(self, start: int, end: int, filters: Optional[Mapping[str, Optional[str]]] = None) -> str:
        return f"{self.service_id}/json/{start}/{end}{build_filter_segment(filters)}"

    def _masked(self, path: str) -> str:
        return f"{self.base_url}/***/{path}"

    async def _get_once(self, path: str) -> Any:
        url = f"{self.base_url}/{self._api_key}/{path}"
        try:
            resp = await self._client.get(url)
        except httpx.TimeoutException as e:
            raise UpstreamTransientError(f"식약처 API 응답 시간 초과 ({type(e).__name__})") from e
        except httpx.TransportError as e:
            raise UpstreamTransientError(f"식약처 API 네트워크 오류 ({type(e).__name__})") from e

        if resp.status_code == 429 or resp.status_code >= 500:
            raise UpstreamTransientError(f"식약처 API 호출 실패 ({resp.status_code})", status=resp.status_code)
        if resp.status_code >= 400:
            raise UpstreamFailure(f"식약처 API 호출 실패 ({resp.status_code})", status=resp.status_code)

        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamFailure("식약처 API 응답을 해석할 수 없습니다.") from e

    async def fetch_json(self, path: str) -> Any:
        log.debug("GET %s", self._masked(path))
        return await self.retry.run(lambda: self._get_once(path), label="식약처 API")

    async def fetch_page(
        self, start: int, end: int, filters: Optional[Mapping[str, Optional[str]]] = None
    ) -> RecipeChunk:
        """결과 코드와 상관없이 그대로 반환 (목록 API용)."""
        return parse_chunk(await self.fetch_json(self._path(start, end, filters)), self.service_id)

    async def fetch_recipe_chunk(self, start: int, end: int) -> RecipeChunk:
        """결과 코드가 성공이 아니면 UpstreamFailure (카탈로그 빌드용)."""
        chunk = await self.fetch_page(start, end)
        if chunk.code and chunk.code != SUCCESS_CODE:
            raise UpstreamFailure(f"식약처 API 오류 ({chunk.code})", code=chunk.code)
        return chunk

    async def get_recipe(self, seq: str) -> Optional[Dict[str, Any]]:
        # RCP_SEQ 필터 결과에서 같은 번호 우선, 없으면 첫 행
        chunk = await self.fetch_page(1, 5, {"RCP_SEQ": seq})
        if not chunk.rows:
            return None
        for row in chunk.rows:
            if str(row.get("RCP_SEQ") or "") == seq:
                return row
        return chunk.rows[0]
