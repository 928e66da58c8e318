# 서비스 공통 예외 + FastAPI 예외 핸들러
# - 코어(정규화/분류/매칭)는 예외를 던지지 않는다. 여기 예외는 I/O 경계와 요청 처리에서만 사용
# - 응답 바디는 프론트와 맞춰 {"message": "..."} 하나로 통일

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

log = logging.getLogger(__name__)


class FridgeNoteError(Exception):
    status_code = 500
    default_message = "요청을 처리하는 중 오류가 발생했습니다."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class QueryValidationError(FridgeNoteError):
    # 사용자 입력 범위/문자 위반 (재시도 없음)
    status_code = 400
    default_message = "요청 값이 올바르지 않습니다."


class ConfigurationError(FridgeNoteError):
    # 필수 키/환경변수 누락. 메시지에 값은 절대 넣지 않는다
    status_code = 500
    default_message = "서버 설정이 올바르지 않습니다."


class UpstreamFailure(FridgeNoteError):
    # 재시도 불가 상태코드, 재시도 소진, 응답 형식 오류, 결과 코드 실패
    status_code = 502
    default_message = "외부 데이터 제공처 호출에 실패했습니다."

    def __init__(self, message: Optional[str] = None, *, status: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.code = code


class UpstreamTransientError(UpstreamFailure):
    # 429/5xx, 타임아웃, 네트워크 오류 → 재시도 대상
    pass


class RateLimitExceeded(FridgeNoteError):
    status_code = 429
    default_message = "요청이 너무 많습니다. 잠시 후 다시 시도해 주세요."

    def __init__(self, retry_after: Optional[int] = None, message: Optional[str] = None):
        super().__init__(message)
        self.retry_after = retry_after


class NotFoundError(FridgeNoteError):
    status_code = 404
    default_message = "요청한 항목을 찾을 수 없습니다."


class ForbiddenError(FridgeNoteError):
    # 다른 기기가 쓴 글/댓글 수정, 삭제
    status_code = 403
    default_message = "권한이 없습니다."


class StorageUnavailable(FridgeNoteError):
    # Mongo 미연결 (startup 재시도 실패 등)
    status_code = 503
    default_message = "저장소에 연결할 수 없습니다. 잠시 후 다시 시도해 주세요."


async def _handle_fridgenote_error(request: Request, exc: FridgeNoteError) -> JSONResponse:
    headers = {}
    if isinstance(exc, RateLimitExceeded):
        # 정상적인 차단이므로 에러 로그 대신 info
        log.info("rate limited path=%s", request.url.path)
        if exc.retry_after:
            headers["Retry-After"] = str(exc.retry_after)
    elif exc.status_code >= 500:
        log.error("%s path=%s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message}, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FridgeNoteError, _handle_fridgenote_error)
