# 외부 API 재시도 정책
# - UpstreamTransientError만 재시도, 그 외 예외는 그대로 전파
# - 대기 시간은 base_delay × 시도 번호 (0.25s, 0.5s, ...)
# - 재시도 소진 시 UpstreamFailure로 승격

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

from fridgenote.core.errors import UpstreamFailure, UpstreamTransientError

log = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 2
    base_delay: float = 0.25
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False, compare=False)

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def backoff(self, attempt: int) -> float:
        # attempt는 1부터 (첫 실패 뒤 대기 = base_delay)
        return self.base_delay * attempt

    async def run(self, call: Callable[[], Awaitable[T]], *, label: str = "upstream") -> T:
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await call()
            except UpstreamTransientError as e:
                if attempt >= self.max_attempts:
                    raise UpstreamFailure(
                        f"{label} 호출 재시도에 실패했습니다. ({e.message})", status=e.status, code=e.code
                    ) from e
                delay = self.backoff(attempt)
                log.warning("%s transient error (attempt %d/%d): %s, retry in %.2fs",
                            label, attempt, self.max_attempts, e.message, delay)
                await self.sleep(delay)
        # max_attempts >= 1 이므로 도달하지 않음
        raise UpstreamFailure(f"{label} 호출 재시도에 실패했습니다.")
