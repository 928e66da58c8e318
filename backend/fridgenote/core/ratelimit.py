# 고정 윈도우 요청 제한 (프로세스 전역, 클라이언트 키별 버킷)
# 체크할 때마다 만료된 버킷을 같이 정리한다.

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

from fridgenote.core.errors import RateLimitExceeded


@dataclass
class Bucket:
    count: int
    window_started_at: float


class RateLimiter:
    def __init__(self, window_seconds: float, max_requests: int, clock: Callable[[], float] = time.monotonic):
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self._clock = clock
        self._buckets: Dict[str, Bucket] = {}
        # sync 의존성은 스레드풀에서 돌 수 있으므로 lock으로 보호
        self._lock = threading.Lock()

    def _prune(self, now: float) -> None:
        expired = [k for k, b in self._buckets.items() if now - b.window_started_at > self.window_seconds]
        for k in expired:
            del self._buckets[k]

    def hit(self, key: str) -> None:
        """요청 1회 기록. 한도 초과면 RateLimitExceeded."""
        with self._lock:
            now = self._clock()
            self._prune(now)

            bucket = self._buckets.get(key)
            if bucket is None:
                self._buckets[key] = Bucket(count=1, window_started_at=now)
                return

            if bucket.count >= self.max_requests:
                left = self.window_seconds - (now - bucket.window_started_at)
                raise RateLimitExceeded(retry_after=max(1, math.ceil(left)))

            bucket.count += 1

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)
