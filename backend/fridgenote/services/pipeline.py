# 문자열 정규화 파이프라인 (str → str 단계를 순서대로 적용)
# 매칭용/분류용 정규화가 같은 단계 인터페이스를 쓰되, 표(별칭/수식어)는 각자 따로 가진다.

from __future__ import annotations

import re
from typing import Callable, Iterable, Optional, Pattern, Sequence, Tuple, Union

Step = Callable[[str], str]

_SPACES_RE = re.compile(r"\s+")


def sub(pattern: Union[str, Pattern[str]], repl: str = " ", flags: int = 0) -> Step:
    rx = re.compile(pattern, flags) if isinstance(pattern, str) else pattern

    def _step(s: str) -> str:
        return rx.sub(repl, s)

    return _step


def aliases(rules: Sequence[Tuple[Pattern[str], str]]) -> Step:
    # 나열 순서대로 적용 (뒤 규칙이 앞 규칙 결과를 다시 볼 수 있음)
    def _step(s: str) -> str:
        for rx, canon in rules:
            s = rx.sub(canon, s)
        return s

    return _step


def lower(s: str) -> str:
    return s.lower()


def collapse_spaces(s: str) -> str:
    return _SPACES_RE.sub(" ", s).strip()


class TextPipeline:
    def __init__(self, name: str, steps: Iterable[Step]):
        self.name = name
        self.steps: Tuple[Step, ...] = tuple(steps)

    def __call__(self, value: Optional[str]) -> str:
        s = value if isinstance(value, str) else ""
        for step in self.steps:
            s = step(s)
        return s

    def __repr__(self) -> str:
        return f"TextPipeline({self.name!r}, steps={len(self.steps)})"
