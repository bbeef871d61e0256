"""Categorical draws that give camera cards severity and trend depth.

No upstream feed carries severity or trend. Both are assigned from fixed candidate
tuples weighted toward ``low`` and ``stable``. The draw source is injectable: any
object with ``choice``, ``randint`` and ``choices`` works, so ``random.Random(seed)``
gives reproducible output in tests.
"""

from __future__ import annotations

from typing import Protocol, Sequence, TypeVar

T = TypeVar("T")

SEVERITY_LEVELS = ("low", "medium", "high", "critical")
TREND_LEVELS = ("improving", "stable", "escalating")

SEVERITY_CANDIDATES = ("low", "low", "low", "medium", "medium", "high")
TREND_CANDIDATES = ("improving", "stable", "stable", "escalating")

CONSTRUCTION_SEVERITY = "medium"


class Draw(Protocol):
    def choice(self, seq: Sequence[T]) -> T: ...

    def randint(self, a: int, b: int) -> int: ...

    def choices(self, population: Sequence[T], *, k: int = 1) -> list[T]: ...


def clamp(value: int, *, minimum: int, maximum: int) -> int:
    return max(minimum, min(maximum, value))


def severity_rank(level: str) -> int:
    return SEVERITY_LEVELS.index(level)


def draw_severity(draw: Draw, status_text: str | None = None) -> str:
    # Always drawn; a construction status overrides the result.
    drawn = draw.choice(SEVERITY_CANDIDATES)
    if status_text and "construction" in status_text.lower():
        return CONSTRUCTION_SEVERITY
    return drawn


def draw_trend(draw: Draw) -> str:
    return draw.choice(TREND_CANDIDATES)


def draw_confidence(draw: Draw, low: int, high: int) -> int:
    return clamp(draw.randint(low, high), minimum=0, maximum=100)
