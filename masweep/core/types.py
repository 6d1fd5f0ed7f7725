"""masweep.core.types

Lightweight dataclasses for hot-path objects.

Pydantic models own IO boundaries; dataclasses keep runtime lean.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import StrEnum


class MAKind(StrEnum):
    SMA = "SMA"  # simple
    WMA = "WMA"  # weighted

    @classmethod
    def parse(cls, value: str | MAKind) -> MAKind:
        """Case-insensitive lookup. Raises ValueError on unknown kinds."""

        if isinstance(value, MAKind):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            allowed = ", ".join(k.value for k in cls)
            raise ValueError(f"unknown moving-average kind {value!r} (expected one of: {allowed})") from None


@dataclass(frozen=True, slots=True)
class ParameterCombination:
    short_window: int
    long_window: int
    short_kind: MAKind
    long_kind: MAKind

    @property
    def is_valid(self) -> bool:
        return self.short_window < self.long_window

    def label(self) -> str:
        return f"{self.short_kind}-{self.short_window}/{self.long_kind}-{self.long_window}"


@dataclass(frozen=True, slots=True)
class Metrics:
    cagr: float = 0.0  # fraction
    sharpe: float = 0.0
    max_drawdown: float = 0.0  # fraction, sign as reported by the engine
    total_return: float = 0.0  # fraction

    @classmethod
    def zero(cls) -> Metrics:
        return cls()

    def is_zero(self) -> bool:
        return self.cagr == 0.0 and self.sharpe == 0.0 and self.max_drawdown == 0.0 and self.total_return == 0.0


@dataclass(frozen=True, slots=True)
class RunOutput:
    text: str  # stdout + stderr, interleaved in emission order
    returncode: int
    duration_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass(frozen=True, slots=True)
class SweepResult:
    combination: ParameterCombination
    metrics: Metrics
    index: int = 0  # position in enumeration order
    returncode: int | None = None
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def sort_key(self) -> float:
        """Descending-CAGR key. NaN sorts after every real number."""

        c = self.metrics.cagr
        return math.inf if math.isnan(c) else -c
