"""masweep.sweep.extractor

Metrics from engine text.

The engine prints human-readable lines like `CAGR: 12.50%`. There is no
schema, so extraction is a table of label rules:
- a line matches a rule if it *contains* the label, anywhere
- the value is whatever follows the first `:` on that line
- percent rules strip `%` and divide by 100
- the last matching line wins, even when its value fails to parse (-> 0.0)

Line order carries no meaning. A label that never appears leaves its field at 0.0.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, fields
from typing import Protocol, runtime_checkable

from masweep.core.exceptions import MetricParseError
from masweep.core.types import Metrics

logger = logging.getLogger(__name__)

_METRIC_FIELDS = frozenset(f.name for f in fields(Metrics))
_DECIMAL = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


@dataclass(frozen=True, slots=True)
class ExtractionRule:
    label: str
    field: str  # attribute of Metrics
    percent: bool = False

    def __post_init__(self) -> None:
        if self.field not in _METRIC_FIELDS:
            raise ValueError(f"unknown metrics field: {self.field}")
        if not self.label:
            raise ValueError("label must be non-empty")


DEFAULT_RULES: tuple[ExtractionRule, ...] = (
    ExtractionRule("CAGR:", "cagr", percent=True),
    ExtractionRule("Sharpe Ratio:", "sharpe"),
    ExtractionRule("Max Drawdown:", "max_drawdown", percent=True),
    ExtractionRule("Total Return:", "total_return", percent=True),
)


@runtime_checkable
class Extractor(Protocol):
    def extract(self, text: str) -> Metrics: ...


def parse_value(line: str, rule: ExtractionRule) -> float:
    """Parse the value of a line already known to match `rule`.

    Raises:
        MetricParseError: no `:` on the line, or the value is not a number.
    """

    _, sep, raw = line.partition(":")
    if not sep:
        raise MetricParseError(f"no ':' in line {line!r}")
    if rule.percent:
        raw = raw.replace("%", "")
    raw = raw.strip()
    # float() alone would also take `1_000`, `inf` and `nan`.
    if not _DECIMAL.fullmatch(raw):
        raise MetricParseError(f"{rule.label} value {raw!r} is not a number")
    value = float(raw)
    return value / 100.0 if rule.percent else value


class MetricsExtractor:
    def __init__(self, rules: Iterable[ExtractionRule] = DEFAULT_RULES) -> None:
        self.rules = tuple(rules)

    def extract(self, text: str) -> Metrics:
        values: dict[str, float] = {}
        for line in text.splitlines():
            # One line can satisfy several rules; each is applied.
            for rule in self.rules:
                if rule.label not in line:
                    continue
                try:
                    values[rule.field] = parse_value(line, rule)
                except MetricParseError as e:
                    values[rule.field] = 0.0
                    logger.debug("metric_parse_failed", extra={"label": rule.label, "reason": str(e)})
        return Metrics(**values)
