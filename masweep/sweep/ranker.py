"""masweep.sweep.ranker

Order results for presentation.

Descending CAGR, stable: ties keep enumeration order. No filtering, no
recomputation. A run that failed ranks on its zero CAGR like any other.
"""

from __future__ import annotations

from collections.abc import Iterable

from masweep.core.types import SweepResult


def rank_results(results: Iterable[SweepResult]) -> list[SweepResult]:
    # sorted() is stable; NaN CAGR is pushed to the end by sort_key.
    return sorted(results, key=SweepResult.sort_key)


def top_k(results: Iterable[SweepResult], k: int) -> list[SweepResult]:
    """The best `k` by CAGR. Fewer than `k` results returns all of them."""

    if k < 0:
        raise ValueError(f"k must be >= 0, got {k}")
    return rank_results(results)[:k]


def format_result(result: SweepResult) -> str:
    c = result.combination
    m = result.metrics
    line = (
        f"{c.short_window:3d}/{c.long_window:3d} {c.short_kind:>3s}/{c.long_kind:>3s}  "
        f"CAGR: {m.cagr * 100:.2f}%  Sharpe: {m.sharpe:.2f}  "
        f"MaxDD: {m.max_drawdown * 100:.2f}%  Return: {m.total_return * 100:.2f}%"
    )
    if result.error:
        line += f"  [failed: {result.error}]"
    return line


def format_table(results: Iterable[SweepResult]) -> str:
    return "\n".join(format_result(r) for r in results)
