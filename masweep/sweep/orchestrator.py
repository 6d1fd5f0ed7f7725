"""masweep.sweep.orchestrator

Grid sweep harness.

Enumeration order is fixed: short window, then long window, then short kind,
then long kind, innermost fastest. Combinations with short >= long are skipped
before anything is written or launched.

Every surviving combination yields exactly one SweepResult. A failed run
degrades to zero metrics with `error` set; it never ends the sweep.

Two execution modes:
- max_workers == 1: strictly sequential, one shared working dir and config
  path, overwritten before each run. This is what the engine expects.
- max_workers > 1: bounded thread pool, each run in its own temporary working
  dir with its own config artifact. Output is re-sorted into enumeration order.
  Anything the engine resolves relative to its cwd (e.g. a default price file)
  is not there, so set `sweep.csv_file`.
"""

from __future__ import annotations

import itertools
import logging
import tempfile
import threading
import time
from collections.abc import Callable, Iterable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from masweep.core.config import Config, EconomicParameters, EngineSettings
from masweep.core.exceptions import SweepCancelledError, SweepError
from masweep.core.metrics import REGISTRY, MetricsRegistry
from masweep.core.types import MAKind, Metrics, ParameterCombination, SweepResult
from masweep.sweep.extractor import Extractor, MetricsExtractor
from masweep.sweep.runner import ProcessRunner
from masweep.sweep.serializer import EngineConfig, write_engine_config

ResultCallback = Callable[[SweepResult], None]


def enumerate_grid(
    short_windows: Iterable[int],
    long_windows: Iterable[int],
    kinds: Iterable[MAKind | str],
) -> Iterator[ParameterCombination]:
    """Full Cartesian product in canonical order, invalid tuples included."""

    kind_list = [MAKind.parse(k) for k in kinds]
    for short_w, long_w, short_k, long_k in itertools.product(list(short_windows), list(long_windows), kind_list, kind_list):
        yield ParameterCombination(short_window=int(short_w), long_window=int(long_w), short_kind=short_k, long_kind=long_k)


def valid_combinations(
    short_windows: Iterable[int],
    long_windows: Iterable[int],
    kinds: Iterable[MAKind | str],
) -> list[ParameterCombination]:
    return [c for c in enumerate_grid(short_windows, long_windows, kinds) if c.is_valid]


class SweepOrchestrator:
    def __init__(
        self,
        engine: EngineSettings,
        economics: EconomicParameters,
        *,
        max_workers: int = 1,
        csv_file: Path | None = None,
        runner: ProcessRunner | None = None,
        extractor: Extractor | None = None,
        metrics: MetricsRegistry | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        if max_workers > 1 and engine.config_path.is_absolute():
            raise ValueError("parallel sweeps need a config_path relative to the working dir")
        self.engine = engine
        self.economics = economics
        self.max_workers = int(max_workers)
        self.csv_file = csv_file
        self.runner = runner or ProcessRunner.from_settings(engine)
        self.extractor = extractor or MetricsExtractor()
        self.metrics = metrics or REGISTRY
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config: Config, **kwargs) -> SweepOrchestrator:
        kwargs.setdefault("max_workers", config.sweep.max_workers)
        kwargs.setdefault("csv_file", config.sweep.csv_file)
        return cls(config.engine, config.economics, **kwargs)

    @property
    def isolated(self) -> bool:
        return self.max_workers > 1

    def run(
        self,
        short_windows: Sequence[int],
        long_windows: Sequence[int],
        kinds: Sequence[MAKind | str],
        *,
        cancel: threading.Event | None = None,
        on_result: ResultCallback | None = None,
    ) -> list[SweepResult]:
        """Evaluate every valid combination. Unranked, in enumeration order.

        If `cancel` is set, no new combination is launched, in-flight runs are
        killed, and the partial collection is returned.
        """

        start = time.monotonic()
        planned: list[tuple[int, ParameterCombination]] = []
        skipped = 0
        for i, combo in enumerate(enumerate_grid(short_windows, long_windows, kinds)):
            if combo.is_valid:
                planned.append((i, combo))
            else:
                skipped += 1
        self.metrics.counter("sweep.combinations_skipped").inc(skipped)

        self.logger.info(
            "sweep_started",
            extra={"combinations": len(planned), "skipped": skipped, "workers": self.max_workers},
        )

        if self.isolated and len(planned) > 1:
            results = self._run_parallel(planned, cancel, on_result)
        else:
            results = self._run_sequential(planned, cancel, on_result)

        elapsed = time.monotonic() - start
        self.metrics.gauge("sweep.last_duration_s").set(elapsed)
        cancelled = len(results) < len(planned)
        self.logger.info(
            "sweep_cancelled" if cancelled else "sweep_finished",
            extra={"results": len(results), "planned": len(planned), "duration_s": round(elapsed, 3)},
        )
        return results

    def _run_sequential(
        self,
        planned: list[tuple[int, ParameterCombination]],
        cancel: threading.Event | None,
        on_result: ResultCallback | None,
    ) -> list[SweepResult]:
        results: list[SweepResult] = []
        for index, combo in planned:
            if cancel is not None and cancel.is_set():
                break
            res = self._evaluate(index, combo, cancel)
            if res is None:
                break
            results.append(res)
            if on_result is not None:
                on_result(res)
        return results

    def _run_parallel(
        self,
        planned: list[tuple[int, ParameterCombination]],
        cancel: threading.Event | None,
        on_result: ResultCallback | None,
    ) -> list[SweepResult]:
        results: list[SweepResult] = []
        lock = threading.Lock()

        def task(index: int, combo: ParameterCombination) -> None:
            # Queued tasks see the cancel flag before launching anything.
            if cancel is not None and cancel.is_set():
                return
            res = self._evaluate(index, combo, cancel)
            if res is None:
                return
            with lock:
                results.append(res)
                if on_result is not None:
                    on_result(res)

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="masweep") as pool:
            futures = [pool.submit(task, index, combo) for index, combo in planned]
            for fut in futures:
                fut.result()

        results.sort(key=lambda r: r.index)
        return results

    def _evaluate(
        self,
        index: int,
        combo: ParameterCombination,
        cancel: threading.Event | None,
    ) -> SweepResult | None:
        """One combination, start to finish. None means cancelled mid-run."""

        cfg = EngineConfig.build(combo, self.economics, csv_file=self.csv_file)
        self.metrics.counter("sweep.runs_started").inc()
        try:
            if self.isolated:
                with tempfile.TemporaryDirectory(prefix="masweep-run-") as tmp:
                    return self._write_run_extract(index, combo, cfg, Path(tmp), cancel)
            return self._write_run_extract(index, combo, cfg, self.engine.working_dir, cancel)
        except SweepCancelledError:
            self.logger.info("sweep_run_cancelled", extra={"index": index, "combination": combo.label()})
            return None
        except SweepError as e:
            self.metrics.counter("sweep.runs_failed").inc()
            self.logger.warning(
                "sweep_run_failed",
                extra={"index": index, "combination": combo.label(), "error_type": type(e).__name__, "error": str(e)},
            )
            return SweepResult(combination=combo, metrics=Metrics.zero(), index=index, error=f"{type(e).__name__}: {e}")

    def _write_run_extract(
        self,
        index: int,
        combo: ParameterCombination,
        cfg: EngineConfig,
        working_dir: Path,
        cancel: threading.Event | None,
    ) -> SweepResult:
        handle = write_engine_config(cfg, self.engine.config_path, working_dir=working_dir)
        out = self.runner.run(handle, cancel=cancel)
        if not out.ok:
            # Partial output still counts; the engine may have printed metrics first.
            self.metrics.counter("sweep.runs_nonzero_exit").inc()
            self.logger.warning(
                "sweep_run_nonzero_exit",
                extra={"index": index, "combination": combo.label(), "returncode": out.returncode},
            )
        metrics = self.extractor.extract(out.text)
        self.logger.debug(
            "sweep_run_done",
            extra={"index": index, "combination": combo.label(), "cagr": metrics.cagr, "duration_s": round(out.duration_s, 3)},
        )
        return SweepResult(combination=combo, metrics=metrics, index=index, returncode=out.returncode)


def sweep(
    short_windows: Sequence[int] | None = None,
    long_windows: Sequence[int] | None = None,
    kinds: Sequence[MAKind | str] | None = None,
    *,
    config: Config | None = None,
    cancel: threading.Event | None = None,
) -> list[SweepResult]:
    """Run a sweep from config; any grid axis left as None comes from config."""

    config = config or Config.load()
    orch = SweepOrchestrator.from_config(config)
    return orch.run(
        short_windows if short_windows is not None else config.sweep.short_windows,
        long_windows if long_windows is not None else config.sweep.long_windows,
        kinds if kinds is not None else config.sweep.ma_types,
        cancel=cancel,
    )
