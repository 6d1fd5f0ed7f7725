"""masweep.sweep.single

One engine run for one combination, with an explicit price file.

Unlike a sweep, nothing is degraded here: if the config cannot be written or
the engine cannot start, the caller gets the exception.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from masweep.core.config import Config
from masweep.core.types import Metrics, ParameterCombination, RunOutput
from masweep.sweep.extractor import Extractor, MetricsExtractor
from masweep.sweep.runner import ProcessRunner
from masweep.sweep.serializer import EngineConfig, write_engine_config


@dataclass(frozen=True, slots=True)
class SingleRunReport:
    combination: ParameterCombination
    output: RunOutput  # kept whole; the caller displays it
    metrics: Metrics


def run_single(
    combination: ParameterCombination,
    csv_file: Path,
    *,
    config: Config,
    runner: ProcessRunner | None = None,
    extractor: Extractor | None = None,
) -> SingleRunReport:
    if not combination.is_valid:
        raise ValueError(f"short window must be below long window: {combination.label()}")

    cfg = EngineConfig.build(combination, config.economics, csv_file=csv_file)
    handle = write_engine_config(cfg, config.engine.config_path, working_dir=config.engine.working_dir)
    runner = runner or ProcessRunner.from_settings(config.engine)
    out = runner.run(handle)
    metrics = (extractor or MetricsExtractor()).extract(out.text)
    return SingleRunReport(combination=combination, output=out, metrics=metrics)
