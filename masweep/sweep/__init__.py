"""masweep.sweep

Parameter sweep engine.

serializer -> runner -> extractor, driven per combination by the orchestrator;
the ranker orders what comes back.
"""

from .extractor import DEFAULT_RULES, ExtractionRule, MetricsExtractor
from .orchestrator import SweepOrchestrator, enumerate_grid, sweep, valid_combinations
from .ranker import format_result, rank_results, top_k
from .runner import ProcessRunner
from .serializer import ConfigHandle, EngineConfig, render_engine_config, write_engine_config
from .single import SingleRunReport, run_single

__all__ = [
    "ConfigHandle",
    "DEFAULT_RULES",
    "EngineConfig",
    "ExtractionRule",
    "MetricsExtractor",
    "ProcessRunner",
    "SingleRunReport",
    "SweepOrchestrator",
    "enumerate_grid",
    "format_result",
    "rank_results",
    "render_engine_config",
    "run_single",
    "sweep",
    "top_k",
    "valid_combinations",
    "write_engine_config",
]
