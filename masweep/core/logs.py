"""masweep.core.logs

Call sites use stdlib logging. Messages are event names (`sweep_run_failed`);
context goes in `extra`. structlog's ProcessorFormatter renders those records
as key=value lines or one JSON object per line.
"""

from __future__ import annotations

import logging

import structlog

from masweep.core.config import LoggingConfig

_PRE_CHAIN = [
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.ExtraAdder(),
    structlog.processors.TimeStamper(fmt="iso", key="ts"),
]


def build_formatter(json_output: bool = False) -> structlog.stdlib.ProcessorFormatter:
    renderer = (
        structlog.processors.JSONRenderer(sort_keys=True)
        if json_output
        else structlog.processors.KeyValueRenderer(key_order=["ts", "level", "logger", "event"], sort_keys=True)
    )
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_PRE_CHAIN,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
    )


def configure_logging(cfg: LoggingConfig | None = None) -> None:
    cfg = cfg or LoggingConfig()
    handler = logging.StreamHandler()
    handler.setFormatter(build_formatter(cfg.json_output))

    root = logging.getLogger("masweep")
    root.handlers[:] = [handler]
    root.setLevel(cfg.level.upper())
