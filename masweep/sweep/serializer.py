"""masweep.sweep.serializer

Engine config artifact.

The engine takes no arguments. It reads `data/config.json` relative to its own
working directory. So every run is: render config, write it where the engine
will look, hand the runner a handle that says where that is.
"""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel

from masweep.core.config import EconomicParameters
from masweep.core.exceptions import ConfigWriteError
from masweep.core.types import MAKind, ParameterCombination


class EngineConfig(BaseModel):
    """Everything one engine run needs. Field names are the engine's."""

    model_config = {"frozen": True}

    short_ma_window: int
    long_ma_window: int
    short_ma_type: MAKind
    long_ma_type: MAKind
    initial_capital: float
    flat_fee: float
    percent_fee: float
    slippage: float
    dividend_yield: float
    position_size: float
    # Single runs always set this; sweeps only when configured.
    csv_file: str | None = None

    @classmethod
    def build(
        cls,
        combination: ParameterCombination,
        economics: EconomicParameters,
        *,
        csv_file: Path | str | None = None,
    ) -> EngineConfig:
        return cls(
            short_ma_window=combination.short_window,
            long_ma_window=combination.long_window,
            short_ma_type=combination.short_kind,
            long_ma_type=combination.long_kind,
            csv_file=str(Path(csv_file).expanduser().resolve()) if csv_file is not None else None,
            **economics.model_dump(),
        )


@dataclass(frozen=True, slots=True)
class ConfigHandle:
    path: Path  # where the artifact was written
    working_dir: Path  # where the engine must be started


def render_engine_config(cfg: EngineConfig) -> bytes:
    data = cfg.model_dump(mode="json", exclude_none=True)
    return (json.dumps(data, indent=2) + "\n").encode("utf-8")


def write_engine_config(cfg: EngineConfig, path: Path, *, working_dir: Path) -> ConfigHandle:
    """Write `cfg` to `path` (relative paths resolve against `working_dir`).

    The file is replaced atomically: readers see the old artifact or the new
    one, never a torn write.

    Raises:
        ConfigWriteError: the directory or file could not be written.
    """

    target = path if path.is_absolute() else working_dir / path
    payload = render_engine_config(cfg)

    tmp_name: str | None = None
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile("wb", dir=target.parent, prefix=".config.", delete=False) as f:
            tmp_name = f.name
            f.write(payload)
        os.replace(tmp_name, target)
        tmp_name = None
    except OSError as e:
        raise ConfigWriteError(f"could not write engine config {target}: {e}") from e
    finally:
        if tmp_name is not None:
            Path(tmp_name).unlink(missing_ok=True)

    return ConfigHandle(path=target, working_dir=working_dir)
