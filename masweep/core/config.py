"""masweep.core.config

Two config surfaces only:
1) `config/default.yaml` (optionally `config/user.yaml`)
2) Environment variables, prefixed `MASWEEP_`, nested with `__`

Everything else is derived.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from masweep.core.exceptions import ConfigError
from masweep.core.types import MAKind


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = dict(base)
    for k, v in overlay.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


class EngineSettings(BaseModel):
    """How to reach the external engine."""

    binary: Path = Path("cpp_engine/bin/test_csvparser")
    args: list[str] = Field(default_factory=list)
    working_dir: Path = Path(".")
    # Relative to working_dir; the engine resolves it from its own cwd.
    config_path: Path = Path("data/config.json")
    timeout_s: float | None = None

    @field_validator("timeout_s")
    @classmethod
    def timeout_must_be_positive(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("timeout_s must be > 0 (or null for no deadline)")
        return v

    def argv(self) -> list[str]:
        return [str(self.binary), *self.args]


class EconomicParameters(BaseModel):
    """Constants for a whole sweep. Defaults match the engine's reference run."""

    initial_capital: float = 10000.0
    flat_fee: float = 5.0
    percent_fee: float = 0.001
    slippage: float = 0.001
    dividend_yield: float = 0.02
    position_size: float = 1.0

    @field_validator("initial_capital")
    @classmethod
    def capital_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("initial_capital must be > 0")
        return v

    @field_validator("flat_fee", "percent_fee", "slippage")
    @classmethod
    def costs_cannot_be_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("fees and slippage must be >= 0")
        return v

    @field_validator("position_size")
    @classmethod
    def position_size_is_a_fraction(cls, v: float) -> float:
        if not 0.0 < v <= 1.0:
            raise ValueError("position_size must be in (0, 1]")
        return v


class SweepSettings(BaseModel):
    short_windows: list[int] = [10, 20, 50]
    long_windows: list[int] = [100, 150, 200]
    ma_types: list[MAKind] = [MAKind.SMA, MAKind.WMA]
    top_k: int = 10
    max_workers: int = 1
    # Absolute price file handed to every run. None leaves the engine on its default.
    csv_file: Path | None = None

    @field_validator("short_windows", "long_windows")
    @classmethod
    def windows_must_be_positive(cls, v: list[int]) -> list[int]:
        if any(w <= 0 for w in v):
            raise ValueError("window lengths must be positive integers")
        return v

    @field_validator("ma_types", mode="before")
    @classmethod
    def parse_ma_types(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = [p for p in v.split(",") if p.strip()]
        if isinstance(v, list):
            return [MAKind.parse(x) for x in v]
        return v

    @field_validator("top_k")
    @classmethod
    def top_k_cannot_be_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("top_k must be >= 0")
        return v

    @field_validator("max_workers")
    @classmethod
    def max_workers_at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_workers must be >= 1")
        return v


class LoggingConfig(BaseModel):
    level: str = "INFO"
    json_output: bool = False


class Config(BaseSettings):
    """Root configuration. Single source of truth."""

    engine: EngineSettings = Field(default_factory=EngineSettings)
    economics: EconomicParameters = Field(default_factory=EconomicParameters)
    sweep: SweepSettings = Field(default_factory=SweepSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"env_prefix": "MASWEEP_", "env_nested_delimiter": "__"}

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")

        try:
            raw = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Config file is not valid YAML: {path}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigError(f"Config file must hold a mapping: {path}")

        # User overlay sits next to the defaults.
        user = path.parent / "user.yaml"
        if path.name != "user.yaml" and user.exists():
            user_data = yaml.safe_load(user.read_text()) or {}
            if isinstance(user_data, dict):
                raw = _deep_merge(raw, user_data)

        try:
            return cls(**raw)
        except ValidationError as e:
            raise ConfigError(f"Invalid config in {path}: {e}") from e

    @classmethod
    def from_repo_defaults(cls, repo_root: Path | None = None) -> Config:
        root = repo_root or Path.cwd()
        return cls.from_yaml(root / "config" / "default.yaml")

    @classmethod
    def load(cls, path: Path | None = None, *, repo_root: Path | None = None) -> Config:
        """Explicit path, else repo defaults, else built-in defaults."""

        if path is not None:
            return cls.from_yaml(path)
        root = repo_root or Path.cwd()
        default = root / "config" / "default.yaml"
        if default.exists():
            return cls.from_yaml(default)
        return cls()
