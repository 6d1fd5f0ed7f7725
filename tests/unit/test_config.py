from __future__ import annotations

from pathlib import Path

import pytest

from masweep.core.config import Config, EconomicParameters, EngineSettings, SweepSettings
from masweep.core.exceptions import ConfigError
from masweep.core.types import MAKind

REPO_ROOT = Path(__file__).resolve().parents[2]


def test_defaults_match_reference_sweep() -> None:
    cfg = Config()
    assert cfg.economics == EconomicParameters(
        initial_capital=10000.0, flat_fee=5.0, percent_fee=0.001, slippage=0.001, dividend_yield=0.02, position_size=1.0
    )
    assert cfg.sweep.short_windows == [10, 20, 50]
    assert cfg.sweep.long_windows == [100, 150, 200]
    assert cfg.sweep.ma_types == [MAKind.SMA, MAKind.WMA]
    assert cfg.sweep.max_workers == 1
    assert cfg.engine.config_path == Path("data/config.json")
    assert cfg.engine.timeout_s is None


def test_repo_default_yaml_loads() -> None:
    cfg = Config.from_repo_defaults(REPO_ROOT)
    assert cfg.engine.binary == Path("cpp_engine/bin/test_csvparser")
    assert cfg.sweep.top_k == 10


def test_from_yaml_with_user_overlay(tmp_path: Path) -> None:
    cfg_dir = tmp_path / "config"
    cfg_dir.mkdir()
    (cfg_dir / "default.yaml").write_text("sweep:\n  short_windows: [5, 8]\n  top_k: 3\n")
    (cfg_dir / "user.yaml").write_text("sweep:\n  top_k: 7\nengine:\n  timeout_s: 30\n")

    cfg = Config.from_yaml(cfg_dir / "default.yaml")
    assert cfg.sweep.short_windows == [5, 8]
    assert cfg.sweep.top_k == 7
    assert cfg.engine.timeout_s == 30.0


def test_config_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MASWEEP_ENGINE__BINARY", "/opt/engine/sim")
    monkeypatch.setenv("MASWEEP_SWEEP__MAX_WORKERS", "4")
    cfg = Config()  # BaseSettings reads env
    assert cfg.engine.binary == Path("/opt/engine/sim")
    assert cfg.sweep.max_workers == 4


def test_config_from_yaml_raises_if_missing(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        Config.from_yaml(tmp_path / "missing.yaml")


def test_config_from_yaml_raises_on_invalid_values(tmp_path: Path) -> None:
    p = tmp_path / "default.yaml"
    p.write_text("economics:\n  position_size: 2.5\n")
    with pytest.raises(ConfigError):
        Config.from_yaml(p)


def test_config_from_yaml_raises_on_non_mapping(tmp_path: Path) -> None:
    p = tmp_path / "default.yaml"
    p.write_text("- just\n- a list\n")
    with pytest.raises(ConfigError):
        Config.from_yaml(p)


def test_load_falls_back_to_builtin_defaults(tmp_path: Path) -> None:
    assert Config.load(repo_root=tmp_path).sweep.top_k == 10


def test_ma_types_parsed_case_insensitively() -> None:
    assert SweepSettings(ma_types=["sma", "Wma"]).ma_types == [MAKind.SMA, MAKind.WMA]
    assert SweepSettings(ma_types="SMA,WMA").ma_types == [MAKind.SMA, MAKind.WMA]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"short_windows": [0, 10]},
        {"long_windows": [-5]},
        {"ma_types": ["EMA"]},
        {"max_workers": 0},
        {"top_k": -1},
    ],
)
def test_sweep_settings_validation(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        SweepSettings(**kwargs)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"initial_capital": 0.0},
        {"flat_fee": -1.0},
        {"percent_fee": -0.001},
        {"position_size": 0.0},
    ],
)
def test_economics_validation(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        EconomicParameters(**kwargs)


def test_engine_timeout_must_be_positive() -> None:
    with pytest.raises(ValueError):
        EngineSettings(timeout_s=0)


def test_engine_argv() -> None:
    assert EngineSettings(binary=Path("sim"), args=["-q"]).argv() == ["sim", "-q"]
