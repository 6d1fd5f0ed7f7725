from __future__ import annotations

import logging
import sys
import textwrap
from pathlib import Path

import pytest

# pytest may run without installing the project; ensure repo root is importable.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from masweep.core.config import Config, EngineSettings  # noqa: E402

# Stand-in for the real engine. Reads data/config.json from its cwd like the
# real one and prints metrics derived from the windows, so tests can predict
# them. Short window 13 exits non-zero after printing; 17 prints nothing.
FAKE_ENGINE = textwrap.dedent(
    """
    import json
    import sys
    from pathlib import Path

    cfg = json.loads(Path("data/config.json").read_text())
    s = cfg["short_ma_window"]
    l = cfg["long_ma_window"]
    bonus = 1.0 if cfg["short_ma_type"] == "WMA" else 0.0
    if s == 17:
        sys.exit(0)
    print("Parsed 100 rows.")
    print(f"Total Return: {s + l:.2f}%")
    print(f"CAGR: {s / 10 + bonus:.2f}%")
    print(f"Max Drawdown: {-l / 10:.2f}%", file=sys.stderr)
    print(f"Sharpe Ratio: {l / 100:.2f}")
    if "csv_file" in cfg:
        print(f"csv: {cfg['csv_file']}")
    sys.stdout.flush()
    if s == 13:
        sys.exit(3)
    """
)


@pytest.fixture()
def fake_engine_script(tmp_path: Path) -> Path:
    p = tmp_path / "fake_engine.py"
    p.write_text(FAKE_ENGINE, encoding="utf-8")
    return p


@pytest.fixture()
def engine_settings(tmp_path: Path, fake_engine_script: Path) -> EngineSettings:
    work = tmp_path / "work"
    work.mkdir()
    return EngineSettings(binary=Path(sys.executable), args=[str(fake_engine_script)], working_dir=work)


@pytest.fixture()
def test_config(engine_settings: EngineSettings) -> Config:
    """Config fixture wired to the fake engine."""

    return Config().model_copy(update={"engine": engine_settings})


@pytest.fixture(autouse=True)
def _restore_masweep_logger():
    # The CLI installs a handler bound to the captured stderr of one test.
    logger = logging.getLogger("masweep")
    saved = (logger.handlers[:], logger.level)
    yield
    logger.handlers[:], level = saved
    logger.setLevel(level)
