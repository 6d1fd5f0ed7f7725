from __future__ import annotations

import sys
import threading
import time
from pathlib import Path

import pytest

from masweep.core.config import EngineSettings
from masweep.core.exceptions import (
    ProcessLaunchError,
    ProcessRuntimeError,
    ProcessTimeoutError,
    SweepCancelledError,
)
from masweep.sweep.runner import ProcessRunner
from masweep.sweep.serializer import ConfigHandle


def _script(tmp_path: Path, body: str) -> list[str]:
    p = tmp_path / "engine.py"
    p.write_text(body, encoding="utf-8")
    return [sys.executable, str(p)]


def _handle(tmp_path: Path) -> ConfigHandle:
    return ConfigHandle(path=tmp_path / "data" / "config.json", working_dir=tmp_path)


def test_stdout_and_stderr_are_merged(tmp_path: Path) -> None:
    argv = _script(
        tmp_path,
        "import sys\nprint('CAGR: 1.00%', flush=True)\nprint('Max Drawdown: -2.00%', file=sys.stderr, flush=True)\n",
    )
    out = ProcessRunner(argv).run(_handle(tmp_path))
    assert out.ok
    assert out.text.splitlines() == ["CAGR: 1.00%", "Max Drawdown: -2.00%"]
    assert out.duration_s >= 0.0


def test_runs_in_handle_working_dir(tmp_path: Path) -> None:
    work = tmp_path / "work"
    work.mkdir()
    argv = _script(tmp_path, "import os\nprint(os.getcwd())\n")
    out = ProcessRunner(argv).run(ConfigHandle(path=work / "data" / "config.json", working_dir=work))
    assert Path(out.text.strip()).resolve() == work.resolve()


def test_nonzero_exit_is_reported_not_raised(tmp_path: Path) -> None:
    argv = _script(tmp_path, "import sys\nprint('Sharpe Ratio: 0.5')\nsys.exit(4)\n")
    out = ProcessRunner(argv).run(_handle(tmp_path))
    assert out.returncode == 4
    assert not out.ok
    assert "Sharpe Ratio: 0.5" in out.text


def test_nonzero_exit_raises_when_checked(tmp_path: Path) -> None:
    argv = _script(tmp_path, "import sys\nprint('partial')\nsys.exit(2)\n")
    with pytest.raises(ProcessRuntimeError) as e:
        ProcessRunner(argv).run(_handle(tmp_path), check=True)
    assert e.value.output.returncode == 2
    assert "partial" in e.value.output.text


def test_missing_binary_raises_launch_error(tmp_path: Path) -> None:
    runner = ProcessRunner([str(tmp_path / "no-such-engine")])
    with pytest.raises(ProcessLaunchError):
        runner.run(_handle(tmp_path))


def test_missing_working_dir_raises_launch_error(tmp_path: Path) -> None:
    argv = _script(tmp_path, "print('hi')\n")
    handle = ConfigHandle(path=tmp_path / "x.json", working_dir=tmp_path / "gone")
    with pytest.raises(ProcessLaunchError):
        ProcessRunner(argv).run(handle)


def test_timeout_kills_engine(tmp_path: Path) -> None:
    argv = _script(tmp_path, "import time\ntime.sleep(30)\n")
    start = time.monotonic()
    with pytest.raises(ProcessTimeoutError):
        ProcessRunner(argv, timeout_s=0.5).run(_handle(tmp_path))
    assert time.monotonic() - start < 10


def test_cancel_kills_engine(tmp_path: Path) -> None:
    argv = _script(tmp_path, "import time\ntime.sleep(30)\n")
    cancel = threading.Event()
    timer = threading.Timer(0.3, cancel.set)
    timer.start()
    start = time.monotonic()
    try:
        with pytest.raises(SweepCancelledError):
            ProcessRunner(argv, poll_interval_s=0.05).run(_handle(tmp_path), cancel=cancel)
    finally:
        timer.cancel()
    assert time.monotonic() - start < 10


def test_empty_argv_rejected() -> None:
    with pytest.raises(ValueError):
        ProcessRunner([])


def test_from_settings_anchors_relative_binary(tmp_path: Path) -> None:
    settings = EngineSettings(binary=Path("bin/engine"), working_dir=tmp_path, args=["--quiet"])
    runner = ProcessRunner.from_settings(settings)
    assert runner.argv == [str((tmp_path / "bin" / "engine").resolve()), "--quiet"]


def test_from_settings_keeps_bare_name_for_path_lookup(tmp_path: Path) -> None:
    runner = ProcessRunner.from_settings(EngineSettings(binary=Path("simulator"), working_dir=tmp_path, timeout_s=5))
    assert runner.argv == ["simulator"]
    assert runner.timeout_s == 5
