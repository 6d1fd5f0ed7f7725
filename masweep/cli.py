"""masweep.cli

Command line interface entry point for masweep.

Design constraints:
- argparse-based.
- Lazy imports: do not import the sweep stack at parse time.
"""

from __future__ import annotations

import argparse
import json
import signal
import sys
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from masweep.core.config import Config
    from masweep.core.types import SweepResult


@dataclass(frozen=True)
class CliContext:
    repo_root: Path
    config_path: Path | None


def _repo_root_from_cwd() -> Path:
    return Path.cwd()


def _int_list(raw: str) -> list[int]:
    try:
        values = [int(p) for p in raw.split(",") if p.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected comma-separated integers, got {raw!r}") from None
    if not values:
        raise argparse.ArgumentTypeError("expected at least one value")
    if any(v <= 0 for v in values):
        raise argparse.ArgumentTypeError("window lengths must be positive")
    return values


def _kind(raw: str) -> str:
    from masweep.core.types import MAKind

    try:
        return MAKind.parse(raw).value
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def _kind_list(raw: str) -> list[str]:
    from masweep.core.types import MAKind

    try:
        return [MAKind.parse(p).value for p in raw.split(",") if p.strip()]
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="masweep",
        description="Moving-average crossover parameter sweeps over an external backtest engine.",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Config YAML (default: config/default.yaml if present).",
    )
    parser.add_argument("--log-level", default=None, help="Override logging.level.")

    sub = parser.add_subparsers(dest="command")

    p_sweep = sub.add_parser("sweep", help="Run a parameter sweep and print the best combinations")
    p_sweep.add_argument("--short", type=_int_list, default=None, help="Short windows, e.g. 10,20,50")
    p_sweep.add_argument("--long", type=_int_list, default=None, help="Long windows, e.g. 100,150,200")
    p_sweep.add_argument("--types", type=_kind_list, default=None, help="MA kinds, e.g. SMA,WMA")
    p_sweep.add_argument("--top", type=int, default=None, help="How many results to print.")
    p_sweep.add_argument("--workers", type=int, default=None, help="Concurrent engine runs.")
    p_sweep.add_argument("--timeout", type=float, default=None, help="Per-run deadline in seconds.")
    p_sweep.add_argument("--csv", type=Path, default=None, help="Price file handed to every run.")
    p_sweep.add_argument("--json", action="store_true", help="Emit results as JSON.")

    p_run = sub.add_parser("run", help="Run the engine once and print its output")
    p_run.add_argument("--short", type=int, required=True, help="Short window.")
    p_run.add_argument("--long", type=int, required=True, help="Long window.")
    p_run.add_argument("--short-type", type=_kind, default="SMA", help="Short MA kind.")
    p_run.add_argument("--long-type", type=_kind, default="SMA", help="Long MA kind.")
    p_run.add_argument("--csv", type=Path, required=True, help="Historical price CSV.")

    return parser


def _print_version() -> None:
    from masweep import __version__

    print(f"masweep v{__version__}")


def _load_config(ctx: CliContext, args: argparse.Namespace) -> Config:
    from masweep.core.config import Config
    from masweep.core.logs import configure_logging

    config = Config.load(ctx.config_path, repo_root=ctx.repo_root)
    if args.log_level:
        config = config.model_copy(update={"logging": config.logging.model_copy(update={"level": args.log_level})})
    configure_logging(config.logging)
    return config


def _result_to_dict(r: SweepResult) -> dict[str, object]:
    c, m = r.combination, r.metrics
    return {
        "short_ma_window": c.short_window,
        "long_ma_window": c.long_window,
        "short_ma_type": c.short_kind.value,
        "long_ma_type": c.long_kind.value,
        "cagr": m.cagr,
        "sharpe": m.sharpe,
        "max_drawdown": m.max_drawdown,
        "total_return": m.total_return,
        "returncode": r.returncode,
        "error": r.error,
    }


def _cmd_sweep(ctx: CliContext, args: argparse.Namespace) -> int:
    from masweep.core.exceptions import ConfigError
    from masweep.sweep.orchestrator import SweepOrchestrator
    from masweep.sweep.ranker import format_table, top_k

    try:
        config = _load_config(ctx, args)
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    engine = config.engine
    if args.timeout is not None:
        engine = engine.model_copy(update={"timeout_s": args.timeout})
    workers = args.workers if args.workers is not None else config.sweep.max_workers
    top = args.top if args.top is not None else config.sweep.top_k
    if workers < 1 or top < 0:
        print("error: --workers must be >= 1 and --top >= 0", file=sys.stderr)
        return 2
    if engine.timeout_s is not None and engine.timeout_s <= 0:
        print("error: --timeout must be > 0", file=sys.stderr)
        return 2

    try:
        orch = SweepOrchestrator(
            engine,
            config.economics,
            max_workers=workers,
            csv_file=args.csv or config.sweep.csv_file,
        )
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    cancel = threading.Event()
    # Ctrl-C stops launching new runs; the partial ranking is still printed.
    on_main = threading.current_thread() is threading.main_thread()
    previous = signal.signal(signal.SIGINT, lambda *_: cancel.set()) if on_main else None
    try:
        results = orch.run(
            args.short or config.sweep.short_windows,
            args.long or config.sweep.long_windows,
            args.types or config.sweep.ma_types,
            cancel=cancel,
        )
    finally:
        if on_main:
            signal.signal(signal.SIGINT, previous)

    best = top_k(results, top)
    if args.json:
        print(json.dumps([_result_to_dict(r) for r in best], indent=2))
    else:
        print(f"Top {len(best)} of {len(results)} results by CAGR:")
        if best:
            print(format_table(best))

    if cancel.is_set():
        print("sweep cancelled; results are partial", file=sys.stderr)
        return 1
    return 0


def _cmd_run(ctx: CliContext, args: argparse.Namespace) -> int:
    from masweep.core.exceptions import ConfigError, SweepError
    from masweep.core.types import MAKind, ParameterCombination, SweepResult
    from masweep.sweep.ranker import format_result
    from masweep.sweep.single import run_single

    try:
        config = _load_config(ctx, args)
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    combo = ParameterCombination(
        short_window=args.short,
        long_window=args.long,
        short_kind=MAKind.parse(args.short_type),
        long_kind=MAKind.parse(args.long_type),
    )
    if not combo.is_valid:
        print(f"error: short window must be below long window ({combo.label()})", file=sys.stderr)
        return 2
    if not args.csv.exists():
        print(f"error: price file not found: {args.csv}", file=sys.stderr)
        return 2

    try:
        report = run_single(combo, args.csv, config=config)
    except SweepError as e:
        print(f"run failed: {e}", file=sys.stderr)
        return 1

    print(report.output.text, end="" if report.output.text.endswith("\n") else "\n")
    print(format_result(SweepResult(combination=combo, metrics=report.metrics, returncode=report.output.returncode)))
    return 0 if report.output.ok else 1


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        _print_version()
        return 0

    if not args.command:
        parser.print_help()
        return 2

    ctx = CliContext(repo_root=_repo_root_from_cwd(), config_path=args.config)

    dispatch: dict[str, Callable[[CliContext, argparse.Namespace], int]] = {
        "sweep": _cmd_sweep,
        "run": _cmd_run,
    }

    fn = dispatch.get(str(args.command))
    if fn is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 2

    return int(fn(ctx, args))


if __name__ == "__main__":
    raise SystemExit(main())
