"""Command-line interface for liveprof."""

from __future__ import annotations

import argparse
import logging
import runpy
import sys
from pathlib import Path
from time import perf_counter
from typing import Any, Dict, List, Optional

from liveprof.analysis import TOTALS_COLUMNS, top_functions
from liveprof.backends import detect_capabilities
from liveprof.backends.detect import PRIORITY
from liveprof.codec import JsonDataPacker
from liveprof.config import ProfilerConfig, load_config_file
from liveprof.controller import LiveProfiler
from liveprof.errors import LiveProfilerError
from liveprof.logging import get_logger, set_global_log_level
from liveprof.storage import MODES, DatabaseStorage

logger = get_logger(__name__)


def _format_table(
    headers: List[str],
    rows: List[List[str]],
    min_width: int = 8,
    max_col_width: Optional[int] = None,
) -> str:
    """Format data as a simple ASCII table.

    Args:
        headers: Column headers
        rows: Data rows
        min_width: Minimum column width
        max_col_width: Cells longer than this are clipped with "..."

    Returns:
        Formatted table string
    """
    if not rows:
        return ""

    def clip(val: Any) -> str:
        s = str(val)
        if max_col_width is not None and len(s) > max_col_width:
            return s[: max_col_width - 3] + "..."
        return s

    clipped_headers = [clip(h) for h in headers]
    clipped_rows = [[clip(item) for item in row] for row in rows]

    all_data = [clipped_headers] + clipped_rows
    col_widths = []
    for col_idx in range(len(clipped_headers)):
        max_width = max(len(row[col_idx]) for row in all_data)
        col_widths.append(max(max_width, min_width))

    def format_row(row_data: List[str]) -> str:
        return "   " + " | ".join(
            f"{item:<{col_widths[i]}}" for i, item in enumerate(row_data)
        )

    lines = [format_row(clipped_headers)]
    lines.append("   " + "-+-".join("-" * width for width in col_widths))
    for row in clipped_rows:
        lines.append(format_row(row))
    return "\n".join(lines)


def _format_duration(seconds: float) -> str:
    if seconds < 1.0:
        return f"{seconds * 1000:.1f} ms"
    return f"{seconds:.2f} s"


def _build_config(args: argparse.Namespace, script: Path) -> ProfilerConfig:
    """Environment, then ``--config`` file, then explicit options."""
    config = ProfilerConfig.from_env()
    if args.config is not None:
        config = load_config_file(args.config, base=config)

    mode = args.mode
    if mode is None and args.path is not None:
        mode = "files"
    overrides: Dict[str, Any] = {
        "app": args.app,
        "label": args.label or config.label or script.name,
        "divider": args.divider,
        "total_divider": args.total_divider,
        "mode": mode,
        "path": str(args.path) if args.path is not None else None,
        "connection_string": args.connection,
        "api_url": args.api_url,
        "api_key": args.api_key,
        "backend": args.backend,
    }
    return config.merged(overrides)


def _run_script(args: argparse.Namespace) -> None:
    """Execute a Python script inside one profiling session."""
    script: Path = args.script
    if not script.is_file():
        logger.error(f"Script not found: {script}")
        print(f"❌ ERROR: Script not found: {script}")
        sys.exit(1)

    try:
        config = _build_config(args, script)
        profiler = LiveProfiler(config)
    except (LiveProfilerError, OSError) as e:
        logger.error(f"Invalid configuration: {type(e).__name__}: {e}")
        print(f"❌ ERROR: Invalid configuration: {e}")
        sys.exit(1)

    logger.info(
        f"Profiling {script} (app={config.app}, label={config.label}, "
        f"backend={profiler.backend.variant.value if profiler.backend else None})"
    )

    exit_code: Any = 0
    saved_argv = sys.argv
    sys.argv = [str(script), *args.script_args]
    _start_time = perf_counter()
    try:
        profiler.start()
        try:
            runpy.run_path(str(script), run_name="__main__")
        except SystemExit as exc:
            exit_code = exc.code
        finally:
            stored = profiler.end()
    finally:
        sys.argv = saved_argv
    elapsed = perf_counter() - _start_time

    data = profiler.last_profile_data
    if stored and data:
        session = profiler.session
        print(
            f"✅ Profile stored: app={session.app} label={session.label} "
            f"({len(data)} metrics, {_format_duration(elapsed)})"
        )
    elif data:
        print("❌ ERROR: Profile captured but could not be stored")
        exit_code = exit_code or 1
    else:
        print(f"No profile captured ({_format_duration(elapsed)})")

    if exit_code:
        sys.exit(exit_code)


def _show_profile(path: Path, limit: int, sort_by: str) -> None:
    """Print the most expensive functions of a stored profile file."""
    try:
        data = JsonDataPacker().unpack(path.read_bytes())
    except FileNotFoundError:
        logger.error(f"Profile file not found: {path}")
        print(f"❌ ERROR: Profile file not found: {path}")
        sys.exit(1)
    except LiveProfilerError as e:
        logger.error(f"Failed to read profile: {e}")
        print(f"❌ ERROR: Failed to read profile: {e}")
        sys.exit(1)

    try:
        totals = top_functions(data, limit=limit, sort_by=sort_by)
    except ValueError as e:
        print(f"❌ ERROR: {e}")
        sys.exit(1)
    print(f"\nPROFILE {path.name}: {len(data)} metrics")
    print("-" * 30)
    rows = [
        [
            str(function),
            f"{int(row['calls']):,}",
            f"{int(row['inclusive_us']):,}",
            f"{int(row['exclusive_us']):,}",
        ]
        for function, row in totals.iterrows()
    ]
    table = _format_table(
        ["Function", "Calls", "Incl. us", "Excl. us"], rows, max_col_width=60
    )
    print(table if table else "   (empty)")


def _init_db(connection: str) -> None:
    try:
        storage = DatabaseStorage(connection)
    except LiveProfilerError as e:
        logger.error(f"Invalid connection string: {e}")
        print(f"❌ ERROR: {e}")
        sys.exit(1)
    try:
        created = storage.create_table()
    finally:
        storage.close()
    if not created:
        print(f"❌ ERROR: Failed to create table in {connection}")
        sys.exit(1)
    print(f"✅ Table ready in {connection}")


def _list_backends() -> None:
    available = set(detect_capabilities())
    rows = [
        [variant.value, "yes" if variant in available else "no"]
        for variant in PRIORITY
    ]
    print(_format_table(["Backend", "Available"], rows))


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the ``liveprof`` command.

    Args:
        argv: Optional list of command-line arguments. If ``None``, ``sys.argv``
            is used.
    """
    parser = argparse.ArgumentParser(
        prog="liveprof",
        description="Profile Python programs and store the results.",
    )

    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "--quiet", action="store_true", help="Only log warnings and errors"
    )

    subparsers = parser.add_subparsers(
        dest="command",
        required=True,
        title="Available commands",
        metavar="{run,show,init-db,backends}",
        help="Available commands",
    )

    run_parser = subparsers.add_parser("run", help="Profile a Python script")
    run_parser.add_argument("script", type=Path, help="Script to execute")
    run_parser.add_argument(
        "script_args", nargs=argparse.REMAINDER, help="Arguments for the script"
    )
    run_parser.add_argument("--config", "-c", type=Path, help="YAML settings file")
    run_parser.add_argument("--app", help="Application name")
    run_parser.add_argument("--label", help="Profile label (default: script name)")
    run_parser.add_argument(
        "--divider",
        type=int,
        default=1,
        help="Profile one run in N under its own label (default: 1, every run)",
    )
    run_parser.add_argument(
        "--total-divider",
        type=int,
        default=None,
        help="Of the remaining runs, profile one in N under the 'All' label",
    )
    run_parser.add_argument("--mode", choices=MODES, help="Storage mode")
    run_parser.add_argument(
        "--path", type=Path, help="Output directory (implies --mode files)"
    )
    run_parser.add_argument("--connection", help="SQLite URL for --mode db")
    run_parser.add_argument("--api-url", help="Collector URL for --mode api")
    run_parser.add_argument("--api-key", help="Collector key for --mode api")
    run_parser.add_argument(
        "--backend",
        choices=["auto"] + [v.value for v in PRIORITY],
        help="Capture backend (default: auto)",
    )

    show_parser = subparsers.add_parser("show", help="Summarize a stored profile")
    show_parser.add_argument("file", type=Path, help="Profile file (JSON)")
    show_parser.add_argument(
        "--limit", "-n", type=int, default=20, help="Rows to show (default: 20)"
    )
    show_parser.add_argument(
        "--sort",
        choices=TOTALS_COLUMNS,
        default="exclusive_us",
        help="Sort column (default: exclusive_us)",
    )

    init_parser = subparsers.add_parser(
        "init-db", help="Create the profiles table in a SQLite database"
    )
    init_parser.add_argument("connection", help="sqlite:///path or a file path")

    subparsers.add_parser("backends", help="List capture backends")

    effective_args = sys.argv[1:] if argv is None else argv

    if not effective_args:
        parser.print_help()
        raise SystemExit(0)

    args = parser.parse_args(effective_args)

    if args.verbose:
        set_global_log_level(logging.DEBUG)
        logger.debug("Debug logging enabled")
    elif args.quiet:
        set_global_log_level(logging.WARNING)
    else:
        set_global_log_level(logging.INFO)

    if args.command == "run":
        _run_script(args)
    elif args.command == "show":
        _show_profile(args.file, args.limit, args.sort)
    elif args.command == "init-db":
        _init_db(args.connection)
    elif args.command == "backends":
        _list_backends()


if __name__ == "__main__":
    main()
