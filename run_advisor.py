#!/usr/bin/env python3
"""MongoDB workload advisor -- profiler export, operator compatibility and sizing.

Entry point for planning a move off MongoDB.  It drives MongoDB's built-in
profiler, classifies the captured commands by operator compatibility, and
turns a ``serverStatus``/``dbStats`` snapshot into rough sizing numbers.

MODES
=====

::

    +---+---------------------------+---------------------------------------+
    | # | Mode                      | Does                                  |
    +---+---------------------------+---------------------------------------+
    | 1 | enable profiling          | {profile: 2} on <db>                  |
    | 2 | disable profiling         | {profile: 0} on <db>                  |
    | 3 | purge profiling data      | drop <db>.system.profile (absent: ok) |
    | 4 | export profiling data     | system.profile -> JSON array file     |
    | 5 | analyze profile file      | classify -> HTML report               |
    |   |                           | (+ sizing when --metrics is given)    |
    | 6 | collect metrics           | serverStatus + dbStats -> JSON file   |
    | 7 | sizing from metrics file  | validate -> estimate -> HTML report   |
    +---+---------------------------+---------------------------------------+

Typical session::

    1 (enable)  ->  run the application workload  ->  4 (export)
      ->  2 (disable)  ->  3 (purge)  ->  5 (analyze)
    6 (collect)  ->  7 (sizing)

Data flow for the offline modes::

    profile.json --> profile_analyzer.classify --+
                                                  +--> report_html.render_report
    metrics.json --> sizing.perform_sizing -------+          |
                                                             v
                              reports/<stem>_report_advisor_<ts>.html
                              reports/<stem>_sizing_report_<ts>.html


Usage
=====

::

    python run_advisor.py                              # interactive menu
    python run_advisor.py --mode 1 --db shop           # URI from .env / prompt
    python run_advisor.py --mode 4 --db shop --output profile.json
    python run_advisor.py --mode 5 --file profile.json [--metrics metrics.json]
    python run_advisor.py --mode 6 --output metrics.json
    python run_advisor.py --mode 7 --file metrics.json

Anything not given on the command line is prompted for.

Environment Variables (in .env)
-------------------------------
Optional:
    MONGODB_URI                 Default connection string offered at the prompt
    ADVISOR_REPORT_DIR          Where HTML reports go (default: reports)
    ADVISOR_OPS_PER_CORE        Ops/sec one core is assumed to sustain (default: 1500)
    ADVISOR_SERVER_TIMEOUT_MS   serverSelectionTimeoutMS for the client

Limitations
-----------
``serverStatus`` counters are cumulative since the last server restart, so
sizing reflects lifetime averages rather than peaks.

Dependencies
------------
- pymongo[srv], python-dotenv (see pyproject.toml)
"""

import argparse
import os
import re
import sys
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv
from pymongo.errors import PyMongoError

from mongo_gateway import (
    MongoGateway,
    collect_lifetime_metrics,
    disable_profiling,
    enable_profiling,
    export_profiling_data,
    purge_profiling_data,
)
from profile_analyzer import ProfileFileError, classify, load_profile, summarize_keywords
from report_html import render_report, report_filename, write_report
from sizing import (
    DEFAULT_OPS_PER_CORE,
    MetricsFileError,
    MissingMetricsFieldsError,
    load_metrics,
    perform_sizing,
)

# ---------------------------------------------------------------------------
# Paths / defaults
# ---------------------------------------------------------------------------
BASE_DIR = Path(__file__).resolve().parent
DEFAULT_URI = "mongodb://localhost:27017"
DEFAULT_REPORT_DIR = "reports"
DEFAULT_PROFILE_FILE = "profiling_data.json"
DEFAULT_METRICS_FILE = "metrics.json"


class Mode(str, Enum):
    """Operation modes, valued by their menu number."""

    ENABLE_PROFILING = "1"
    DISABLE_PROFILING = "2"
    PURGE_PROFILING = "3"
    EXPORT_PROFILING = "4"
    ANALYZE_PROFILE = "5"
    COLLECT_METRICS = "6"
    SIZING = "7"


MODE_DESCRIPTIONS: dict[Mode, str] = {
    Mode.ENABLE_PROFILING: "Enable profiling for the MongoDB database",
    Mode.DISABLE_PROFILING: "Disable profiling for the MongoDB database",
    Mode.PURGE_PROFILING: "Purge profiling data for the MongoDB database",
    Mode.EXPORT_PROFILING: "Export profiling data to a JSON file",
    Mode.ANALYZE_PROFILE: "Analyze a MongoDB profile JSON file",
    Mode.COLLECT_METRICS: "Collect historical metrics via MongoDB native commands",
    Mode.SIZING: "Perform sizing based on a metrics JSON file",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _banner(msg: str) -> None:
    """Print a visually distinct section banner to stdout.

    Args:
        msg: Banner text to display.
    """
    line = "=" * 60
    print(f"\n{line}\n  {msg}\n{line}")


def _redact_uri(text: str) -> str:
    """Replace credentials in MongoDB URIs with '***' for safe logging.

    Args:
        text: String that may contain mongodb:// or mongodb+srv:// URIs.

    Returns:
        Text with credentials replaced by ``***:***``.
    """
    return re.sub(
        r"mongodb(\+srv)?://[^:/@]+:[^@]+@",
        r"mongodb\1://***:***@",
        text,
    )


def _prompt(label: str, default: str = "") -> str:
    """Ask for a value on stdin, falling back to *default* on empty input."""
    suffix = f" [{_redact_uri(default)}]" if default else ""
    answer = input(f"{label}{suffix}: ").strip()
    return answer or default


def load_settings() -> dict:
    """Read advisor settings from the environment (after ``.env`` is loaded).

    Returns:
        Dict with ``uri``, ``report_dir``, ``ops_per_core`` and ``timeout_ms``.

    Raises:
        ValueError: If a numeric setting is not a positive number.
    """
    ops_raw = os.environ.get("ADVISOR_OPS_PER_CORE", "").strip()
    timeout_raw = os.environ.get("ADVISOR_SERVER_TIMEOUT_MS", "").strip()

    ops_per_core = float(ops_raw) if ops_raw else float(DEFAULT_OPS_PER_CORE)
    if ops_per_core <= 0:
        raise ValueError("ADVISOR_OPS_PER_CORE must be a positive number")
    timeout_ms = int(timeout_raw) if timeout_raw else None
    if timeout_ms is not None and timeout_ms <= 0:
        raise ValueError("ADVISOR_SERVER_TIMEOUT_MS must be a positive integer")

    return {
        "uri": os.environ.get("MONGODB_URI", "").strip() or DEFAULT_URI,
        "report_dir": os.environ.get("ADVISOR_REPORT_DIR", "").strip() or DEFAULT_REPORT_DIR,
        "ops_per_core": ops_per_core,
        "timeout_ms": timeout_ms,
    }


# ---------------------------------------------------------------------------
# Mode handlers (validated parameters in, side effects out)
# ---------------------------------------------------------------------------

def run_enable_profiling(uri: str, db_name: str, timeout_ms: int | None = None) -> None:
    _banner(f"Enable profiling on '{db_name}'")
    print(f"  Connecting to {_redact_uri(uri)}")
    with MongoGateway(uri, timeout_ms=timeout_ms) as gw:
        enable_profiling(gw, db_name)


def run_disable_profiling(uri: str, db_name: str, timeout_ms: int | None = None) -> None:
    _banner(f"Disable profiling on '{db_name}'")
    print(f"  Connecting to {_redact_uri(uri)}")
    with MongoGateway(uri, timeout_ms=timeout_ms) as gw:
        disable_profiling(gw, db_name)


def run_purge_profiling(uri: str, db_name: str, timeout_ms: int | None = None) -> None:
    _banner(f"Purge profiling data on '{db_name}'")
    print(f"  Connecting to {_redact_uri(uri)}")
    with MongoGateway(uri, timeout_ms=timeout_ms) as gw:
        purge_profiling_data(gw, db_name)


def run_export_profiling(uri: str, db_name: str, output_file: str,
                         timeout_ms: int | None = None) -> None:
    _banner(f"Export profiling data from '{db_name}'")
    print(f"  Connecting to {_redact_uri(uri)}")
    with MongoGateway(uri, timeout_ms=timeout_ms) as gw:
        export_profiling_data(gw, db_name, output_file)


def run_collect_metrics(uri: str, output_file: str,
                        timeout_ms: int | None = None) -> None:
    _banner("Collect lifetime metrics")
    print(f"  Connecting to {_redact_uri(uri)}")
    with MongoGateway(uri, timeout_ms=timeout_ms) as gw:
        collect_lifetime_metrics(gw, output_file)


def run_analyze_profile(profile_file: str, report_dir: str,
                        metrics_file: str | None = None,
                        ops_per_core: float = DEFAULT_OPS_PER_CORE) -> Path:
    """Classify a profile export and write the advisor report.

    When *metrics_file* is given, its snapshot is sized and merged into the
    same report.  Both input files are loaded and validated before any
    output is produced.

    Returns:
        Path of the written report.
    """
    _banner("Analyze profile")
    entries = load_profile(profile_file)
    metrics = sizing_result = None
    if metrics_file:
        metrics = load_metrics(metrics_file)
        sizing_result = perform_sizing(metrics, ops_per_core=ops_per_core)

    result = classify(entries)
    summary = summarize_keywords(result)
    print(f"  [info] {len(entries)} entries read, "
          f"{len(result['supported_commands'])} supported / "
          f"{len(result['not_supported_commands'])} not supported command(s)")
    print(f"  [info] {summary['total_keywords']} operator occurrence(s), "
          f"{summary['supported_percent']:.2f}% supported")

    html_text = render_report(result, metrics=metrics, sizing=sizing_result)
    out_file = write_report(html_text, Path(report_dir) / report_filename(profile_file))
    print(f"  -> saved to {out_file}")
    return out_file


def run_sizing(metrics_file: str, report_dir: str,
               ops_per_core: float = DEFAULT_OPS_PER_CORE) -> Path:
    """Size a deployment from a metrics snapshot and write the sizing report.

    Returns:
        Path of the written report.
    """
    _banner("Sizing from metrics snapshot")
    metrics = load_metrics(metrics_file)
    sizing_result = perform_sizing(metrics, ops_per_core=ops_per_core)
    print(f"  [info] {sizing_result['ops_per_sec']} ops/sec -> "
          f"{sizing_result['cpu_cores']} core(s), "
          f"{sizing_result['memory_required_mb']} MB memory, "
          f"{sizing_result['storage_required_bytes']} bytes storage")

    empty = {"supported": {}, "not_supported": {},
             "supported_commands": [], "not_supported_commands": []}
    html_text = render_report(empty, metrics=metrics, sizing=sizing_result)
    out_file = write_report(
        html_text, Path(report_dir) / report_filename(metrics_file, kind="sizing"))
    print(f"  -> saved to {out_file}")
    return out_file


# handler, parameter names it takes (in prompt order)
MODE_HANDLERS: dict[Mode, tuple] = {
    Mode.ENABLE_PROFILING: (run_enable_profiling, ("uri", "db_name", "timeout_ms")),
    Mode.DISABLE_PROFILING: (run_disable_profiling, ("uri", "db_name", "timeout_ms")),
    Mode.PURGE_PROFILING: (run_purge_profiling, ("uri", "db_name", "timeout_ms")),
    Mode.EXPORT_PROFILING: (run_export_profiling,
                            ("uri", "db_name", "output_file", "timeout_ms")),
    Mode.ANALYZE_PROFILE: (run_analyze_profile,
                           ("profile_file", "report_dir", "metrics_file", "ops_per_core")),
    Mode.COLLECT_METRICS: (run_collect_metrics, ("uri", "output_file", "timeout_ms")),
    Mode.SIZING: (run_sizing, ("metrics_file", "report_dir", "ops_per_core")),
}


def dispatch(mode: Mode, params: dict):
    """Call the handler for *mode* with the parameters it declares.

    Args:
        mode: Selected mode.
        params: Parameter values; every name the handler declares must be present.

    Returns:
        Whatever the handler returns.
    """
    handler, names = MODE_HANDLERS[mode]
    return handler(**{name: params[name] for name in names})


# ---------------------------------------------------------------------------
# Parameter gathering (CLI flags, then prompts)
# ---------------------------------------------------------------------------

def parse_mode(value: str) -> Mode | None:
    try:
        return Mode(value.strip())
    except ValueError:
        return None


def _choose_mode() -> str:
    print("Select an operation mode:")
    for mode in Mode:
        print(f"{mode.value}: {MODE_DESCRIPTIONS[mode]}")
    return input("Enter the mode number: ")


def gather_params(mode: Mode, args: argparse.Namespace, settings: dict) -> dict:
    """Collect the parameters *mode* needs, prompting for any not on the CLI.

    Args:
        mode: Selected mode.
        args: Parsed command-line arguments.
        settings: Output of :func:`load_settings`.

    Returns:
        Dict holding every parameter name the mode's handler declares.
    """
    _, names = MODE_HANDLERS[mode]
    params: dict = {}
    for name in names:
        if name == "uri":
            params[name] = args.uri or _prompt(
                "Enter the MongoDB connection string", settings["uri"])
        elif name == "db_name":
            params[name] = args.db or _prompt("Enter the database name")
        elif name == "output_file":
            default = (DEFAULT_PROFILE_FILE if mode is Mode.EXPORT_PROFILING
                       else DEFAULT_METRICS_FILE)
            params[name] = args.output or _prompt("Enter the output JSON file name", default)
        elif name == "profile_file":
            params[name] = args.file or _prompt("Enter the path to the MongoDB profile JSON file")
        elif name == "metrics_file":
            if mode is Mode.SIZING:
                params[name] = (args.file or args.metrics
                                or _prompt("Enter the path to the metrics JSON file"))
            elif args.metrics is not None or args.file:
                # Non-interactive analysis: merge only when --metrics was given
                params[name] = args.metrics or None
            else:
                params[name] = _prompt(
                    "Enter the path to a metrics JSON file to include "
                    "(leave blank to skip)") or None
        elif name == "report_dir":
            params[name] = args.report_dir or settings["report_dir"]
        elif name == "ops_per_core":
            params[name] = settings["ops_per_core"]
        elif name == "timeout_ms":
            params[name] = settings["timeout_ms"]
    return params


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="MongoDB profiler export, operator compatibility analysis and sizing")
    parser.add_argument("--mode", default="",
                        help="Mode number 1-7 (omit for the interactive menu)")
    parser.add_argument("--uri", default="",
                        help="MongoDB connection string (default: $MONGODB_URI)")
    parser.add_argument("--db", default="",
                        help="Database name for profiling modes")
    parser.add_argument("--file", default="",
                        help="Input file: profile JSON (mode 5) or metrics JSON (mode 7)")
    parser.add_argument("--metrics", default=None,
                        help="Metrics JSON to merge into a profile analysis (mode 5)")
    parser.add_argument("--output", default="",
                        help="Output JSON file for export / metrics collection")
    parser.add_argument("--report-dir", default="",
                        help="Directory for HTML reports (default: $ADVISOR_REPORT_DIR or reports)")
    return parser


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    """Entry point: load config, pick a mode, gather parameters, run it.

    Returns:
        Process exit status: 0 on success or on an unrecognized mode, 1 when
        the selected operation failed.
    """
    args = build_parser().parse_args(argv)
    load_dotenv(BASE_DIR / ".env")

    try:
        settings = load_settings()
    except ValueError as exc:
        print(f"[error] Invalid configuration: {exc}", file=sys.stderr)
        return 1

    mode = parse_mode(args.mode or _choose_mode())
    if mode is None:
        print("Invalid mode selected.")
        return 0

    try:
        params = gather_params(mode, args, settings)
        dispatch(mode, params)
    except (ProfileFileError, MetricsFileError) as exc:
        print(f"[error] {exc}. Please check the path and try again.", file=sys.stderr)
        return 1
    except MissingMetricsFieldsError as exc:
        print(f"[error] {exc}", file=sys.stderr)
        return 1
    except PyMongoError as exc:
        print(f"[error] {MODE_DESCRIPTIONS[mode]} failed: {_redact_uri(str(exc))}",
              file=sys.stderr)
        return 1
    except Exception as exc:
        print(f"[error] An error occurred: {_redact_uri(str(exc))}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
