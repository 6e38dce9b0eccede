"""Rudimentary deployment sizing from a collected metrics snapshot.

The snapshot is the JSON object written by ``collect_lifetime_metrics``
(``serverStatus`` fields plus ``dbStats`` for every database).  All counters
in ``serverStatus`` are cumulative since the last server restart, so every
rate below is a lifetime average, not a peak.

Heuristics
==========

::

    CPU          ops/sec = sum(opcounters) / uptimeSeconds
                 cores   = ceil(ops/sec / ops_per_core)          (1500 default)

    Memory       working set MB = (sum dataSize + sum indexSize) / 1 MiB
                 memory MB      = ceil(working set MB * 1.5)     (50% headroom)

    Storage      bytes = ceil(sum totalSize * 1.2)               (20% headroom)

    Network      MB/sec = (bytesIn + bytesOut) / 1 MiB / uptimeSeconds

    Connections  limit = ceil(connections.current * 1.5)        (50% headroom)

These are order-of-magnitude planning numbers.  There is no averaging over
several snapshots and no outlier rejection.
"""

import json
import math
from pathlib import Path

DEFAULT_OPS_PER_CORE = 1500
MEMORY_HEADROOM = 1.5
STORAGE_HEADROOM = 1.2
CONNECTION_HEADROOM = 1.5
MIB = 1024 * 1024

# Checked before any arithmetic; a snapshot missing one of these is rejected.
REQUIRED_METRICS_FIELDS = (
    "opcounters", "uptimeSeconds", "connections", "mem", "network", "dbStats",
)

_OPCOUNTER_FIELDS = ("insert", "query", "update", "delete", "getmore", "command")


class MetricsFileError(Exception):
    """Raised when a metrics snapshot file cannot be read or is not an object."""

    def __init__(self, path, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Metrics file '{self.path}': {reason}")


class MissingMetricsFieldsError(ValueError):
    """Raised when a metrics snapshot lacks one or more required fields."""

    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__(
            "Metrics JSON file is missing required fields: "
            + ", ".join(self.missing)
        )


# ---------------------------------------------------------------------------
# Loading / validation
# ---------------------------------------------------------------------------

def load_metrics(path) -> dict:
    """Load a metrics snapshot file.

    Args:
        path: Path to the JSON object written by metrics collection.

    Returns:
        The snapshot dict.

    Raises:
        MetricsFileError: If the file is missing, unparsable, or not an object.
    """
    path = Path(path)
    if not path.is_file():
        raise MetricsFileError(path, "file does not exist")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise MetricsFileError(path, f"invalid JSON ({exc})") from exc
    if not isinstance(data, dict):
        raise MetricsFileError(path, "expected a JSON object")
    return data


def validate_metrics(metrics: dict) -> list[str]:
    """Return the required field names missing from *metrics*, in fixed order."""
    return [name for name in REQUIRED_METRICS_FIELDS if name not in metrics]


# ---------------------------------------------------------------------------
# Individual estimates
# ---------------------------------------------------------------------------

def calculate_cpu_cores(opcounters: dict, uptime_seconds: float,
                        ops_per_core: float = DEFAULT_OPS_PER_CORE) -> tuple[int, float, int]:
    """Estimate CPU cores from lifetime operation counters.

    Legacy servers report OP_QUERY traffic under ``opcounters.deprecated``;
    when present its ``query`` count is added to the total.

    Args:
        opcounters: ``serverStatus.opcounters`` document.
        uptime_seconds: Server uptime the counters cover.
        ops_per_core: Sustained operations one core is assumed to handle.

    Returns:
        ``(total_operations, ops_per_sec, cpu_cores)``.
    """
    total = sum(opcounters.get(name, 0) or 0 for name in _OPCOUNTER_FIELDS)
    deprecated = opcounters.get("deprecated")
    if isinstance(deprecated, dict):
        total += deprecated.get("query", 0) or 0
    ops_per_sec = total / uptime_seconds if uptime_seconds > 0 else 0
    cores = math.ceil(ops_per_sec / ops_per_core)
    return total, ops_per_sec, cores


def calculate_memory_requirements(db_stats: dict) -> tuple[float, int]:
    """Estimate memory from the working set (data + indexes of every database).

    Args:
        db_stats: ``{db_name: dbStats document}``.

    Returns:
        ``(working_set_size_mb, memory_required_mb)``.
    """
    total_data = sum(stats.get("dataSize", 0) or 0 for stats in db_stats.values())
    total_index = sum(stats.get("indexSize", 0) or 0 for stats in db_stats.values())
    working_set_mb = (total_data + total_index) / MIB
    return working_set_mb, math.ceil(working_set_mb * MEMORY_HEADROOM)


def calculate_storage_requirements(db_stats: dict) -> int:
    """Return required storage in bytes: total on-disk size plus 20%."""
    total = sum(stats.get("totalSize", 0) or 0 for stats in db_stats.values())
    return math.ceil(total * STORAGE_HEADROOM)


def calculate_network_bandwidth(network: dict, uptime_seconds: float) -> float:
    """Return average network throughput in MB/sec over the server's uptime."""
    total_bytes = (network.get("bytesIn", 0) or 0) + (network.get("bytesOut", 0) or 0)
    if uptime_seconds <= 0:
        return 0
    return total_bytes / MIB / uptime_seconds


def calculate_connection_limits(current_connections: int) -> int:
    return math.ceil(current_connections * CONNECTION_HEADROOM)


# ---------------------------------------------------------------------------
# Combined result
# ---------------------------------------------------------------------------

def perform_sizing(metrics: dict,
                   ops_per_core: float = DEFAULT_OPS_PER_CORE) -> dict:
    """Run every estimate against one metrics snapshot.

    Args:
        metrics: Snapshot dict (see :func:`load_metrics`).
        ops_per_core: CPU heuristic constant.

    Returns:
        Dict with ``total_operations``, ``uptime_seconds``, ``ops_per_sec``,
        ``cpu_cores``, ``working_set_mb``, ``memory_required_mb``,
        ``storage_required_bytes``, ``network_bandwidth_mb_sec`` and
        ``connection_limit``.

    Raises:
        MissingMetricsFieldsError: If any required field is absent.  Nothing
            is computed in that case.
    """
    missing = validate_metrics(metrics)
    if missing:
        raise MissingMetricsFieldsError(missing)

    uptime = metrics["uptimeSeconds"] or 0
    db_stats = metrics["dbStats"] or {}

    total_ops, ops_per_sec, cores = calculate_cpu_cores(
        metrics["opcounters"] or {}, uptime, ops_per_core)
    working_set_mb, memory_mb = calculate_memory_requirements(db_stats)
    storage_bytes = calculate_storage_requirements(db_stats)
    bandwidth = calculate_network_bandwidth(metrics["network"] or {}, uptime)
    connections = (metrics["connections"] or {}).get("current", 0) or 0

    return {
        "total_operations": total_ops,
        "uptime_seconds": uptime,
        "ops_per_sec": round(ops_per_sec, 2),
        "cpu_cores": cores,
        "working_set_mb": round(working_set_mb, 2),
        "memory_required_mb": memory_mb,
        "storage_required_bytes": storage_bytes,
        "network_bandwidth_mb_sec": round(bandwidth, 6),
        "connection_limit": calculate_connection_limits(connections),
    }
