"""Thin pymongo wrapper for the profiler and statistics commands the advisor needs.

Every operation is one round-trip to a documented server command:

    set_profiling_level   -- ``{profile: 0|2}`` on the target database
    drop_profile          -- ``{drop: "system.profile"}`` (missing = no-op)
    find_profile          -- ``db.system.profile.find()``
    server_status         -- ``{serverStatus: 1, repl: 1, wiredTiger: 1}``
    list_database_names   -- ``listDatabases``
    db_stats              -- ``{dbStats: 1, scale: 1}``

Architecture
------------
::

    run_advisor.py (mode handlers)
        |
        +-- with MongoGateway(uri) as gw:      <- ping on enter, close on exit
        |       enable_profiling(gw, db)
        |       export_profiling_data(gw, db, out_file)
        |       collect_lifetime_metrics(gw, out_file)
        |
    MongoGateway
        |
        +-- pymongo.MongoClient

The module-level mode functions take an already-open gateway and validated
parameters, print one progress line, and let pymongo errors propagate.
There is no retry logic: these are one-shot administrative actions.

Usage
-----
::

    from mongo_gateway import MongoGateway, export_profiling_data

    with MongoGateway("mongodb://localhost:27017") as gw:
        export_profiling_data(gw, "shop", "profile.json")
"""

from datetime import datetime, timezone
from pathlib import Path

from bson import json_util
from pymongo import MongoClient
from pymongo.errors import OperationFailure

PROFILE_COLLECTION = "system.profile"

# Server error code for "ns not found"
NAMESPACE_NOT_FOUND = 26

PROFILING_LEVELS = (0, 2)

# serverStatus sections copied into a metrics snapshot, keyed by snapshot field
_SNAPSHOT_FIELDS: list[tuple[str, str]] = [
    ("uptimeSeconds", "uptime"),
    ("connections", "connections"),
    ("opcounters", "opcounters"),
    ("opcountersRepl", "opcountersRepl"),
    ("network", "network"),
    ("mem", "mem"),
    ("extra_info", "extra_info"),
    ("metrics", "metrics"),
    ("wiredTiger", "wiredTiger"),
    ("logicalSessionRecordCache", "logicalSessionRecordCache"),
]


class MongoGateway:
    """Connection-scoped access to profiler and statistics commands.

    Use as a context manager so the client is closed on every exit path,
    including errors::

        with MongoGateway(uri) as gw:
            gw.set_profiling_level("shop", 2)

    Attributes:
        uri: Connection string the client was built from.
    """

    def __init__(self, uri: str, timeout_ms: int | None = None, client=None):
        """Create the client (pymongo connects lazily).

        Args:
            uri: MongoDB connection string.
            timeout_ms: Optional ``serverSelectionTimeoutMS`` override.
            client: Pre-built client; used by tests.
        """
        self.uri = uri
        if client is None:
            kwargs = {}
            if timeout_ms:
                kwargs["serverSelectionTimeoutMS"] = timeout_ms
            client = MongoClient(uri, **kwargs)
        self._client = client

    def __enter__(self):
        try:
            self.connect()
        except Exception:
            self.close()
            raise
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    # -- Connection ---------------------------------------------------------

    def connect(self) -> None:
        """Verify the server is reachable.

        Raises:
            pymongo.errors.ConnectionFailure: If no server can be selected.
            pymongo.errors.OperationFailure: If authentication fails.
        """
        self._client.admin.command("ping")

    def close(self) -> None:
        self._client.close()

    def database(self, db_name: str):
        """Return the pymongo Database handle (used by the demo harness)."""
        return self._client[db_name]

    def drop_database(self, db_name: str) -> None:
        self._client.drop_database(db_name)

    # -- Profiler -----------------------------------------------------------

    def set_profiling_level(self, db_name: str, level: int) -> dict:
        """Set the profiler level on *db_name* (0 = off, 2 = all operations).

        Returns:
            The server reply; ``was`` holds the previous level.

        Raises:
            ValueError: If *level* is not 0 or 2.
        """
        if level not in PROFILING_LEVELS:
            raise ValueError(f"Unsupported profiling level {level!r}; "
                             f"expected one of {PROFILING_LEVELS}")
        return self._client[db_name].command("profile", level)

    def drop_profile(self, db_name: str) -> bool:
        """Drop ``system.profile`` on *db_name*.

        Returns:
            True if the collection was dropped, False if it did not exist.

        Raises:
            pymongo.errors.OperationFailure: For any failure other than a
                missing namespace (e.g. profiling still enabled).
        """
        try:
            self._client[db_name].command("drop", PROFILE_COLLECTION)
        except OperationFailure as exc:
            if exc.code == NAMESPACE_NOT_FOUND:
                return False
            raise
        return True

    def find_profile(self, db_name: str) -> list[dict]:
        return list(self._client[db_name][PROFILE_COLLECTION].find())

    # -- Statistics ---------------------------------------------------------

    def server_status(self) -> dict:
        return self._client.admin.command("serverStatus", repl=1, wiredTiger=1)

    def list_database_names(self) -> list[str]:
        return self._client.list_database_names()

    def db_stats(self, db_name: str, scale: int = 1) -> dict:
        return self._client[db_name].command("dbStats", scale=scale)


# ---------------------------------------------------------------------------
# Mode operations
# ---------------------------------------------------------------------------

def _write_json(doc, output_file) -> Path:
    path = Path(output_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json_util.dumps(doc, indent=4), encoding="utf-8")
    return path


def enable_profiling(gateway: MongoGateway, db_name: str) -> None:
    gateway.set_profiling_level(db_name, 2)
    print(f"  [ok] Profiling enabled on database '{db_name}'.")


def disable_profiling(gateway: MongoGateway, db_name: str) -> None:
    gateway.set_profiling_level(db_name, 0)
    print(f"  [ok] Profiling disabled on database '{db_name}'.")


def purge_profiling_data(gateway: MongoGateway, db_name: str) -> bool:
    """Drop the profiler collection; an absent collection is not an error.

    Returns:
        True if data was dropped, False if there was nothing to drop.
    """
    dropped = gateway.drop_profile(db_name)
    if dropped:
        print(f"  [ok] Profiling data purged from database '{db_name}'.")
    else:
        print(f"  [info] No profiling data found in database '{db_name}'.")
    return dropped


def export_profiling_data(gateway: MongoGateway, db_name: str,
                          output_file) -> int:
    """Write every ``system.profile`` document to *output_file* as a JSON array.

    ObjectIds, dates and other BSON types are written as relaxed Extended
    JSON.

    Returns:
        Number of entries exported.
    """
    entries = gateway.find_profile(db_name)
    path = _write_json(entries, output_file)
    print(f"  [ok] Exported {len(entries)} profiling entries to '{path}'.")
    return len(entries)


def collect_lifetime_metrics(gateway: MongoGateway, output_file) -> dict:
    """Snapshot cumulative server metrics plus ``dbStats`` for every database.

    ``serverStatus`` counters are cumulative since the last restart, so the
    snapshot describes the server's whole uptime.

    Args:
        gateway: Open gateway.
        output_file: Where to write the snapshot JSON.

    Returns:
        The snapshot dict that was written.
    """
    status = gateway.server_status()
    metrics: dict = {"timestamp": datetime.now(timezone.utc).isoformat()}
    for field, source in _SNAPSHOT_FIELDS:
        metrics[field] = status.get(source)

    db_stats: dict[str, dict] = {}
    for db_name in gateway.list_database_names():
        db_stats[db_name] = gateway.db_stats(db_name, scale=1)
    metrics["dbStats"] = db_stats

    path = _write_json(metrics, output_file)
    print(f"  [ok] Metrics for {len(db_stats)} database(s) saved to '{path}'.")
    return metrics
