#!/usr/bin/env python3
"""Demo environment -- run a known workload through the whole advisor pipeline.

This script is the **test harness** for the advisor.  It seeds a scratch
database on a MongoDB server you point it at, captures a profiled workload
that mixes supported and not-supported operators, and produces both reports,
so you can check the analyzer flags every operator it should.

What It Creates
---------------
One scratch database (default ``advisor_demo``) containing:

    customers       small reference collection
    orders          orders referencing customers, indexed on customerId

Workload (all issued as commands, so the profiler records ``op: "command"``):

    supported       $match / $group / $sort / $limit / $project pipelines,
                    with $gt / $in / $or filters
    not supported   $lookup, $unwind, $facet + $sortByCount, $bucket,
                    $addFields + $dateToString, $expr, $elemMatch

Phases
------
1. Seed data
2. Purge old profiler data and enable profiling (level 2)
3. Run the workload
4. Export the profile, disable profiling
5. Analyze the profile (advisor report)
6. Collect metrics and run sizing (sizing report)
7. Teardown (drop the scratch database)

Usage
-----
::

    python setup_test_env.py                  # full run, then drop the scratch db
    python setup_test_env.py --no-teardown    # keep the scratch db for inspection
    python setup_test_env.py --teardown-only  # just drop the scratch db

Environment Variables (in .env)
-------------------------------
Same as run_advisor.py:
    MONGODB_URI, ADVISOR_REPORT_DIR, ADVISOR_OPS_PER_CORE,
    ADVISOR_SERVER_TIMEOUT_MS
"""

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

from mongo_gateway import (
    MongoGateway,
    collect_lifetime_metrics,
    disable_profiling,
    enable_profiling,
    export_profiling_data,
    purge_profiling_data,
)
from run_advisor import (
    BASE_DIR,
    _banner,
    _redact_uri,
    load_settings,
    run_analyze_profile,
    run_sizing,
)

DEMO_DB = "advisor_demo"

CUSTOMERS = [
    {"_id": 1, "name": "Alice", "tier": "gold", "tags": ["b2b", "eu"]},
    {"_id": 2, "name": "Bob", "tier": "silver", "tags": ["b2c"]},
    {"_id": 3, "name": "Charlie", "tier": "gold", "tags": ["b2c", "us"]},
]

ORDERS = [
    {"_id": 101, "customerId": 1, "total": 120.0, "items": [{"sku": "A", "qty": 2}]},
    {"_id": 102, "customerId": 1, "total": 35.5, "items": [{"sku": "B", "qty": 1}]},
    {"_id": 103, "customerId": 2, "total": 980.0, "items": [{"sku": "C", "qty": 7}]},
    {"_id": 104, "customerId": 3, "total": 15.0, "items": [{"sku": "A", "qty": 1}]},
]


# ---------------------------------------------------------------------------
# Phase 1: Seed
# ---------------------------------------------------------------------------

def seed_demo_db(db) -> None:
    """Drop and re-create the demo collections."""
    print(f"\n  Seeding '{db.name}'...")
    db["customers"].drop()
    db["orders"].drop()
    db["customers"].insert_many(CUSTOMERS)
    db["orders"].insert_many(ORDERS)
    db["orders"].create_index("customerId")
    print(f"    Inserted {len(CUSTOMERS)} customers and {len(ORDERS)} orders")


# ---------------------------------------------------------------------------
# Phase 3: Workload
# ---------------------------------------------------------------------------

# (label, collection, pipeline) -- every step runs through aggregate()
_SUPPORTED_WORKLOAD = [
    ("$match + $group + $sort", "orders", [
        {"$match": {"total": {"$gt": 20}}},
        {"$group": {"_id": "$customerId", "orders": {"$count": {}}}},
        {"$sort": {"orders": -1}},
    ]),
    ("$match + $project + $limit", "customers", [
        {"$match": {"$or": [{"tier": "gold"}, {"tags": {"$in": ["b2c"]}}]}},
        {"$project": {"name": 1, "tier": 1}},
        {"$limit": 10},
    ]),
]

_NOT_SUPPORTED_WORKLOAD = [
    ("$lookup + $unwind", "orders", [
        {"$lookup": {"from": "customers", "localField": "customerId",
                     "foreignField": "_id", "as": "customer"}},
        {"$unwind": "$customer"},
    ]),
    ("$facet + $sortByCount", "customers", [
        {"$facet": {
            "byTier": [{"$sortByCount": "$tier"}],
            "total": [{"$count": "n"}],
        }},
    ]),
    ("$bucket", "orders", [
        {"$bucket": {"groupBy": "$total", "boundaries": [0, 50, 500, 5000],
                     "default": "other"}},
    ]),
    ("$addFields + $dateToString", "orders", [
        {"$addFields": {"day": {"$dateToString": {
            "format": "%Y-%m-%d", "date": {"$toDate": "$_id"}}}}},
        {"$limit": 2},
    ]),
    ("$expr", "orders", [
        {"$match": {"$expr": {"$gt": ["$total", 100]}}},
    ]),
    ("$elemMatch", "orders", [
        {"$match": {"items": {"$elemMatch": {"sku": "A", "qty": {"$gte": 2}}}}},
    ]),
]


def run_demo_workload(db) -> dict[str, int]:
    """Run every workload pipeline, tolerating server-side rejections.

    Args:
        db: pymongo Database to run against.

    Returns:
        ``{"ran": n, "skipped": m}``.
    """
    print("    Running workload...")
    ran = skipped = 0
    for label, coll_name, pipeline in _SUPPORTED_WORKLOAD + _NOT_SUPPORTED_WORKLOAD:
        try:
            list(db[coll_name].aggregate(pipeline))
            ran += 1
            print(f"      ran {label}")
        except Exception as exc:
            skipped += 1
            print(f"      [skip] {label}: {exc}")
    return {"ran": ran, "skipped": skipped}


# ---------------------------------------------------------------------------
# Phases 2-6: capture and analyze
# ---------------------------------------------------------------------------

def run_pipeline(gw: MongoGateway, db_name: str, report_dir: Path,
                 ops_per_core: float) -> dict[str, Path]:
    """Capture the workload profile and produce both reports.

    Returns:
        Paths keyed by ``profile``, ``metrics``, ``advisor_report`` and
        ``sizing_report``.
    """
    db = gw.database(db_name)
    work_dir = report_dir / "demo"
    profile_file = work_dir / f"{db_name}_profile.json"
    metrics_file = work_dir / f"{db_name}_metrics.json"

    _banner("Phase 1: Seed demo data")
    seed_demo_db(db)

    _banner("Phase 2: Reset and enable profiler")
    # system.profile can only be dropped while profiling is off
    disable_profiling(gw, db_name)
    purge_profiling_data(gw, db_name)
    enable_profiling(gw, db_name)

    _banner("Phase 3: Run workload")
    try:
        counts = run_demo_workload(db)
    finally:
        _banner("Phase 4: Export profile")
        export_profiling_data(gw, db_name, profile_file)
        disable_profiling(gw, db_name)
    print(f"  [info] {counts['ran']} step(s) ran, {counts['skipped']} skipped")

    advisor_report = run_analyze_profile(
        str(profile_file), str(report_dir), ops_per_core=ops_per_core)

    _banner("Phase 6: Collect metrics")
    collect_lifetime_metrics(gw, metrics_file)
    sizing_report = run_sizing(str(metrics_file), str(report_dir),
                               ops_per_core=ops_per_core)

    return {
        "profile": profile_file,
        "metrics": metrics_file,
        "advisor_report": advisor_report,
        "sizing_report": sizing_report,
    }


# ---------------------------------------------------------------------------
# Phase 7: Teardown
# ---------------------------------------------------------------------------

def teardown(gw: MongoGateway, db_name: str) -> None:
    _banner("Phase 7: Teardown")
    disable_profiling(gw, db_name)
    gw.drop_database(db_name)
    print(f"  Dropped database '{db_name}'.")


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> None:
    """Entry point: parse args, run the full demo lifecycle or teardown only."""
    parser = argparse.ArgumentParser(description=__doc__,
                                     formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--db", default=DEMO_DB,
                        help=f"Scratch database name (default: {DEMO_DB})")
    parser.add_argument("--no-teardown", action="store_true",
                        help="Keep the scratch database after the run")
    parser.add_argument("--teardown-only", action="store_true",
                        help="Only drop the scratch database")
    args = parser.parse_args()

    load_dotenv(BASE_DIR / ".env")
    try:
        settings = load_settings()
    except ValueError as exc:
        sys.exit(f"Invalid configuration: {exc}")

    uri = settings["uri"]
    report_dir = Path(settings["report_dir"])
    print(f"  Server: {_redact_uri(uri)}")
    print(f"  Database: {args.db}")

    with MongoGateway(uri, timeout_ms=settings["timeout_ms"]) as gw:
        if args.teardown_only:
            teardown(gw, args.db)
            return
        try:
            outputs = run_pipeline(gw, args.db, report_dir, settings["ops_per_core"])
            _banner("Demo complete")
            for label, path in outputs.items():
                print(f"  {label:15} -> {path}")
        finally:
            if args.no_teardown:
                print("\n  --no-teardown: scratch database left in place.")
                print("  Run 'python setup_test_env.py --teardown-only' to drop it.")
            else:
                teardown(gw, args.db)


if __name__ == "__main__":
    main()
