"""Shared fixtures: small profile exports and metrics snapshots."""

import json

import pytest

MIB = 1024 * 1024


@pytest.fixture
def aggregate_entry():
    """A profiled aggregate mixing supported and not-supported operators."""
    return {
        "op": "command",
        "ns": "shop.orders",
        "command": {
            "aggregate": "orders",
            "pipeline": [
                {"$match": {"status": "A", "total": {"$gt": 10}}},
                {"$lookup": {"from": "customers", "localField": "customerId",
                             "foreignField": "_id", "as": "customer"}},
                {"$unwind": "$customer"},
                {"$lookup": {"from": "items", "localField": "sku",
                             "foreignField": "sku", "as": "item"}},
            ],
        },
        "millis": 3,
    }


@pytest.fixture
def plain_entry():
    """A profiled command without any operator keys."""
    return {"op": "command", "ns": "shop.orders",
            "command": {"count": "orders", "query": {"status": "A"}}}


@pytest.fixture
def profile_entries(aggregate_entry, plain_entry):
    return [
        {"op": "insert", "ns": "shop.orders", "command": {"$facet": {}}},
        aggregate_entry,
        {"op": "query", "ns": "shop.orders", "command": {"filter": {"$expr": {}}}},
        plain_entry,
        {"op": "command", "command": {"find": "orders", "filter": {"$or": [
            {"a": {"$in": [1, 2]}}, {"b": {"$exists": True}}]}}},
    ]


@pytest.fixture
def metrics_snapshot():
    return {
        "timestamp": "2026-10-19T08:05:09+00:00",
        "uptimeSeconds": 370,
        "connections": {"current": 10, "available": 800},
        "opcounters": {"insert": 100, "query": 200, "update": 50,
                       "delete": 10, "getmore": 5, "command": 5},
        "mem": {"resident": 512, "virtual": 2048},
        "network": {"bytesIn": MIB, "bytesOut": MIB},
        "dbStats": {
            "a": {"dataSize": 100 * MIB, "indexSize": 50 * MIB,
                  "totalSize": 200 * MIB},
        },
    }


@pytest.fixture
def write_json(tmp_path):
    """Return a helper that dumps *data* to ``tmp_path/name`` and returns the path."""
    def _write(name, data):
        path = tmp_path / name
        path.write_text(json.dumps(data), encoding="utf-8")
        return path
    return _write
