import json
from unittest.mock import MagicMock, patch

import pytest
from bson import ObjectId
from pymongo.errors import OperationFailure, ServerSelectionTimeoutError

from mongo_gateway import (
    MongoGateway,
    collect_lifetime_metrics,
    disable_profiling,
    enable_profiling,
    export_profiling_data,
    purge_profiling_data,
)


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def gateway(client):
    return MongoGateway("mongodb://localhost:27017", client=client)


class TestConnection:

    def test_context_manager_pings_and_closes(self, client):
        with MongoGateway("mongodb://localhost:27017", client=client) as gw:
            client.admin.command.assert_called_once_with("ping")
            assert gw.uri == "mongodb://localhost:27017"
        client.close.assert_called_once()

    def test_connect_failure_closes_and_propagates(self, client):
        client.admin.command.side_effect = ServerSelectionTimeoutError("no servers")
        with pytest.raises(ServerSelectionTimeoutError):
            with MongoGateway("mongodb://nowhere:1", client=client):
                pass
        client.close.assert_called_once()

    def test_error_inside_block_still_closes(self, client):
        with pytest.raises(RuntimeError):
            with MongoGateway("mongodb://localhost:27017", client=client):
                raise RuntimeError("boom")
        client.close.assert_called_once()

    def test_builds_client_with_timeout(self):
        with patch("mongo_gateway.MongoClient") as mongo_client:
            MongoGateway("mongodb://h:27017", timeout_ms=2500)
        mongo_client.assert_called_once_with(
            "mongodb://h:27017", serverSelectionTimeoutMS=2500)


class TestProfiler:

    def test_enable_and_disable(self, gateway, client):
        enable_profiling(gateway, "shop")
        client.__getitem__.assert_called_with("shop")
        client["shop"].command.assert_called_with("profile", 2)
        disable_profiling(gateway, "shop")
        client["shop"].command.assert_called_with("profile", 0)

    def test_rejects_other_levels(self, gateway, client):
        with pytest.raises(ValueError):
            gateway.set_profiling_level("shop", 1)
        client["shop"].command.assert_not_called()

    def test_purge_drops_profile_collection(self, gateway, client, capsys):
        assert purge_profiling_data(gateway, "shop") is True
        client["shop"].command.assert_called_once_with("drop", "system.profile")
        assert "purged" in capsys.readouterr().out

    def test_purge_missing_collection_is_a_no_op(self, gateway, client, capsys):
        client["shop"].command.side_effect = OperationFailure("ns not found", code=26)
        assert purge_profiling_data(gateway, "shop") is False
        assert "No profiling data found" in capsys.readouterr().out

    def test_purge_other_failures_propagate(self, gateway, client):
        client["shop"].command.side_effect = OperationFailure(
            "cannot drop while profiling is enabled", code=20)
        with pytest.raises(OperationFailure):
            purge_profiling_data(gateway, "shop")

    def test_export_writes_extended_json_array(self, gateway, client, tmp_path):
        oid = ObjectId("65f000000000000000000001")
        client["shop"]["system.profile"].find.return_value = iter([
            {"_id": oid, "op": "command", "command": {"aggregate": "orders"}},
            {"op": "insert"},
        ])
        out = tmp_path / "out" / "profile.json"
        assert export_profiling_data(gateway, "shop", out) == 2
        data = json.loads(out.read_text(encoding="utf-8"))
        assert data[0]["_id"] == {"$oid": str(oid)}
        assert data[1] == {"op": "insert"}


class TestMetrics:

    def test_collect_lifetime_metrics(self, gateway, client, tmp_path):
        client.admin.command.return_value = {
            "uptime": 370.0,
            "connections": {"current": 10},
            "opcounters": {"insert": 1},
            "network": {"bytesIn": 5, "bytesOut": 6},
            "mem": {"resident": 100},
            "host": "db1",
        }
        client.list_database_names.return_value = ["admin", "shop"]
        client["shop"].command.return_value = {"dataSize": 10, "indexSize": 2,
                                               "totalSize": 20}
        out = tmp_path / "metrics.json"

        metrics = collect_lifetime_metrics(gateway, out)

        client.admin.command.assert_called_once_with("serverStatus", repl=1, wiredTiger=1)
        client["shop"].command.assert_called_with("dbStats", scale=1)
        assert metrics["uptimeSeconds"] == 370.0
        assert metrics["connections"] == {"current": 10}
        assert metrics["opcountersRepl"] is None
        assert "host" not in metrics
        assert set(metrics["dbStats"]) == {"admin", "shop"}
        assert "timestamp" in metrics
        on_disk = json.loads(out.read_text(encoding="utf-8"))
        assert on_disk["dbStats"]["shop"]["totalSize"] == 20
