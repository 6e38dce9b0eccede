from unittest.mock import MagicMock

from pymongo.errors import OperationFailure

from profile_analyzer import classify
from setup_test_env import (
    _NOT_SUPPORTED_WORKLOAD,
    _SUPPORTED_WORKLOAD,
    run_demo_workload,
    seed_demo_db,
)


def _as_profile_entries(workload):
    return [{"op": "command", "ns": f"advisor_demo.{coll}",
             "command": {"aggregate": coll, "pipeline": pipeline, "cursor": {}}}
            for _label, coll, pipeline in workload]


def test_supported_workload_classifies_as_supported():
    result = classify(_as_profile_entries(_SUPPORTED_WORKLOAD))
    assert len(result["supported_commands"]) == len(_SUPPORTED_WORKLOAD)
    assert result["not_supported"] == {}


def test_not_supported_workload_is_flagged():
    result = classify(_as_profile_entries(_NOT_SUPPORTED_WORKLOAD))
    assert result["supported_commands"] == []
    flagged = [item["keywords"][0] for item in result["not_supported_commands"]]
    assert flagged == ["$lookup", "$facet", "$bucket", "$addFields", "$expr", "$elemMatch"]


def test_run_demo_workload_tolerates_rejections(capsys):
    db = MagicMock()

    def aggregate(pipeline):
        if "$bucket" in pipeline[0]:
            raise OperationFailure("not allowed")
        return iter([])

    db.__getitem__.return_value.aggregate.side_effect = aggregate
    counts = run_demo_workload(db)
    total = len(_SUPPORTED_WORKLOAD) + len(_NOT_SUPPORTED_WORKLOAD)
    assert counts == {"ran": total - 1, "skipped": 1}
    assert "[skip] $bucket" in capsys.readouterr().out


def test_seed_demo_db():
    db = MagicMock()
    db.name = "advisor_demo"
    seed_demo_db(db)
    db.__getitem__.assert_any_call("customers")
    db.__getitem__.assert_any_call("orders")
    assert db.__getitem__.return_value.insert_many.call_count == 2
