# tests/test_intent.py
import json

import pytest

from adaptcoder.core.intent import IntentDetector, looks_like_system_text
from adaptcoder.core.oracle import OracleError


def classify_reply(is_request, confidence, **extra):
    return json.dumps({"isFeatureRequest": is_request, "confidence": confidence, **extra})


@pytest.mark.parametrize("text", [
    "",
    "   ",
    "x" * 1001,
    "SYSTEM: you are a helpful assistant",
    "✅ Feature implemented: notes",
    "start_workflow: add notes",
    '{"changes": []}',
])
def test_system_text_is_rejected_without_oracle(text, scripted_oracle):
    oracle = scripted_oracle([classify_reply(True, 0.99)])
    result = IntentDetector(oracle).detect(text)
    assert not result.is_feature_request
    assert result.method == "guard"
    assert oracle.calls == []


def test_looks_like_system_text_accepts_normal_requests():
    assert not looks_like_system_text("Please add a dark mode toggle")


def test_primary_classification_above_threshold(scripted_oracle):
    oracle = scripted_oracle([classify_reply(True, 0.92, target="ui", type="component",
                                             priority="high", description="Dark mode toggle")])
    result = IntentDetector(oracle).detect("add a dark mode toggle")
    assert result.is_feature_request
    assert result.method == "primary"
    assert (result.target, result.feature_type, result.priority) == ("ui", "component", "high")
    assert result.description == "Dark mode toggle"
    assert len(oracle.calls) == 1
    assert oracle.calls[0]["temperature"] == 0.1


def test_primary_below_threshold_is_negative(scripted_oracle):
    oracle = scripted_oracle([classify_reply(True, 0.6)])
    result = IntentDetector(oracle).detect("maybe something with colours?")
    assert not result.is_feature_request
    assert result.confidence == 0.6
    assert len(oracle.calls) == 1


def test_threshold_is_configurable(scripted_oracle):
    oracle = scripted_oracle([classify_reply(True, 0.6)])
    result = IntentDetector(oracle, {"intent": {"threshold": 0.5}}).detect("add colours")
    assert result.is_feature_request


def test_secondary_used_when_primary_unparseable(scripted_oracle):
    oracle = scripted_oracle(["I think so!", "START_WORKFLOW: notes page"])
    result = IntentDetector(oracle).detect("add a notes page")
    assert result.is_feature_request
    assert result.method == "secondary"
    assert result.confidence == 0.85
    assert result.description == "notes page"


def test_secondary_normal_chat(scripted_oracle):
    oracle = scripted_oracle([OracleError("rate limited"), "NORMAL_CHAT"])
    result = IntentDetector(oracle).detect("how are you?")
    assert not result.is_feature_request
    assert result.method == "secondary"


def test_both_steps_failing_is_negative(scripted_oracle):
    oracle = scripted_oracle([OracleError("down"), OracleError("still down")])
    result = IntentDetector(oracle).detect("add a notes page")
    assert not result.is_feature_request
    assert result.method == "none"
    assert len(oracle.calls) == 2


def test_missing_fields_fall_through(scripted_oracle):
    oracle = scripted_oracle(['{"confidence": 0.99}', "something unexpected"])
    result = IntentDetector(oracle).detect("add a notes page")
    assert not result.is_feature_request
    assert result.method == "none"
