import json

import pytest

from gcpprovider.flowstate import (
    API_VERSION,
    FLOW_STATE_KIND,
    FlowState,
    flow_state_from_json,
    is_json_flow_state,
    new_flow_state,
)


def test_new_flow_state_is_valid_and_empty():
    state = new_flow_state()
    assert state.kind == "FlowState"
    assert state.data == {}
    assert state.has_valid_version()


def test_to_json_layout():
    doc = json.loads(new_flow_state().to_json())
    assert doc == {"kind": FLOW_STATE_KIND, "apiVersion": API_VERSION, "data": {}}


def test_round_trip():
    state = new_flow_state()
    state.data["vpc"] = "my-vpc"
    back = flow_state_from_json(state.to_json())
    assert back == state


def test_is_json_flow_state():
    assert is_json_flow_state(new_flow_state().to_json())
    assert not is_json_flow_state(b'{"version": 4, "serial": 1}')
    assert not is_json_flow_state(json.dumps({"kind": FLOW_STATE_KIND, "apiVersion": "v0"}))


def test_is_json_flow_state_rejects_invalid_json():
    with pytest.raises(ValueError):
        is_json_flow_state(b"not json")
    with pytest.raises(ValueError):
        is_json_flow_state(b"[1, 2]")


def test_missing_data_becomes_empty_map():
    state = flow_state_from_json(json.dumps({"kind": FLOW_STATE_KIND, "apiVersion": API_VERSION}))
    assert state.data == {}
    assert state.has_valid_version()


def test_wrong_version_is_not_valid():
    assert not FlowState(kind=FLOW_STATE_KIND, api_version="other/v1").has_valid_version()
    assert not FlowState(kind="Other", api_version=API_VERSION).has_valid_version()


def test_non_string_data_rejected():
    with pytest.raises(ValueError):
        flow_state_from_json(json.dumps({"kind": FLOW_STATE_KIND, "data": {"a": 1}}))