"""The infrastructure state stored by the flow reconciler."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Union

FLOW_STATE_KIND = "FlowState"
"""The kind used for the FlowState type."""

API_VERSION = "gcp.provider.extensions.gardener.cloud/v1alpha1"
"""The API version a FlowState is stored with."""

OBJECT_KEY_SERVICE_ACCOUNT = "service-account"
OBJECT_KEY_VPC = "vpc"
OBJECT_KEY_NODE_SUBNET = "subnet-nodes"
OBJECT_KEY_INTERNAL_SUBNET = "subnet-internal"
OBJECT_KEY_ROUTER = "router"
OBJECT_KEY_NAT = "nat"
OBJECT_KEY_IP_ADDRESS = "addresses/ip"


@dataclass
class FlowState:
    """Infrastructure state for use with the flow reconciler."""

    kind: str = ""
    api_version: str = ""
    data: Dict[str, str] = field(default_factory=dict)

    def to_json(self) -> bytes:
        """Serialise the state as compact JSON."""
        doc: Dict[str, Any] = {}
        if self.kind:
            doc["kind"] = self.kind
        if self.api_version:
            doc["apiVersion"] = self.api_version
        doc["data"] = self.data
        return json.dumps(doc, separators=(",", ":")).encode()

    def has_valid_version(self) -> bool:
        """Return True if kind and API version are the supported ones."""
        return self.kind == FLOW_STATE_KIND and self.api_version == API_VERSION


def new_flow_state() -> FlowState:
    """Return an empty FlowState of the current version."""
    return FlowState(kind=FLOW_STATE_KIND, api_version=API_VERSION, data={})


def _load_object(raw: Union[bytes, str]) -> Mapping[str, Any]:
    doc = json.loads(raw)
    if not isinstance(doc, Mapping):
        raise ValueError("state is not a JSON object")
    for key in ("kind", "apiVersion"):
        if key in doc and doc[key] is not None and not isinstance(doc[key], str):
            raise ValueError(f"field {key!r} is not a string")
    return doc


def is_json_flow_state(raw: Union[bytes, str]) -> bool:
    """Return True if raw is JSON of a FlowState of the current version."""
    doc = _load_object(raw)
    return doc.get("kind") == FLOW_STATE_KIND and doc.get("apiVersion") == API_VERSION


def flow_state_from_json(raw: Union[bytes, str]) -> FlowState:
    """Decode a FlowState from JSON."""
    doc = _load_object(raw)
    data = doc.get("data")
    if data is None:
        data = {}
    if not isinstance(data, Mapping) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in data.items()
    ):
        raise ValueError("field 'data' is not a map of strings")
    return FlowState(
        kind=doc.get("kind") or "",
        api_version=doc.get("apiVersion") or "",
        data=dict(data),
    )