"""Reading Terraform state documents produced by the Terraformer."""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

MODE_MANAGED = "managed"
ATTRIBUTE_KEY_ID = "id"
ATTRIBUTE_KEY_NAME = "name"


class TerraformStateError(ValueError):
    """Raised when a Terraform state cannot be decoded."""


@dataclass
class RawState:
    """State data as stored by the Terraformer, with its encoding."""

    data: str
    encoding: str = "none"


@dataclass
class TFOutput:
    """Value and type of a state output variable."""

    value: str
    type: str


@dataclass
class TFInstance:
    """Attributes of one instance of a state resource."""

    schema_version: int = 0
    attributes: Dict[str, Any] = field(default_factory=dict)
    sensitive_attributes: List[Any] = field(default_factory=list)
    private: str = ""
    dependencies: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TFInstance":
        return cls(
            schema_version=int(data.get("schema_version") or 0),
            attributes=dict(data.get("attributes") or {}),
            sensitive_attributes=list(data.get("sensitive_attributes") or []),
            private=data.get("private") or "",
            dependencies=list(data.get("dependencies") or []),
        )


@dataclass
class TFResource:
    """A state resource with its instances."""

    mode: str
    type: str
    name: str
    provider: str = ""
    instances: List[TFInstance] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TFResource":
        return cls(
            mode=data.get("mode") or "",
            type=data.get("type") or "",
            name=data.get("name") or "",
            provider=data.get("provider") or "",
            instances=[TFInstance.from_dict(i) for i in data.get("instances") or []],
        )


@dataclass
class TerraformState:
    """A decoded Terraform state."""

    version: int = 0
    terraform_version: str = ""
    serial: int = 0
    lineage: str = ""
    outputs: Dict[str, TFOutput] = field(default_factory=dict)
    resources: List[TFResource] = field(default_factory=list)

    def find_managed_resource_instances(self, tf_type: str, resource_name: str) -> List[TFInstance]:
        """Return the instances of the managed resource with the given type and name."""
        for resource in self.resources:
            if resource.mode == MODE_MANAGED and resource.type == tf_type and resource.name == resource_name:
                return resource.instances
        return []

    def find_managed_resources_by_type(self, tf_type: str) -> List[TFResource]:
        """Return all managed resources of the given type."""
        return [r for r in self.resources if r.mode == MODE_MANAGED and r.type == tf_type]

    def get_managed_resource_instance_id(self, tf_type: str, resource_name: str) -> Optional[str]:
        """Return the id of the only instance of the resource, or None."""
        return self.get_managed_resource_instance_attribute(tf_type, resource_name, ATTRIBUTE_KEY_ID)

    def get_managed_resource_instance_name(self, tf_type: str, resource_name: str) -> Optional[str]:
        """Return the name of the only instance of the resource, or None."""
        return self.get_managed_resource_instance_attribute(tf_type, resource_name, ATTRIBUTE_KEY_NAME)

    def get_managed_resource_instance_attribute(
        self, tf_type: str, resource_name: str, attribute_key: str
    ) -> Optional[str]:
        """Return a string attribute of the only instance of the resource, or None."""
        instances = self.find_managed_resource_instances(tf_type, resource_name)
        if len(instances) == 1:
            return attribute_as_string(instances[0].attributes, attribute_key)
        return None

    def get_managed_resource_instances(self, tf_type: str) -> Dict[str, str]:
        """Map resource names to instance ids for single-instance resources of a type."""
        result: Dict[str, str] = {}
        for resource in self.find_managed_resources_by_type(tf_type):
            if len(resource.instances) == 1:
                value = attribute_as_string(resource.instances[0].attributes, ATTRIBUTE_KEY_ID)
                if value is not None:
                    result[resource.name] = value
        return result


def attribute_as_string(attributes: Optional[Mapping[str, Any]], key: str) -> Optional[str]:
    """Return the attribute if it exists and is a string, else None."""
    if not attributes:
        return None
    value = attributes.get(key)
    return value if isinstance(value, str) else None


def _parse_output(name: str, data: Any) -> TFOutput:
    if not isinstance(data, Mapping):
        raise TerraformStateError(f"output {name!r} is not an object")
    value = data.get("value", "")
    kind = data.get("type", "")
    if not isinstance(value, str) or not isinstance(kind, str):
        raise TerraformStateError(f"output {name!r} is not a string value")
    return TFOutput(value=value, type=kind)


def unmarshal_terraform_state(data: Union[bytes, str]) -> TerraformState:
    """Decode a Terraform state from JSON."""
    try:
        doc = json.loads(data)
    except (ValueError, UnicodeDecodeError) as exc:
        raise TerraformStateError(str(exc)) from exc
    if not isinstance(doc, Mapping):
        raise TerraformStateError("terraform state is not a JSON object")
    try:
        return TerraformState(
            version=int(doc.get("version") or 0),
            terraform_version=doc.get("terraform_version") or "",
            serial=int(doc.get("serial") or 0),
            lineage=doc.get("lineage") or "",
            outputs={k: _parse_output(k, v) for k, v in (doc.get("outputs") or {}).items()},
            resources=[TFResource.from_dict(r) for r in doc.get("resources") or []],
        )
    except (TypeError, ValueError, AttributeError) as exc:
        if isinstance(exc, TerraformStateError):
            raise
        raise TerraformStateError(str(exc)) from exc


def unmarshal_terraform_state_from_terraformer(state: RawState) -> TerraformState:
    """Decode a Terraform state from the Terraformer's raw state."""
    if state.encoding == "base64":
        try:
            data = base64.b64decode(state.data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise TerraformStateError(f"could not decode terraform raw state data: {exc}") from exc
    elif state.encoding == "none":
        data = state.data.encode()
    else:
        raise TerraformStateError(f"unknown encoding of Terraformer raw state: {state.encoding}")
    try:
        return unmarshal_terraform_state(data)
    except TerraformStateError as exc:
        raise TerraformStateError(f"could not decode terraform state: {exc}") from exc


def load_terraform_state_from_config_map_data(data: Mapping[str, str]) -> TerraformState:
    """Decode the Terraform state stored in config map data."""
    content = data.get("terraform.tfstate", "")
    if not content:
        raise TerraformStateError("key 'terraform.tfstate' not found")
    return unmarshal_terraform_state(content)