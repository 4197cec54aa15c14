"""Validation of an infrastructure's provider configuration against the cloud."""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Union

from gcpprovider.config import InfrastructureConfig, NetworkConfig, infrastructure_config_from_dict


class ErrorType(str, enum.Enum):
    """Kinds of field validation errors."""

    NOT_FOUND = "FieldValueNotFound"
    INVALID = "FieldValueInvalid"
    INTERNAL = "InternalError"


@dataclass(frozen=True)
class FieldError:
    """A validation error tied to a field path."""

    type: ErrorType
    field: str
    bad_value: Any = None
    detail: str = ""

    def __str__(self) -> str:
        if self.type is ErrorType.INTERNAL:
            return f"{self.field}: Internal error: {self.detail}"
        if self.type is ErrorType.NOT_FOUND:
            return f"{self.field}: Not found: {self.bad_value!r}"
        return f"{self.field}: Invalid value: {self.bad_value!r}: {self.detail}"


class ComputeClient(Protocol):
    """The part of a compute client the validator needs."""

    def get_external_addresses(self, region: str) -> Mapping[str, Sequence[str]]: ...


@dataclass
class Infrastructure:
    """An infrastructure resource as far as validation is concerned."""

    name: str
    namespace: str
    region: str
    provider_config: Union[bytes, str, Mapping[str, Any], None] = None
    secret_ref: Dict[str, str] = field(default_factory=dict)

    def config(self) -> InfrastructureConfig:
        """Decode the provider configuration."""
        raw = self.provider_config
        if raw is None:
            raise ValueError(f"provider config is not set on infrastructure {self.namespace}/{self.name}")
        if isinstance(raw, (bytes, str)):
            raw = json.loads(raw)
        return infrastructure_config_from_dict(raw)


ComputeClientFactory = Callable[[Mapping[str, str]], ComputeClient]


def validate_networks(
    compute_client: ComputeClient,
    cluster_name: str,
    region: str,
    networks: NetworkConfig,
    path: str,
) -> List[FieldError]:
    """Check that each configured NAT IP exists and is free or used by the cluster's router."""
    if networks.cloud_nat is None or not networks.cloud_nat.nat_ip_names:
        return []

    try:
        external_addresses = compute_client.get_external_addresses(region)
    except Exception as exc:
        return [FieldError(ErrorType.INTERNAL, path, detail=f"could not get external IP addresses: {exc}")]

    router_name = f"{cluster_name}-cloud-router"
    vpc = networks.vpc
    if vpc is not None and vpc.cloud_router is not None and vpc.cloud_router.name:
        router_name = vpc.cloud_router.name

    errors: List[FieldError] = []
    for index, nat_ip in enumerate(networks.cloud_nat.nat_ip_names):
        name_path = f"{path}.cloudNAT.natIPNames[{index}].name"
        if nat_ip.name not in external_addresses:
            errors.append(FieldError(ErrorType.NOT_FOUND, name_path, bad_value=nat_ip.name))
            continue
        users = list(external_addresses[nat_ip.name] or [])
        if len(users) > 1 or (len(users) == 1 and users[0] != router_name):
            errors.append(
                FieldError(
                    ErrorType.INVALID,
                    name_path,
                    bad_value=nat_ip.name,
                    detail=f"external IP address is already in use by {','.join(users)}",
                )
            )
    return errors


class ConfigValidator:
    """Validates the provider config of infrastructure resources with the cloud provider."""

    def __init__(self, compute_client_factory: ComputeClientFactory, logger: Optional[logging.Logger] = None) -> None:
        self._factory = compute_client_factory
        base = logger or logging.getLogger(__name__)
        self._log = base.getChild("gcp-infrastructure-config-validator")

    def validate(self, infrastructure: Infrastructure) -> List[FieldError]:
        """Return the list of validation errors for the infrastructure."""
        try:
            config = infrastructure.config()
        except Exception as exc:
            return [FieldError(ErrorType.INTERNAL, "", detail=str(exc))]

        try:
            compute_client = self._factory(infrastructure.secret_ref)
        except Exception as exc:
            return [FieldError(ErrorType.INTERNAL, "", detail=str(exc))]

        self._log.info(
            "Validating infrastructure networks configuration (infrastructure=%s/%s)",
            infrastructure.namespace,
            infrastructure.name,
        )
        return validate_networks(
            compute_client,
            infrastructure.namespace,
            infrastructure.region,
            config.networks,
            "networks",
        )