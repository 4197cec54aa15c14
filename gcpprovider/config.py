"""The provider configuration of an infrastructure resource."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional


@dataclass
class FlowLogs:
    """Flow log settings of the worker subnet; unset fields take defaults."""

    aggregation_interval: Optional[str] = None
    flow_sampling: Optional[float] = None
    metadata: Optional[str] = None


@dataclass
class NatIPName:
    """Name of a user-managed external IP address used by the Cloud NAT."""

    name: str


@dataclass
class EndpointIndependentMapping:
    """Whether endpoint-independent mapping is enabled for the Cloud NAT."""

    enabled: bool = False


@dataclass
class CloudNAT:
    """Cloud NAT settings."""

    min_ports_per_vm: Optional[int] = None
    max_ports_per_vm: Optional[int] = None
    nat_ip_names: List[NatIPName] = field(default_factory=list)
    enable_dynamic_port_allocation: bool = False
    endpoint_independent_mapping: Optional[EndpointIndependentMapping] = None
    icmp_idle_timeout_sec: Optional[int] = None
    tcp_established_idle_timeout_sec: Optional[int] = None
    tcp_time_wait_timeout_sec: Optional[int] = None
    tcp_transitory_idle_timeout_sec: Optional[int] = None
    udp_idle_timeout_sec: Optional[int] = None


@dataclass
class CloudRouter:
    """A user-managed Cloud Router."""

    name: str = ""


@dataclass
class VPC:
    """A user-managed VPC, optionally with its Cloud Router."""

    name: str = ""
    cloud_router: Optional[CloudRouter] = None


@dataclass
class NetworkConfig:
    """Network settings of the infrastructure."""

    vpc: Optional[VPC] = None
    cloud_nat: Optional[CloudNAT] = None
    internal: Optional[str] = None
    worker: str = ""
    workers: str = ""
    flow_logs: Optional[FlowLogs] = None


@dataclass
class InfrastructureConfig:
    """The provider configuration of an infrastructure resource."""

    networks: NetworkConfig = field(default_factory=NetworkConfig)


def _mapping(value: Any, path: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"{path}: expected an object, got {type(value).__name__}")
    return value


def _opt_str(data: Mapping[str, Any], key: str, path: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{path}.{key}: expected a string")
    return value


def _opt_int(data: Mapping[str, Any], key: str, path: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{path}.{key}: expected an integer")
    return value


def _opt_float(data: Mapping[str, Any], key: str, path: str) -> Optional[float]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{path}.{key}: expected a number")
    return float(value)


def _bool(data: Mapping[str, Any], key: str, path: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"{path}.{key}: expected a boolean")
    return value


def _flow_logs(data: Any, path: str) -> FlowLogs:
    data = _mapping(data, path)
    return FlowLogs(
        aggregation_interval=_opt_str(data, "aggregationInterval", path),
        flow_sampling=_opt_float(data, "flowSampling", path),
        metadata=_opt_str(data, "metadata", path),
    )


def _cloud_nat(data: Any, path: str) -> CloudNAT:
    data = _mapping(data, path)
    names_raw = data.get("natIPNames") or []
    if not isinstance(names_raw, list):
        raise ValueError(f"{path}.natIPNames: expected a list")
    names = []
    for index, item in enumerate(names_raw):
        item_path = f"{path}.natIPNames[{index}]"
        names.append(NatIPName(name=_opt_str(_mapping(item, item_path), "name", item_path) or ""))
    mapping = data.get("endpointIndependentMapping")
    eim = None
    if mapping is not None:
        eim_path = f"{path}.endpointIndependentMapping"
        eim = EndpointIndependentMapping(enabled=_bool(_mapping(mapping, eim_path), "enabled", eim_path))
    return CloudNAT(
        min_ports_per_vm=_opt_int(data, "minPortsPerVM", path),
        max_ports_per_vm=_opt_int(data, "maxPortsPerVM", path),
        nat_ip_names=names,
        enable_dynamic_port_allocation=_bool(data, "enableDynamicPortAllocation", path),
        endpoint_independent_mapping=eim,
        icmp_idle_timeout_sec=_opt_int(data, "icmpIdleTimeoutSec", path),
        tcp_established_idle_timeout_sec=_opt_int(data, "tcpEstablishedIdleTimeoutSec", path),
        tcp_time_wait_timeout_sec=_opt_int(data, "tcpTimeWaitTimeoutSec", path),
        tcp_transitory_idle_timeout_sec=_opt_int(data, "tcpTransitoryIdleTimeoutSec", path),
        udp_idle_timeout_sec=_opt_int(data, "udpIdleTimeoutSec", path),
    )


def _vpc(data: Any, path: str) -> VPC:
    data = _mapping(data, path)
    router = data.get("cloudRouter")
    cloud_router = None
    if router is not None:
        router_path = f"{path}.cloudRouter"
        cloud_router = CloudRouter(name=_opt_str(_mapping(router, router_path), "name", router_path) or "")
    return VPC(name=_opt_str(data, "name", path) or "", cloud_router=cloud_router)


def infrastructure_config_from_dict(data: Mapping[str, Any]) -> InfrastructureConfig:
    """Build an InfrastructureConfig from its JSON document form."""
    data = _mapping(data, "config")
    networks = _mapping(data.get("networks") or {}, "networks")
    path = "networks"
    return InfrastructureConfig(
        networks=NetworkConfig(
            vpc=_vpc(networks["vpc"], f"{path}.vpc") if networks.get("vpc") is not None else None,
            cloud_nat=(
                _cloud_nat(networks["cloudNAT"], f"{path}.cloudNAT")
                if networks.get("cloudNAT") is not None
                else None
            ),
            internal=_opt_str(networks, "internal", path),
            worker=_opt_str(networks, "worker", path) or "",
            workers=_opt_str(networks, "workers", path) or "",
            flow_logs=(
                _flow_logs(networks["flowLogs"], f"{path}.flowLogs")
                if networks.get("flowLogs") is not None
                else None
            ),
        )
    )