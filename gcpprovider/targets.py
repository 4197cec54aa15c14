"""Desired states of the cloud resources the flow reconciler manages, and their names."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from gcpprovider.config import CloudNAT, FlowLogs, InfrastructureConfig

DEFAULT_VPC_ROUTING_CONFIG_REGIONAL = "REGIONAL"
"""VPC routing mode that enables regional routing."""
DEFAULT_AGGREGATION_INTERVAL = "INTERVAL_5_MIN"
"""Default flow log aggregation interval."""
DEFAULT_FLOW_SAMPLING = 0.5
"""Default flow log sampling rate."""
DEFAULT_METADATA = "EXCLUDE_ALL_METADATA"
"""Default flow log metadata setting."""

_FORCE_SEND_FIELDS = ["Disabled", "Priority"]
_NULL_FIELDS = [
    "Denied",
    "DestinationRanges",
    "SourceServiceAccounts",
    "SourceTags",
    "TargetTags",
    "TargetServiceAccounts",
]


@dataclass
class Network:
    """A VPC network."""

    name: str
    auto_create_subnetworks: bool = False
    routing_mode: str = DEFAULT_VPC_ROUTING_CONFIG_REGIONAL
    self_link: str = ""
    force_send_fields: List[str] = field(default_factory=list)


@dataclass
class SubnetworkLogConfig:
    """Flow log settings of a subnetwork."""

    aggregation_interval: str = DEFAULT_AGGREGATION_INTERVAL
    flow_sampling: float = DEFAULT_FLOW_SAMPLING
    metadata: str = DEFAULT_METADATA


@dataclass
class Subnetwork:
    """A subnetwork of a VPC."""

    name: str
    description: str = ""
    ip_cidr_range: str = ""
    network: str = ""
    private_ip_google_access: bool = False
    enable_flow_logs: bool = False
    log_config: Optional[SubnetworkLogConfig] = None
    self_link: str = ""


@dataclass
class Router:
    """A Cloud Router."""

    name: str
    description: str = ""
    network: str = ""
    self_link: str = ""


@dataclass
class RouterNatLogConfig:
    """Logging settings of a Cloud NAT."""

    enable: bool = True
    filter: str = "ERRORS_ONLY"


@dataclass
class RouterNatSubnetwork:
    """A subnetwork served by a Cloud NAT."""

    name: str
    source_ip_ranges_to_nat: List[str] = field(default_factory=lambda: ["ALL_IP_RANGES"])


@dataclass
class RouterNat:
    """A Cloud NAT attached to a router."""

    name: str
    enable_dynamic_port_allocation: bool = False
    enable_endpoint_independent_mapping: bool = False
    log_config: RouterNatLogConfig = field(default_factory=RouterNatLogConfig)
    max_ports_per_vm: int = 65536
    min_ports_per_vm: int = 2048
    nat_ip_allocate_option: str = "AUTO_ONLY"
    nat_ips: List[str] = field(default_factory=list)
    source_subnetwork_ip_ranges_to_nat: str = "LIST_OF_SUBNETWORKS"
    subnetworks: List[RouterNatSubnetwork] = field(default_factory=list)
    icmp_idle_timeout_sec: int = 30
    tcp_established_idle_timeout_sec: int = 1200
    tcp_time_wait_timeout_sec: int = 120
    tcp_transitory_idle_timeout_sec: int = 30
    udp_idle_timeout_sec: int = 30


@dataclass
class FirewallAllowed:
    """A protocol and its ports allowed by a firewall rule."""

    ip_protocol: str
    ports: List[str] = field(default_factory=list)


@dataclass
class Firewall:
    """A firewall rule."""

    name: str
    network: str
    direction: str = "INGRESS"
    allowed: List[FirewallAllowed] = field(default_factory=list)
    source_ranges: List[str] = field(default_factory=list)
    target_tags: List[str] = field(default_factory=list)
    force_send_fields: List[str] = field(default_factory=lambda: list(_FORCE_SEND_FIELDS))
    null_fields: List[str] = field(default_factory=lambda: list(_NULL_FIELDS))


def target_network(name: str) -> Network:
    """Desired state of a gardener-managed VPC."""
    return Network(
        name=name,
        auto_create_subnetworks=False,
        routing_mode=DEFAULT_VPC_ROUTING_CONFIG_REGIONAL,
        force_send_fields=["AutoCreateSubnetworks"],
    )


def target_subnet_state(
    name: str, description: str, cidr: str, network_name: str, flow_logs: Optional[FlowLogs]
) -> Subnetwork:
    """Desired state of a subnetwork, with flow logs if configured."""
    subnet = Subnetwork(
        name=name,
        description=description,
        ip_cidr_range=cidr,
        network=network_name,
    )
    if flow_logs is not None:
        subnet.enable_flow_logs = True
        log_config = SubnetworkLogConfig()
        if flow_logs.aggregation_interval is not None:
            log_config.aggregation_interval = flow_logs.aggregation_interval
        if flow_logs.flow_sampling is not None:
            log_config.flow_sampling = flow_logs.flow_sampling
        if flow_logs.metadata is not None:
            log_config.metadata = flow_logs.metadata
        subnet.log_config = log_config
    return subnet


def target_router_state(name: str, description: str, vpc_name: str) -> Router:
    """Desired state of a Cloud Router."""
    return Router(name=name, description=description, network=vpc_name)


def target_nat_state(
    name: str,
    subnet_url: str,
    nat_config: Optional[CloudNAT],
    nat_ip_urls: Optional[Iterable[str]],
) -> RouterNat:
    """Desired state of the Cloud NAT for the given subnet."""
    nat = RouterNat(name=name, subnetworks=[RouterNatSubnetwork(name=subnet_url)])

    if nat_config is not None:
        nat.enable_dynamic_port_allocation = nat_config.enable_dynamic_port_allocation
        if nat_config.min_ports_per_vm is not None:
            nat.min_ports_per_vm = nat_config.min_ports_per_vm
        if nat_config.max_ports_per_vm is not None:
            nat.max_ports_per_vm = nat_config.max_ports_per_vm
        if nat_config.endpoint_independent_mapping is not None:
            nat.enable_endpoint_independent_mapping = nat_config.endpoint_independent_mapping.enabled
        if nat_config.icmp_idle_timeout_sec is not None:
            nat.icmp_idle_timeout_sec = nat_config.icmp_idle_timeout_sec
        if nat_config.tcp_established_idle_timeout_sec is not None:
            nat.tcp_established_idle_timeout_sec = nat_config.tcp_established_idle_timeout_sec
        if nat_config.tcp_time_wait_timeout_sec is not None:
            nat.tcp_time_wait_timeout_sec = nat_config.tcp_time_wait_timeout_sec
        if nat_config.tcp_transitory_idle_timeout_sec is not None:
            nat.tcp_transitory_idle_timeout_sec = nat_config.tcp_transitory_idle_timeout_sec
        if nat_config.udp_idle_timeout_sec is not None:
            nat.udp_idle_timeout_sec = nat_config.udp_idle_timeout_sec

    urls = list(nat_ip_urls or [])
    if urls:
        nat.nat_ip_allocate_option = "MANUAL_ONLY"
        nat.nat_ips.extend(urls)
    return nat


def firewall_rule_allow_internal(name: str, network: str, cidrs: Iterable[Optional[str]]) -> Firewall:
    """Rule allowing all internal traffic from the given non-empty CIDRs."""
    return Firewall(
        name=name,
        network=network,
        allowed=[
            FirewallAllowed(ip_protocol="icmp"),
            FirewallAllowed(ip_protocol="ipip"),
            FirewallAllowed(ip_protocol="tcp", ports=["1-65535"]),
            FirewallAllowed(ip_protocol="udp", ports=["1-65535"]),
        ],
        source_ranges=[cidr for cidr in cidrs if cidr],
    )


def firewall_rule_allow_external(name: str, network: str) -> Firewall:
    """Rule allowing HTTPS from anywhere."""
    return Firewall(
        name=name,
        network=network,
        allowed=[FirewallAllowed(ip_protocol="tcp", ports=["443"])],
        source_ranges=["0.0.0.0/0"],
    )


def firewall_rule_allow_health_checks(name: str, network: str) -> Firewall:
    """Rule allowing node port traffic from the load balancer health checkers."""
    return Firewall(
        name=name,
        network=network,
        source_ranges=[
            "35.191.0.0/16",
            "209.85.204.0/22",
            "209.85.152.0/22",
            "130.211.0.0/22",
        ],
        allowed=[
            FirewallAllowed(ip_protocol="udp", ports=["30000-32767"]),
            FirewallAllowed(ip_protocol="tcp", ports=["30000-32767"]),
        ],
    )


def firewall_rule_allow_internal_name(base: str) -> str:
    """Name of the internal-access firewall rule."""
    return f"{base}-allow-internal-access"


def firewall_rule_allow_external_name(base: str) -> str:
    """Name of the external-access firewall rule."""
    return f"{base}-allow-external-access"


def firewall_rule_allow_health_checks_name(base: str) -> str:
    """Name of the health-check firewall rule."""
    return f"{base}-allow-health-checks"


def is_user_router(config: InfrastructureConfig) -> bool:
    """Return True if the configuration names a user-managed Cloud Router."""
    vpc = config.networks.vpc
    return vpc is not None and vpc.cloud_router is not None and bool(vpc.cloud_router.name)


def is_user_vpc(config: InfrastructureConfig) -> bool:
    """Return True if the configuration names a user-managed VPC."""
    vpc = config.networks.vpc
    return vpc is not None and bool(vpc.name)


def vpc_name(cluster_name: str, config: InfrastructureConfig) -> str:
    """Name of the VPC: the user's, or the cluster name."""
    if config.networks.vpc is not None:
        return config.networks.vpc.name
    return cluster_name


def subnet_name(cluster_name: str) -> str:
    """Name of the worker subnet."""
    return f"{cluster_name}-nodes"


def internal_subnet_name(cluster_name: str) -> str:
    """Name of the internal subnet."""
    return f"{cluster_name}-internal"


def cloud_router_name(cluster_name: str, config: InfrastructureConfig) -> str:
    """Name of the Cloud Router: the user's, or derived from the cluster name."""
    vpc = config.networks.vpc
    if vpc is not None and vpc.cloud_router is not None:
        return vpc.cloud_router.name
    return f"{cluster_name}-cloud-router"


def cloud_nat_name(cluster_name: str) -> str:
    """Name of the Cloud NAT."""
    return f"{cluster_name}-cloud-nat"