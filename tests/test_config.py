import pytest

from gcpprovider.config import (
    VPC,
    CloudNAT,
    CloudRouter,
    EndpointIndependentMapping,
    FlowLogs,
    InfrastructureConfig,
    NatIPName,
    NetworkConfig,
    infrastructure_config_from_dict,
)


def test_empty_document_gives_defaults():
    config = infrastructure_config_from_dict({})
    assert config == InfrastructureConfig()
    assert config.networks.vpc is None
    assert config.networks.cloud_nat is None


def test_full_document():
    doc = {
        "networks": {
            "vpc": {"name": "test-vpc", "cloudRouter": {"name": "test-cloud-router"}},
            "cloudNAT": {
                "natIPNames": [{"name": "test1"}, {"name": "test2"}],
                "minPortsPerVM": 64,
                "maxPortsPerVM": 128,
                "enableDynamicPortAllocation": True,
                "endpointIndependentMapping": {"enabled": True},
                "udpIdleTimeoutSec": 40,
            },
            "internal": "10.1.0.0/16",
            "workers": "10.0.0.0/16",
            "flowLogs": {"aggregationInterval": "INTERVAL_5_MIN", "flowSampling": 1},
        }
    }
    config = infrastructure_config_from_dict(doc)
    assert config.networks.vpc == VPC(name="test-vpc", cloud_router=CloudRouter(name="test-cloud-router"))
    nat = config.networks.cloud_nat
    assert nat.nat_ip_names == [NatIPName(name="test1"), NatIPName(name="test2")]
    assert nat.min_ports_per_vm == 64
    assert nat.max_ports_per_vm == 128
    assert nat.enable_dynamic_port_allocation is True
    assert nat.endpoint_independent_mapping == EndpointIndependentMapping(enabled=True)
    assert nat.udp_idle_timeout_sec == 40
    assert nat.icmp_idle_timeout_sec is None
    assert config.networks.internal == "10.1.0.0/16"
    assert config.networks.workers == "10.0.0.0/16"
    assert config.networks.worker == ""
    assert config.networks.flow_logs == FlowLogs(aggregation_interval="INTERVAL_5_MIN", flow_sampling=1.0)


def test_cloud_nat_without_names():
    config = infrastructure_config_from_dict({"networks": {"cloudNAT": {}}})
    assert config.networks.cloud_nat == CloudNAT()


def test_defaults_are_independent():
    first = NetworkConfig()
    second = NetworkConfig()
    first.worker = "a"
    assert second.worker == ""
    assert CloudNAT().nat_ip_names is not CloudNAT().nat_ip_names