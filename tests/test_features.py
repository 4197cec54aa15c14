import pytest

from gcpprovider.features import (
    DISABLE_GARDENER_SERVICE_ACCOUNT_CREATION,
    EXTENSION_FEATURE_GATE,
    FeatureGate,
    FeatureSpec,
    PreRelease,
    register_extension_feature_gate,
)


def test_registered_feature_defaults_to_enabled():
    register_extension_feature_gate()
    assert EXTENSION_FEATURE_GATE.enabled(DISABLE_GARDENER_SERVICE_ACCOUNT_CREATION) is True


def test_registering_twice_is_allowed():
    register_extension_feature_gate()
    register_extension_feature_gate()
    assert EXTENSION_FEATURE_GATE.enabled(DISABLE_GARDENER_SERVICE_ACCOUNT_CREATION) is True


def test_set_overrides_default():
    gate = FeatureGate()
    gate.add({"Foo": FeatureSpec(default=True, pre_release=PreRelease.BETA)})
    gate.set("Foo", False)
    assert gate.enabled("Foo") is False
    gate.set("Foo", True)
    assert gate.enabled("Foo") is True


def test_unknown_feature_raises_on_enabled():
    gate = FeatureGate()
    with pytest.raises(KeyError):
        gate.enabled("Unknown")


def test_unknown_feature_raises_on_set():
    gate = FeatureGate()
    with pytest.raises(KeyError):
        gate.set("Unknown", True)


def test_conflicting_spec_raises():
    gate = FeatureGate()
    gate.add({"Foo": FeatureSpec(default=True)})
    with pytest.raises(ValueError):
        gate.add({"Foo": FeatureSpec(default=False)})
    assert gate.enabled("Foo") is True