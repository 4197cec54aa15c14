"""Feature gates for the extension controllers."""

from __future__ import annotations

import enum
import threading
from dataclasses import dataclass
from typing import Mapping

DISABLE_GARDENER_SERVICE_ACCOUNT_CREATION = "DisableGardenerServiceAccountCreation"
"""Whether the provider skips creating a default service account for machines (beta since v1.29.0)."""


class PreRelease(str, enum.Enum):
    """Maturity stage of a feature."""

    ALPHA = "ALPHA"
    BETA = "BETA"
    GA = ""
    DEPRECATED = "DEPRECATED"


@dataclass(frozen=True)
class FeatureSpec:
    """Default value and maturity of a feature."""

    default: bool
    pre_release: PreRelease = PreRelease.ALPHA


class FeatureGate:
    """A thread-safe registry of known features and their enablement."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._known: dict[str, FeatureSpec] = {}
        self._overrides: dict[str, bool] = {}

    def add(self, specs: Mapping[str, FeatureSpec]) -> None:
        """Register features; re-registering with a different spec is an error."""
        with self._lock:
            for name, spec in specs.items():
                existing = self._known.get(name)
                if existing is not None and existing != spec:
                    raise ValueError(
                        f"feature gate {name!r} with different spec already exists: {existing}"
                    )
            self._known.update(specs)

    def enabled(self, feature: str) -> bool:
        """Return whether the feature is enabled."""
        with self._lock:
            if feature in self._overrides:
                return self._overrides[feature]
            try:
                return self._known[feature].default
            except KeyError:
                raise KeyError(f"feature {feature!r} is not registered in FeatureGate") from None

    def set(self, feature: str, value: bool) -> None:
        """Override the enablement of a registered feature."""
        with self._lock:
            if feature not in self._known:
                raise KeyError(f"unrecognized feature gate: {feature}")
            self._overrides[feature] = bool(value)


EXTENSION_FEATURE_GATE = FeatureGate()
"""The feature gate for the extension controllers."""


def register_extension_feature_gate() -> None:
    """Register the extension's features with the extension feature gate."""
    EXTENSION_FEATURE_GATE.add(
        {
            DISABLE_GARDENER_SERVICE_ACCOUNT_CREATION: FeatureSpec(
                default=True, pre_release=PreRelease.BETA
            ),
        }
    )