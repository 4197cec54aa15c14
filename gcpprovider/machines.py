"""Building blocks of the machine classes created for worker pools."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

ARCHITECTURE_AMD64 = "amd64"
"""Architecture assumed when none is given."""

RESOURCE_GPU = "gpu"
"""Name of the GPU resource in a node capacity."""

MAX_GCP_LABEL_CHARACTERS = 63

_LABEL_INVALID = re.compile(r"[^a-z0-9_-]")
_LEADING_DIGITS = re.compile(r"^\d+")


@dataclass
class MachineImage:
    """A machine image resolved for a name, version and architecture."""

    name: str
    version: str
    image: str = ""
    architecture: Optional[str] = None


@dataclass
class DiskEncryption:
    """Customer-managed encryption settings of a disk."""

    kms_key_name: Optional[str] = None
    kms_key_service_account: Optional[str] = None


class MachineImageNotFoundError(LookupError):
    """Raised when no machine image matches a name, version and architecture."""

    def __init__(self, name: str, version: str, architecture: Optional[str]) -> None:
        self.name = name
        self.version = version
        self.architecture = architecture
        super().__init__(
            f"could not find machine image for {name}/{version}/{architecture} "
            "neither in cloud profile nor in worker status"
        )


def _sanitize(label: str, start_with_character: bool) -> str:
    value = _LABEL_INVALID.sub("_", label.lower())
    if start_with_character:
        value = value.lstrip("0123456789_")
    return value[:MAX_GCP_LABEL_CHARACTERS]


def sanitize_gcp_label(label: str) -> str:
    """Make a string a valid GCP label key: lower case, allowed characters, starting with a letter."""
    return _sanitize(label, True)


def sanitize_gcp_label_value(value: str) -> str:
    """Make a string a valid GCP label value: lower case and allowed characters only."""
    return _sanitize(value, False)


def disk_size(size: str) -> int:
    """Return the leading number of a size such as '20Gi'."""
    match = _LEADING_DIGITS.match(size)
    if match is None:
        raise ValueError(f"invalid disk size {size!r}")
    return int(match.group())


def create_disk_spec(
    size: str,
    boot: bool,
    machine_image: Optional[str],
    volume_type: Optional[str],
    labels: Optional[Mapping[str, Any]],
) -> Dict[str, Any]:
    """Return the disk specification of a machine class."""
    disk: Dict[str, Any] = {
        "autoDelete": True,
        "boot": boot,
        "sizeGb": disk_size(size),
    }
    if labels:
        disk["labels"] = labels
    if machine_image is not None:
        disk["image"] = machine_image
    if volume_type is not None:
        disk["type"] = volume_type
    return disk


def add_disk_encryption_details(disk: Dict[str, Any], encryption: Optional[DiskEncryption]) -> None:
    """Add the encryption settings to a disk specification, if any are given."""
    if encryption is None:
        return
    details: Dict[str, Any] = {}
    if encryption.kms_key_name is not None:
        details["kmsKeyName"] = encryption.kms_key_name
    if encryption.kms_key_service_account is not None:
        details["kmsKeyServiceAccount"] = encryption.kms_key_service_account
    disk["encryption"] = details


def get_gce_pool_labels(
    worker_name: str, namespace: str, pool_labels: Optional[Mapping[str, str]]
) -> Dict[str, Any]:
    """Return the instance labels of a worker pool, sanitised for GCP."""
    labels: Dict[str, Any] = {
        "name": sanitize_gcp_label_value(worker_name),
        "k8s-cluster-name": sanitize_gcp_label_value(namespace),
    }
    for key, value in (pool_labels or {}).items():
        label = sanitize_gcp_label(key)
        if label:
            labels[label] = sanitize_gcp_label_value(value)
    return labels


def initialize_capacity(capacity: Optional[Mapping[str, Any]], gpu_count: int) -> Dict[str, Any]:
    """Return a copy of the capacity with the GPU count set if it is not zero."""
    result = dict(capacity or {})
    if gpu_count != 0:
        result[RESOURCE_GPU] = gpu_count
    return result


def set_scheduling_policy(machine_class_spec: Dict[str, Any], is_live_migration_allowed: bool) -> None:
    """Set the scheduling policy of a machine class specification."""
    machine_class_spec["scheduling"] = {
        "automaticRestart": True,
        "onHostMaintenance": "MIGRATE" if is_live_migration_allowed else "TERMINATE",
        "preemptible": False,
    }


def find_machine_image(
    machine_images: Iterable[MachineImage],
    name: str,
    version: str,
    architecture: Optional[str],
) -> MachineImage:
    """Return the image matching name, version and architecture; images without one count as amd64."""
    for image in machine_images:
        image_arch = image.architecture if image.architecture is not None else ARCHITECTURE_AMD64
        if image.name == name and image.version == version and image_arch == architecture:
            return MachineImage(
                name=image.name, version=image.version, image=image.image, architecture=image_arch
            )
    raise MachineImageNotFoundError(name, version, architecture)


def append_machine_image(
    machine_images: Optional[Iterable[MachineImage]], machine_image: MachineImage
) -> List[MachineImage]:
    """Return the images with machine_image appended unless an equal one is present."""
    images = list(machine_images or [])
    try:
        find_machine_image(
            images, machine_image.name, machine_image.version, machine_image.architecture
        )
    except MachineImageNotFoundError:
        images.append(machine_image)
    return images