"""A hierarchical, thread-safe key/value store for flow state."""

from __future__ import annotations

import threading
from typing import Any, Dict, List, Mapping, Optional

SEPARATOR = "/"
"""Separator used when translating keys to and from flat maps."""

_DELETED = "<deleted>"

FlatMap = Dict[str, str]


def is_valid_value(value: Optional[str]) -> bool:
    """Return True if the value is neither empty nor the deleted marker."""
    return bool(value) and value != _DELETED


class _Generation:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0

    def load(self) -> int:
        with self._lock:
            return self._value

    def increment(self) -> None:
        with self._lock:
            self._value += 1


class Whiteboard:
    """Hierarchical key/value store that can also cache arbitrary objects.

    Children share a generation counter which increments on every change of
    stored values.
    """

    def __init__(self, _generation: Optional[_Generation] = None) -> None:
        self._lock = threading.RLock()
        self._children: dict[str, Whiteboard] = {}
        self._data: dict[str, str] = {}
        self._objects: dict[str, Any] = {}
        self._generation = _generation if _generation is not None else _Generation()

    def current_generation(self) -> int:
        """Return the current generation."""
        return self._generation.load()

    def is_empty(self) -> bool:
        """Return True if neither this board nor any child holds data or objects."""
        with self._lock:
            if self._data or self._objects:
                return False
            children = list(self._children.values())
        return all(child.is_empty() for child in children)

    def get_child(self, key: str) -> "Whiteboard":
        """Return the child for key, creating it if needed."""
        with self._lock:
            child = self._children.get(key)
            if child is None:
                child = Whiteboard(self._generation)
                self._children[key] = child
            return child

    def has_child(self, key: str) -> bool:
        """Return True if a non-empty child exists for key."""
        with self._lock:
            child = self._children.get(key)
        return child is not None and not child.is_empty()

    def get_children_keys(self) -> List[str]:
        """Return the sorted keys of all children."""
        with self._lock:
            return sorted(self._children)

    def get(self, key: str) -> Optional[str]:
        """Return a valid value for key, or None."""
        with self._lock:
            value = self._data.get(key, "")
        return value if is_valid_value(value) else None

    def set(self, key: str, value: Optional[str]) -> None:
        """Store value under key; an empty or None value removes the key."""
        value = value or ""
        with self._lock:
            old = self._data.get(key, "")
            if value:
                self._data[key] = value
            else:
                self._data.pop(key, None)
        if old != value:
            self._generation.increment()

    def is_already_deleted(self, key: str) -> bool:
        """Return True if key is marked as deleted."""
        with self._lock:
            return self._data.get(key) == _DELETED

    def set_as_deleted(self, key: str) -> None:
        """Mark key as deleted."""
        self.set(key, _DELETED)

    def keys(self) -> List[str]:
        """Return all stored keys, sorted, including deleted ones."""
        with self._lock:
            return sorted(self._data)

    def as_map(self) -> Dict[str, str]:
        """Return all valid key/value pairs."""
        with self._lock:
            return {k: v for k, v in self._data.items() if is_valid_value(v)}

    def get_object(self, key: str) -> Any:
        """Return the cached object for key, or None."""
        with self._lock:
            return self._objects.get(key)

    def set_object(self, key: str, obj: Any) -> None:
        """Cache an object under key."""
        with self._lock:
            self._objects[key] = obj

    def delete_object(self, key: str) -> None:
        """Remove the cached object for key."""
        with self._lock:
            self._objects.pop(key, None)

    def has_object(self, key: str) -> bool:
        """Return True if an object is cached under key."""
        with self._lock:
            return key in self._objects

    def import_from_flat_map(self, data: Mapping[str, str]) -> None:
        """Rebuild the hierarchy from a flat map with path-like keys."""
        for key, value in data.items():
            *path, leaf = key.split(SEPARATOR)
            level = self
            for part in path:
                level = level.get_child(part)
            level.set(leaf, value)

    def export_as_flat_map(self) -> FlatMap:
        """Export the hierarchy to a flat map with path-like keys; objects are left out."""
        result: FlatMap = {}
        self._export_into(result, "")
        return result

    def _export_into(self, result: FlatMap, prefix: str) -> None:
        with self._lock:
            result.update({prefix + k: v for k, v in self._data.items()})
        for child_key in self.get_children_keys():
            self.get_child(child_key)._export_into(result, prefix + child_key + SEPARATOR)