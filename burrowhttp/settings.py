"""Hierarchical, case-insensitive configuration store addressed by dotted keys."""

from __future__ import annotations

import copy
from typing import Any

_MISSING = object()

_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


def _split(key: str) -> list[str]:
    return [part for part in key.lower().split(".") if part]


def _normalise(value: Any) -> Any:
    """Copy a value, lower-casing the keys of any mappings inside it."""
    if isinstance(value, dict):
        return {str(k).lower(): _normalise(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalise(v) for v in value]
    return value


def _lookup(tree: dict[str, Any], parts: list[str]) -> Any:
    node: Any = tree
    for part in parts:
        if not isinstance(node, dict) or part not in node:
            return _MISSING
        node = node[part]
    return node


def _store(tree: dict[str, Any], parts: list[str], value: Any) -> None:
    if not parts:
        raise KeyError("empty configuration key")
    node = tree
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = _normalise(value)


def _merge(base: dict[str, Any], top: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in top.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _as_string(value: Any) -> str:
    if value is None or isinstance(value, (dict, list, tuple)):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class Settings:
    """Configuration values set explicitly or as defaults, read back with type coercion."""

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}
        self._defaults: dict[str, Any] = {}

    def set(self, key: str, value: Any) -> None:
        """Set a value, overriding any default."""
        _store(self._values, _split(key), value)

    def set_default(self, key: str, value: Any) -> None:
        """Set the value used when nothing was set explicitly."""
        _store(self._defaults, _split(key), value)

    def is_set(self, key: str) -> bool:
        """Whether the key holds a value or a default."""
        parts = _split(key)
        return (
            _lookup(self._values, parts) is not _MISSING
            or _lookup(self._defaults, parts) is not _MISSING
        )

    def get(self, key: str) -> Any:
        """The raw value for a key, or None; mappings merge set values over defaults."""
        parts = _split(key)
        value = _lookup(self._values, parts)
        default = _lookup(self._defaults, parts)
        if isinstance(value, dict) and isinstance(default, dict):
            return _merge(default, value)
        if value is not _MISSING:
            return copy.deepcopy(value)
        if default is not _MISSING:
            return copy.deepcopy(default)
        return None

    def get_string(self, key: str) -> str:
        return _as_string(self.get(key))

    def get_int(self, key: str) -> int:
        value = self.get(key)
        if isinstance(value, (bool, int)):
            return int(value)
        if isinstance(value, float):
            return int(value)
        if isinstance(value, str):
            text = value.strip()
            try:
                return int(text, 0)
            except ValueError:
                pass
            try:
                number = float(text)
            except ValueError:
                return 0
            return int(number) if number.is_integer() else 0
        return 0

    def get_bool(self, key: str) -> bool:
        value = self.get(key)
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value != 0
        if isinstance(value, str):
            text = value.strip()
            if text in _TRUE_WORDS:
                return True
            return False
        return False

    def get_string_list(self, key: str) -> list[str]:
        value = self.get(key)
        if isinstance(value, (list, tuple)):
            return [_as_string(item) for item in value]
        if isinstance(value, str):
            return value.split()
        return []

    def get_mapping(self, key: str) -> dict[str, Any]:
        value = self.get(key)
        return value if isinstance(value, dict) else {}

    def get_string_mapping(self, key: str) -> dict[str, str]:
        return {name: _as_string(item) for name, item in self.get_mapping(key).items()}

    def reset(self) -> None:
        """Forget every value and default."""
        self._values.clear()
        self._defaults.clear()