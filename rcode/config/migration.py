"""Rewrite pre-``hosts`` client configs into the current layout."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class MigrationWarning(BaseModel):
    """A deprecated setting that was rewritten or should be changed."""

    model_config = ConfigDict(frozen=True)
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


# (old location, new location); locations are key paths, each key
# accepted in kebab-case or snake_case.
_LEGACY_CLIENT_KEYS: list[tuple[tuple[str, ...], tuple[str, ...]]] = [
    (("network", "primary-host"), ("hosts", "server", "primary")),
    (("network", "fallback-host"), ("hosts", "server", "fallback")),
    (("ssh-host",), ("hosts", "ssh", "host")),
    (("auto-detect-tailscale",), ("hosts", "ssh", "auto-detect", "tailscale")),
    (
        ("tailscale-host-pattern",),
        ("hosts", "ssh", "auto-detect", "tailscale-pattern"),
    ),
]


def _spellings(key: str) -> tuple[str, str]:
    return key, key.replace("-", "_")


def _pop(raw: dict[str, Any], path: tuple[str, ...]) -> tuple[bool, Any]:
    node: Any = raw
    for key in path[:-1]:
        if not isinstance(node, dict):
            return False, None
        node = next(
            (node[k] for k in _spellings(key) if k in node), None
        )
    if not isinstance(node, dict):
        return False, None
    for k in _spellings(path[-1]):
        if k in node:
            return True, node.pop(k)
    return False, None


def _has(raw: dict[str, Any], path: tuple[str, ...]) -> bool:
    node: Any = raw
    for key in path:
        if not isinstance(node, dict):
            return False
        node = next(
            (node[k] for k in _spellings(key) if k in node), None
        )
        if node is None or node == "":
            return False
    return True


def _set(raw: dict[str, Any], path: tuple[str, ...], value: Any) -> None:
    node = raw
    for key in path[:-1]:
        existing = next((k for k in _spellings(key) if k in node), key)
        child = node.get(existing)
        if not isinstance(child, dict):
            child = {}
            node[existing] = child
        node = child
    node[path[-1]] = value


def migrate_client_payload(raw: dict[str, Any]) -> list[MigrationWarning]:
    """Move legacy client settings into ``hosts`` in place.

    A legacy value only fills its new location when that location is
    not already set; it is dropped either way.
    """
    warnings: list[MigrationWarning] = []
    for old, new in _LEGACY_CLIENT_KEYS:
        found, value = _pop(raw, old)
        if not found or value in (None, ""):
            continue
        old_name = ".".join(old)
        new_name = ".".join(new)
        if _has(raw, new):
            message = f"ignored, {new_name} is already set"
        else:
            _set(raw, new, value)
            message = f"moved to {new_name}"
        warnings.append(MigrationWarning(field=old_name, message=message))
    return warnings
