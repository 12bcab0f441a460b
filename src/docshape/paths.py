"""Dotted-path access into nested string-keyed maps.

A path such as ``"database.pool.size"`` addresses ``doc["database"]["pool"]["size"]``.
A key that literally contains dots is matched before the path is split.
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from typing import Any

SEPARATOR = "."

_MISSING = object()


def _lookup(document: Mapping[Any, Any], path: str) -> Any:
    if path in document:
        return document[path]
    current: Any = document
    for part in path.split(SEPARATOR):
        if not isinstance(current, Mapping) or part not in current:
            return _MISSING
        current = current[part]
    return current


def get_path(document: Mapping[Any, Any], path: str) -> Any | None:
    """Get the value at ``path``, or None if any segment is missing."""
    value = _lookup(document, path)
    return None if value is _MISSING else value


def has_path(document: Mapping[Any, Any], path: str) -> bool:
    return _lookup(document, path) not in (_MISSING, None)


def set_path(document: MutableMapping[Any, Any], path: str, value: Any) -> None:
    """Store ``value`` at ``path``, creating intermediate maps as needed.

    Existing keys keep their position; new keys are appended.
    """
    if path in document or SEPARATOR not in path:
        document[path] = value
        return
    *parents, leaf = path.split(SEPARATOR)
    current = document
    for part in parents:
        child = current.get(part)
        if not isinstance(child, MutableMapping):
            child = {}
            current[part] = child
        current = child
    current[leaf] = value


def remove_path(document: MutableMapping[Any, Any], path: str) -> bool:
    """Delete ``path``; returns False if it was not present."""
    if path in document:
        del document[path]
        return True
    *parents, leaf = path.split(SEPARATOR)
    current: Any = document
    for part in parents:
        current = current.get(part) if isinstance(current, Mapping) else None
        if current is None:
            return False
    if not isinstance(current, MutableMapping) or leaf not in current:
        return False
    del current[leaf]
    return True
