"""Metadata markers for declared fields.

Markers are attached to field annotations with ``typing.Annotated``::

    class ServerConfig(TransformedObject, version=3):
        port: Annotated[int, Comment("Listening port"), Variable("APP_PORT")] = 8080
        legacy_host: Annotated[str, Migration(2), CustomKey("host")] = ""
"""

from __future__ import annotations

from dataclasses import dataclass

from docshape.errors import DeclarationError


@dataclass(frozen=True)
class Comment:
    """Comment lines written above a field (or as a document header)."""

    lines: tuple[str, ...]

    def __init__(self, *lines: str) -> None:
        object.__setattr__(self, "lines", tuple(lines))


@dataclass(frozen=True)
class Migration:
    """Schema version at which the field's document path is retired.

    A field tagged ``Migration(3)`` is removed from documents written before
    version 3 when they are loaded by a schema of version 3 or later.
    """

    version: int

    def __post_init__(self) -> None:
        if self.version <= 0:
            msg = f"Migration version must be positive, got {self.version}"
            raise DeclarationError(msg)


@dataclass(frozen=True)
class Variable:
    """Name of an environment variable that overrides the field at load time."""

    name: str


@dataclass(frozen=True)
class CustomKey:
    """Explicit document key, bypassing the naming policy."""

    key: str


@dataclass(frozen=True)
class Exclude:
    """Keep the attribute out of the document entirely."""
