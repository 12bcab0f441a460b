"""Exception hierarchy for transformation failures.

Every failure during a load or save surfaces as a ``TransformError`` (or a
subclass). Driver failures are wrapped into the base class with the original
exception chained, so callers only need to catch one type.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable

    from docshape.generics import TypeDescriptor


class TransformError(Exception):
    """Base class for all transformation errors."""


class UnresolvableConversionError(TransformError):
    """No transformer, serializer or structural rule matches a value."""

    def __init__(
        self,
        value: Any,
        source: TypeDescriptor | None,
        target: TypeDescriptor | type | None,
    ) -> None:
        self.value = value
        self.source = source
        self.target = target
        msg = (
            f"Cannot resolve {type(value).__name__} to "
            f"{_describe(target)} ({source} => {target}): {value!r}"
        )
        super().__init__(msg)


class UnserializableValueError(UnresolvableConversionError):
    """A value has no serializer, transformer or collection shape."""

    def __init__(self, value: Any, generic: TypeDescriptor | None) -> None:
        self.value = value
        self.source = generic
        self.target = None
        msg = (
            f"Cannot serialize type {type(value).__name__} ({generic}): "
            f"{value!r} [{type(value)!r}]"
        )
        TransformError.__init__(self, msg)


class EnumLookupError(TransformError, ValueError):
    """A string does not name any member of the target enum."""

    def __init__(self, name: str, enum_cls: type, available: Iterable[str]) -> None:
        self.name = name
        self.enum_cls = enum_cls
        self.available = tuple(available)
        msg = (
            f"No enum value for name {name!r} in {enum_cls.__name__} "
            f"(available: {', '.join(self.available)})"
        )
        super().__init__(msg)


class GenericShapeError(TransformError):
    """Required type parameter information is missing."""


class InvalidValueError(TransformError):
    """A resolver rejected a value without raising its own error."""

    def __init__(self, resolver: object, path: str) -> None:
        self.path = path
        msg = (
            f"{type(resolver).__name__} marked {path} as invalid "
            "without throwing an exception"
        )
        super().__init__(msg)


class DeclarationError(TransformError, ValueError):
    """A declared object type is malformed (duplicate path, bad marker)."""


def _describe(target: Any) -> str:
    if isinstance(target, type):
        return target.__name__
    return str(target)
