"""One-way and two-way value transformers."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from docshape.generics import TypeDescriptor


def _as_descriptor(typ: TypeDescriptor | type) -> TypeDescriptor:
    return typ if isinstance(typ, TypeDescriptor) else TypeDescriptor.of_type(typ)


@dataclass(frozen=True, init=False)
class Transformer[R, F]:
    """Converts values of one declared type into another.

    Both conversion functions return ``None`` to decline, which the resolver
    treats as "no value" rather than an error.

    Attributes:
        source: Descriptor of the accepted input type.
        target: Descriptor of the produced type.
        transformation: Converts a raw value.
        transformation_with_field: Converts a raw value using the current
            field value as a default source. Falls back to ``transformation``.

    """

    source: TypeDescriptor
    target: TypeDescriptor
    transformation: Callable[[R], F | None]
    transformation_with_field: Callable[[R, F], F | None] | None

    def __init__(
        self,
        source: TypeDescriptor | type[R],
        target: TypeDescriptor | type[F],
        transformation: Callable[[R], F | None],
        transformation_with_field: Callable[[R, F], F | None] | None = None,
    ) -> None:
        object.__setattr__(self, "source", _as_descriptor(source))
        object.__setattr__(self, "target", _as_descriptor(target))
        object.__setattr__(self, "transformation", transformation)
        object.__setattr__(self, "transformation_with_field", transformation_with_field)

    def transform(self, value: R) -> F | None:
        """Convert ``value`` to the target type."""
        return self.transformation(value)

    def transform_with_field(self, value: R, field: F) -> F | None:
        """Convert ``value`` using ``field`` to fill partial state."""
        if self.transformation_with_field is None:
            return self.transformation(value)
        return self.transformation_with_field(value, field)

    @property
    def key(self) -> tuple[type, type]:
        """Registry key: the raw source and target types."""
        return (self.source.raw, self.target.raw)


@dataclass(frozen=True, init=False)
class TwoSideTransformer[R, F]:
    """A pair of conversions between a raw and a final type.

    ``to_final`` maps raw → final, ``to_raw`` maps final → raw. The registry
    stores both directions as independent ``Transformer`` instances.
    """

    raw: TypeDescriptor
    final: TypeDescriptor
    to_raw: Callable[[F], R | None]
    to_final: Callable[[R], F | None]
    to_final_with_field: Callable[[R, F], F | None] | None

    def __init__(
        self,
        raw: TypeDescriptor | type[R],
        final: TypeDescriptor | type[F],
        to_raw: Callable[[F], R | None],
        to_final: Callable[[R], F | None],
        to_final_with_field: Callable[[R, F], F | None] | None = None,
    ) -> None:
        object.__setattr__(self, "raw", _as_descriptor(raw))
        object.__setattr__(self, "final", _as_descriptor(final))
        object.__setattr__(self, "to_raw", to_raw)
        object.__setattr__(self, "to_final", to_final)
        object.__setattr__(self, "to_final_with_field", to_final_with_field)

    def reverse(self) -> TwoSideTransformer[F, R]:
        """Swap the raw and final sides."""
        return TwoSideTransformer(
            self.final,
            self.raw,
            to_raw=self.to_final,
            to_final=self.to_raw,
        )

    def forward(self) -> Transformer[R, F]:
        return Transformer(self.raw, self.final, self.to_final, self.to_final_with_field)

    def backward(self) -> Transformer[F, R]:
        return Transformer(self.final, self.raw, self.to_raw)

    def transformers(self) -> tuple[Transformer[Any, Any], Transformer[Any, Any]]:
        """Both directions, raw → final first."""
        return (self.forward(), self.backward())
