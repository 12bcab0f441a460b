"""Transformer and serializer registry."""

from __future__ import annotations

import base64
import binascii
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import TYPE_CHECKING, Any
from uuid import UUID

from docshape.generics import TypeDescriptor
from docshape.transformers import Transformer, TwoSideTransformer

if TYPE_CHECKING:
    from docshape.serializer import ObjectSerializer

_TRUE_NAMES = frozenset({"true", "yes", "on", "1"})
_FALSE_NAMES = frozenset({"false", "no", "off", "0"})


class TransformPack(ABC):
    """A named group of transformers and serializers.

    Usage:
        class ColorPack(TransformPack):
            def register(self, registry):
                registry.register_with_reversed_to_string(
                    Transformer(str, Color, Color.parse),
                )

        registry.with_transform_packs(ColorPack())
    """

    @abstractmethod
    def register(self, registry: TransformRegistry) -> None:
        """Add this pack's entries to ``registry``."""
        ...

    @staticmethod
    def create(function: Callable[[TransformRegistry], Any]) -> TransformPack:
        """Wrap a registration callable as a pack."""
        return _FunctionPack(function)


class _FunctionPack(TransformPack):
    def __init__(self, function: Callable[[TransformRegistry], Any]) -> None:
        self._function = function

    def register(self, registry: TransformRegistry) -> None:
        self._function(registry)


class TransformRegistry:
    """Maps (source, target) type pairs to transformers and types to serializers.

    Registration is last-write-wins: registering a transformer for a pair
    that already has one replaces it, and the most recently registered
    serializer that supports a class is the one returned for it.
    """

    def __init__(self) -> None:
        self._transformers: dict[tuple[type, type], Transformer[Any, Any]] = {}
        self._serializers: list[ObjectSerializer[Any]] = []

    def register(self, transformer: Transformer[Any, Any]) -> TransformRegistry:
        """Register a one-way transformer."""
        self._transformers[transformer.key] = transformer
        return self

    def register_two_side(self, transformer: TwoSideTransformer[Any, Any]) -> TransformRegistry:
        """Register both directions of a two-way transformer."""
        for one_way in transformer.transformers():
            self.register(one_way)
        return self

    def register_with_reversed_to_string(
        self,
        transformer: Transformer[Any, Any],
    ) -> TransformRegistry:
        """Register ``transformer`` plus a target → ``str`` transformer using ``str()``."""
        self.register(transformer)
        return self.register(Transformer(transformer.target, str, str))

    def register_serializer(self, serializer: ObjectSerializer[Any]) -> TransformRegistry:
        """Register a custom object serializer."""
        self._serializers.append(serializer)
        return self

    def with_serializers(self, *serializers: ObjectSerializer[Any]) -> TransformRegistry:
        for serializer in serializers:
            self.register_serializer(serializer)
        return self

    def with_transformers(self, *transformers: Transformer[Any, Any]) -> TransformRegistry:
        for transformer in transformers:
            self.register(transformer)
        return self

    def with_transform_packs(self, *packs: TransformPack) -> TransformRegistry:
        """Merge packs into this registry, in order."""
        for pack in packs:
            pack.register(self)
        return self

    def with_default_transformers(self) -> TransformRegistry:
        """Register the built-in scalar and value-type transformers."""
        return self.with_transform_packs(DefaultTransformers())

    def get_transformer(
        self,
        source: TypeDescriptor | None,
        target: TypeDescriptor | None,
    ) -> Transformer[Any, Any] | None:
        """Find the transformer for a (source, target) pair.

        An exact match wins. Otherwise the source class's base classes are
        tried in MRO order, so subclasses of a registered source type reuse
        its transformer. The target is always matched exactly.

        Returns:
            The transformer, or None if the pair is not convertible.

        """
        if source is None or target is None:
            return None
        exact = self._transformers.get((source.raw, target.raw))
        if exact is not None:
            return exact
        if source.raw is bool:
            # bool is an int subclass but must not pick up numeric conversions
            return None
        for base in source.raw.__mro__[1:]:
            if base is object:
                break
            inherited = self._transformers.get((base, target.raw))
            if inherited is not None:
                return inherited
        return None

    def get_serializer(self, cls: type) -> ObjectSerializer[Any] | None:
        """Find the most recently registered serializer supporting ``cls``."""
        for serializer in reversed(self._serializers):
            if serializer.supports(cls):
                return serializer
        return None

    def can_transform(self, source: TypeDescriptor | None, target: TypeDescriptor | None) -> bool:
        return self.get_transformer(source, target) is not None


def _str_to_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_NAMES:
        return True
    if lowered in _FALSE_NAMES:
        return False
    msg = f"Cannot convert {value!r} to bool"
    raise ValueError(msg)


def _str_to_int(value: str) -> int:
    return int(value.strip())


def _str_to_decimal(value: str) -> Decimal:
    try:
        return Decimal(value.strip())
    except InvalidOperation as exc:
        msg = f"Cannot convert {value!r} to Decimal"
        raise ValueError(msg) from exc


def _str_to_bytes(value: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except binascii.Error as exc:
        msg = f"Cannot decode {value!r} as base64"
        raise ValueError(msg) from exc


def _float_to_int(value: float) -> int:
    if not value.is_integer():
        msg = f"Cannot convert {value!r} to int without losing precision"
        raise ValueError(msg)
    return int(value)


def _float_to_decimal(value: float) -> Decimal:
    return Decimal(repr(value))


def _date_to_datetime(value: date) -> datetime:
    # datetime subclasses date and reaches this transformer through the MRO
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time())


def _datetime_to_date(value: datetime) -> date:
    return value.date()


class DefaultTransformers(TransformPack):
    """Built-in conversions between strings, numbers and common value types."""

    def register(self, registry: TransformRegistry) -> None:
        registry.register_two_side(
            TwoSideTransformer(str, int, to_raw=str, to_final=_str_to_int),
        )
        registry.register_two_side(
            TwoSideTransformer(str, float, to_raw=repr, to_final=float),
        )
        registry.register_two_side(
            TwoSideTransformer(
                str,
                bool,
                to_raw=lambda b: "true" if b else "false",
                to_final=_str_to_bool,
            ),
        )
        registry.register_two_side(
            TwoSideTransformer(str, complex, to_raw=str, to_final=complex),
        )
        registry.register_two_side(
            TwoSideTransformer(str, Decimal, to_raw=str, to_final=_str_to_decimal),
        )
        registry.register_two_side(
            TwoSideTransformer(str, UUID, to_raw=str, to_final=UUID),
        )
        registry.register_two_side(
            TwoSideTransformer(str, Path, to_raw=str, to_final=Path),
        )
        registry.register_two_side(
            TwoSideTransformer(
                str,
                datetime,
                to_raw=lambda dt: dt.isoformat(),
                to_final=datetime.fromisoformat,
            ),
        )
        registry.register_two_side(
            TwoSideTransformer(
                str,
                date,
                to_raw=lambda d: d.isoformat(),
                to_final=date.fromisoformat,
            ),
        )
        registry.register_two_side(
            TwoSideTransformer(
                str,
                time,
                to_raw=lambda t: t.isoformat(),
                to_final=time.fromisoformat,
            ),
        )
        registry.register_two_side(
            TwoSideTransformer(
                str,
                bytes,
                to_raw=lambda b: base64.b64encode(b).decode("ascii"),
                to_final=_str_to_bytes,
            ),
        )
        registry.register_two_side(
            TwoSideTransformer(int, float, to_raw=_float_to_int, to_final=float),
        )
        # Scalars YAML already resolves on its own
        registry.register(Transformer(int, Decimal, Decimal))
        registry.register(Transformer(float, Decimal, _float_to_decimal))
        registry.register(Transformer(date, datetime, _date_to_datetime))
        registry.register(Transformer(datetime, date, _datetime_to_date))
