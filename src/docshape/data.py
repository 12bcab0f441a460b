"""Key/value bag exchanged with custom object serializers."""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from docshape.generics import TypeDescriptor

if TYPE_CHECKING:
    from collections.abc import Collection, Mapping

    from docshape.resolver import TransformResolver


class TransformedData:
    """A flat, ordered bag of named values.

    A bag is created in one of two modes. In serialization mode a serializer
    writes parts with the ``add*`` methods; every value is serialized
    conservatively through the active resolver so nested typed values become
    document-friendly while native scalars stay untouched. In
    deserialization mode the bag wraps a document mapping and the ``get*``
    methods convert entries back to typed values.
    """

    def __init__(
        self,
        resolver: TransformResolver,
        *,
        serialization: bool,
        source: Mapping[str, Any] | None = None,
    ) -> None:
        self._resolver = resolver
        self._serialization = serialization
        self._deserialized: dict[str, Any] = dict(source or {})
        self._serialized: dict[str, Any] = {}

    @classmethod
    def serialization(cls, resolver: TransformResolver) -> TransformedData:
        """Create an empty bag for a serializer to fill."""
        return cls(resolver, serialization=True)

    @classmethod
    def deserialization(
        cls,
        resolver: TransformResolver,
        source: Mapping[str, Any],
    ) -> TransformedData:
        """Wrap a document mapping for a serializer to read."""
        return cls(resolver, serialization=False, source=source)

    @property
    def is_serialization(self) -> bool:
        return self._serialization

    @property
    def serialized_map(self) -> Mapping[str, Any]:
        return MappingProxyType(self._serialized)

    @property
    def deserialized_map(self) -> Mapping[str, Any]:
        return MappingProxyType(self._deserialized)

    def add(self, path: str, value: Any, cls: type | None = None) -> None:
        """Add a value, optionally declaring its type."""
        generic = TypeDescriptor.of_type(cls) if cls is not None else None
        self._serialized[path] = self._resolver.serialize(value, generic, conservative=True)

    def add_collection(self, path: str, collection: Collection[Any], element_cls: type) -> None:
        """Add a collection whose elements are of ``element_cls``."""
        generic = TypeDescriptor.ready(type(collection), element_cls)
        self._serialized[path] = self._resolver.serialize_collection(
            collection,
            generic,
            conservative=True,
        )

    def add_as_map(
        self,
        path: str,
        mapping: Mapping[Any, Any],
        key_cls: type,
        value_cls: type,
    ) -> None:
        """Add a mapping with declared key and value types."""
        generic = TypeDescriptor.ready(type(mapping), key_cls, value_cls)
        self._serialized[path] = self._resolver.serialize_map(
            mapping,
            generic,
            conservative=True,
        )

    def add_formatted(self, path: str, template: str, *args: Any) -> None:
        """Add ``template.format(*args)`` as a string."""
        self.add(path, template.format(*args))

    def contains_key(self, key: str) -> bool:
        return not self._serialization and key in self._deserialized

    def get[T](self, key: str, cls: type[T], default: T | None = None) -> T | None:
        """Read ``key`` as ``cls``.

        Args:
            key: The entry name
            cls: Target type of the entry
            default: Returned when the entry is missing, and handed to the
                resolver as the previous value when it is present

        Returns:
            The converted value, ``default`` if the key is absent, or None
            when the bag is in serialization mode.

        """
        if self._serialization:
            return None
        raw = self._deserialized.get(key)
        if raw is None:
            return default
        return self._resolver.deserialize(
            raw,
            TypeDescriptor.of(raw),
            cls,
            None,
            default,
        )

    def get_as_list[T](self, key: str, element_cls: type[T]) -> list[T] | None:
        """Read ``key`` as a list of ``element_cls``."""
        if self._serialization:
            return None
        raw = self._deserialized.get(key)
        if raw is None:
            return None
        return self._resolver.deserialize(
            raw,
            TypeDescriptor.of(raw),
            list,
            TypeDescriptor.ready(list, element_cls),
        )

    def get_as_map[K, V](
        self,
        key: str,
        key_cls: type[K],
        value_cls: type[V],
    ) -> dict[K, V] | None:
        """Read ``key`` as a dict of ``key_cls`` to ``value_cls``."""
        if self._serialization:
            return None
        raw = self._deserialized.get(key)
        if raw is None:
            return None
        return self._resolver.deserialize(
            raw,
            TypeDescriptor.of(raw),
            dict,
            TypeDescriptor.ready(dict, key_cls, value_cls),
        )
