"""Custom object serializer protocol."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from docshape.data import TransformedData
    from docshape.generics import TypeDescriptor


class ObjectSerializer[T](ABC):
    """Flattens instances of a type into a key/value bag and rebuilds them.

    Implementations are registered on a ``TransformRegistry``; the resolver
    picks the most recently registered serializer whose ``supports`` accepts
    the class being converted.
    """

    @abstractmethod
    def supports(self, cls: type) -> bool:
        """Whether this serializer handles instances of ``cls``."""
        ...

    @abstractmethod
    def serialize(self, value: T, data: TransformedData) -> None:
        """Write the named parts of ``value`` into ``data``."""
        ...

    @abstractmethod
    def deserialize(
        self,
        data: TransformedData,
        generic: TypeDescriptor | None,
    ) -> T | None:
        """Rebuild an instance from ``data`` alone.

        Returns:
            The instance, or None when the bag does not hold enough data.

        """
        ...

    def deserialize_with_default(
        self,
        previous: T,
        data: TransformedData,
        generic: TypeDescriptor | None,
    ) -> T | None:
        """Rebuild an instance, taking missing parts from ``previous``.

        This is the partial-update path used when a document is reloaded
        over an existing value. The default ignores ``previous``.
        """
        return self.deserialize(data, generic)
