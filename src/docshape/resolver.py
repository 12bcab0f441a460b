"""Resolution engine and document driver contract.

``TransformResolver`` converts between typed in-memory values and generic
document values (strings, numbers, booleans, lists and string-keyed maps),
and declares the abstract operations a document backend has to provide.
Concrete backends live in ``docshape.formats``.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import IO, TYPE_CHECKING, Any

from docshape.data import TransformedData
from docshape.errors import (
    EnumLookupError,
    GenericShapeError,
    UnresolvableConversionError,
    UnserializableValueError,
)
from docshape.generics import (
    LIST,
    STRING,
    STRING_KEYED_MAP,
    TypeDescriptor,
    TypeKind,
    is_collection_type,
    is_map_type,
    new_collection,
    new_map,
)
from docshape.objects import TransformedObject
from docshape.registry import TransformPack, TransformRegistry

if TYPE_CHECKING:
    from collections.abc import Collection

    from docshape.declarations import FieldDeclaration, TransformedObjectDeclaration

logger = logging.getLogger(__name__)


def _is_document_collection(value: Any) -> bool:
    return is_collection_type(type(value))


class TransformResolver(ABC):
    """Converts values between their typed and document representations.

    Subclasses bind the engine to a document backend by implementing
    ``get_value``, ``set_value``, ``remove_value``, ``load`` and ``write``.
    Backends may override ``serialize`` or ``serialize_map`` to special-case
    format quirks but must delegate everything else to this class.
    """

    def __init__(self, registry: TransformRegistry | None = None) -> None:
        if registry is None:
            registry = TransformRegistry().with_default_transformers()
        self._registry = registry
        self._variables: dict[str, str] = {}
        self.current_object: TransformedObject | None = None
        self.parent_object: TransformedObject | None = None

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def registry(self) -> TransformRegistry:
        return self._registry

    def with_registry(self, registry: TransformRegistry) -> TransformResolver:
        self._registry = registry
        return self

    def with_transform_packs(self, *packs: TransformPack) -> TransformResolver:
        self.registry.with_transform_packs(*packs)
        return self

    def with_current_object(self, obj: TransformedObject | None) -> TransformResolver:
        self.current_object = obj
        return self

    def with_parent_object(self, obj: TransformedObject | None) -> TransformResolver:
        self.parent_object = obj
        return self

    def with_variables(self, variables: Mapping[str, str]) -> TransformResolver:
        """Set variables consulted before the process environment."""
        self._variables = dict(variables)
        return self

    def resolve_variable(self, name: str) -> str | None:
        """Look up an override variable, falling back to ``os.environ``."""
        if name in self._variables:
            return self._variables[name]
        return os.environ.get(name)

    # ------------------------------------------------------------------
    # Serialization: typed value -> document value
    # ------------------------------------------------------------------

    def serialize(
        self,
        value: Any,
        generic: TypeDescriptor | None,
        conservative: bool = False,
    ) -> Any:
        """Convert a typed value into a generic document value.

        Args:
            value: The value to convert
            generic: Declared type of the value; None or an unbound
                descriptor means "use the value's runtime class"
            conservative: Leave values the backend can represent natively
                (numbers, booleans, custom serializer output) untouched

        Returns:
            A string, number, boolean, list or dict (or None).

        Raises:
            UnserializableValueError: If no rule can convert the value

        """
        if value is None:
            return None

        if isinstance(value, TransformedObject):
            return value.as_map(self, conservative)

        if generic is not None and generic.is_unbound:
            generic = None
        serializer_type = generic.raw if generic is not None else type(value)

        serializer = self.registry.get_serializer(serializer_type)
        if serializer is not None:
            data = TransformedData.serialization(self)
            serializer.serialize(value, data)
            if conservative:
                return dict(data.serialized_map)
            return {
                key: self.serialize(item, TypeDescriptor.of(item), conservative=False)
                for key, item in data.serialized_map.items()
            }

        declared = TypeDescriptor(raw=serializer_type)
        if conservative and (declared.is_primitive or declared.has_wrapper):
            return value

        source = generic if generic is not None else TypeDescriptor.of(value)
        if self.is_to_string_object(value, source):
            return self.deserialize(value, source, str)
        if isinstance(value, str):
            return value
        if self.is_to_list_object(value, source):
            return self.deserialize(value, source, list, LIST)
        if isinstance(value, Mapping):
            return self.serialize_map(value, generic, conservative)
        if _is_document_collection(value):
            return self.serialize_collection(value, generic, conservative)

        raise UnserializableValueError(value, generic)

    def serialize_collection(
        self,
        value: Collection[Any],
        generic: TypeDescriptor | None,
        conservative: bool = False,
    ) -> list[Any]:
        """Serialize every element with the collection's element type."""
        if generic is not None and generic.fixed_arity:
            return [
                self.serialize(item, generic.sub_type_at(index), conservative)
                for index, item in enumerate(value)
            ]
        element = generic.sub_type_at(0) if generic is not None else None
        return [self.serialize(item, element, conservative) for item in value]

    def serialize_map(
        self,
        value: Mapping[Any, Any],
        generic: TypeDescriptor | None,
        conservative: bool = False,
    ) -> dict[Any, Any]:
        """Serialize keys and values independently with their declared types."""
        key_type = generic.sub_type_at(0) if generic is not None else None
        value_type = generic.sub_type_at(1) if generic is not None else None
        return {
            self.serialize(key, key_type, conservative): self.serialize(
                item,
                value_type,
                conservative,
            )
            for key, item in value.items()
        }

    def is_to_string_object(self, value: Any, generic: TypeDescriptor | None) -> bool:
        """Whether a value (or class) converts to a document string."""
        cls = value if isinstance(value, type) else type(value)
        if TypeDescriptor(raw=cls).is_enum:
            return True
        source = generic if generic is not None else TypeDescriptor(raw=cls)
        return self.registry.can_transform(source, STRING)

    def is_to_list_object(self, value: Any, generic: TypeDescriptor | None) -> bool:
        """Whether a value (or class) has a registered transformer to ``list``."""
        cls = value if isinstance(value, type) else type(value)
        source = generic if generic is not None else TypeDescriptor(raw=cls)
        return self.registry.can_transform(source, LIST)

    # ------------------------------------------------------------------
    # Deserialization: document value -> typed value
    # ------------------------------------------------------------------

    def deserialize(
        self,
        value: Any,
        source: TypeDescriptor | None,
        target_cls: Any,
        target: TypeDescriptor | None = None,
        default: Any = None,
    ) -> Any:
        """Convert a document value into an instance of ``target_cls``.

        Args:
            value: The document (or typed) value to convert
            source: Type of ``value``; inferred from the value when None
            target_cls: Target class, or a parametrized annotation such as
                ``list[int]``
            target: Target descriptor carrying type parameters
            default: The previous value, used by transformers and custom
                serializers to fill state missing from ``value``

        Returns:
            The converted value, or None when ``value`` is None or a
            transformer/serializer declined.

        Raises:
            EnumLookupError: If a string names no member of the target enum
            GenericShapeError: If required type parameters are missing
            UnresolvableConversionError: If no rule converts the value

        """
        if not isinstance(target_cls, type):
            if target is None:
                target = TypeDescriptor.of_type(target_cls)
            target_cls = target.raw
        return self._deserialize(value, source, target_cls, target, default, normalized=False)

    def _deserialize(
        self,
        value: Any,
        source: TypeDescriptor | None,
        target_cls: type,
        target: TypeDescriptor | None,
        default: Any,
        *,
        normalized: bool,
    ) -> Any:
        if value is None:
            return None

        if source is None:
            source = TypeDescriptor.of(value)
        if target is None:
            target = TypeDescriptor(raw=target_cls)
        if target.is_primitive:
            target = target.to_wrapper() or target

        if target.is_enum:
            if isinstance(value, target_cls):
                return value
            if isinstance(value, str):
                return self._resolve_enum(value, target_cls)
        if source.is_enum and target_cls is str:
            return value.name

        kind = target.kind
        if kind is TypeKind.NESTED_DOCUMENT:
            if isinstance(value, target_cls):
                return value
            return self._deserialize_nested(value, source, target_cls, default)

        serializer = None if target.is_unbound else self.registry.get_serializer(target_cls)
        if serializer is not None and isinstance(value, Mapping):
            data = TransformedData.deserialization(self, value)
            if default is None:
                return serializer.deserialize(data, target)
            return serializer.deserialize_with_default(default, data, target)

        if kind is TypeKind.COLLECTION and _is_document_collection(value):
            return self._deserialize_collection(value, target_cls, target)

        if kind is TypeKind.MAP and isinstance(value, Mapping):
            return self._deserialize_map(value, target_cls, target)

        transformer = self.registry.get_transformer(source, target)
        if transformer is None:
            if target.is_primitive and type(value) is target_cls:
                return value
            if (target.is_primitive or target.has_wrapper) and not normalized:
                simplified = self.serialize(value, TypeDescriptor(raw=type(value)), conservative=False)
                logger.debug(
                    "Normalizing %s through %r to reach %s",
                    type(value).__name__,
                    simplified,
                    target_cls.__name__,
                )
                return self._deserialize(
                    simplified,
                    TypeDescriptor.of(simplified),
                    target_cls,
                    TypeDescriptor(raw=target_cls),
                    default,
                    normalized=True,
                )
            if isinstance(value, target_cls):
                return value
            raise UnresolvableConversionError(value, source, target)

        if default is None:
            return transformer.transform(value)
        transformed = transformer.transform_with_field(value, default)
        if transformed is None:
            transformed = transformer.transform(value)
        return transformed

    def _resolve_enum(self, name: str, enum_cls: Any) -> Any:
        try:
            return enum_cls[name]
        except KeyError:
            pass
        lowered = name.casefold()
        for member in enum_cls:
            if member.name.casefold() == lowered:
                logger.debug("Matched %r to %s case-insensitively", name, member)
                return member
        raise EnumLookupError(name, enum_cls, (member.name for member in enum_cls))

    def _deserialize_nested(
        self,
        value: Any,
        source: TypeDescriptor,
        target_cls: type[TransformedObject],
        default: Any,
    ) -> TransformedObject:
        # Deferred: the wrapped resolvers subclass this module's resolver
        from docshape.resolvers.wrapped import InMemoryWrappedResolver

        mapping = self._deserialize(
            value,
            source,
            dict,
            STRING_KEYED_MAP,
            None,
            normalized=False,
        )
        nested = target_cls()
        resolver = InMemoryWrappedResolver(self, mapping).with_parent_object(self.current_object)
        return nested.with_resolver(resolver).update()

    def _deserialize_collection(
        self,
        value: Collection[Any],
        target_cls: type,
        target: TypeDescriptor,
    ) -> Any:
        items = list(value)
        if target.fixed_arity:
            if len(items) != len(target.sub_types):
                msg = (
                    f"Cannot resolve {len(items)} elements to {target}: "
                    f"expected exactly {len(target.sub_types)}"
                )
                raise GenericShapeError(msg)
            elements = list(target.sub_types)
        else:
            element = target.sub_type_at(0)
            if element is None:
                # Unparametrized: keep the document's own element types
                return new_collection(target_cls, items)
            elements = [element] * len(items)
        return new_collection(
            target_cls,
            [
                self._deserialize(
                    item,
                    TypeDescriptor.of(item),
                    element.raw,
                    element,
                    None,
                    normalized=False,
                )
                for item, element in zip(items, elements, strict=True)
            ],
        )

    def _deserialize_map(
        self,
        value: Mapping[Any, Any],
        target_cls: type,
        target: TypeDescriptor,
    ) -> Any:
        if not target.sub_types:
            return new_map(target_cls, list(value.items()))
        key_type = target.sub_type_at(0)
        value_type = target.sub_type_at(1)
        if key_type is None or value_type is None:
            msg = f"Mapping type {target} must declare both key and value types"
            raise GenericShapeError(msg)
        pairs = [
            (
                self._deserialize(key, TypeDescriptor.of(key), key_type.raw, key_type, None, normalized=False),
                self._deserialize(
                    item,
                    TypeDescriptor.of(item),
                    value_type.raw,
                    value_type,
                    None,
                    normalized=False,
                ),
            )
            for key, item in value.items()
        ]
        return new_map(target_cls, pairs)

    # ------------------------------------------------------------------
    # Document driver contract
    # ------------------------------------------------------------------

    @abstractmethod
    def get_value(self, path: str) -> Any | None:
        """Get the raw document value at ``path``, or None if absent."""
        ...

    def get_value_as(
        self,
        path: str,
        target_cls: Any,
        generic: TypeDescriptor | None = None,
        default: Any = None,
    ) -> Any | None:
        """Get the value at ``path`` converted to ``target_cls``."""
        value = self.get_value(path)
        if value is None:
            return None
        return self.deserialize(value, TypeDescriptor.of(value), target_cls, generic, default)

    def path_exists(self, path: str) -> bool:
        return self.get_value(path) is not None

    def get_all_keys(self) -> list[str]:
        """Top-level document keys, in document order."""
        if self.current_object is None:
            return []
        return self.current_object.get_all_keys()

    def is_valid(self, field: FieldDeclaration, value: Any) -> bool:
        """Validation hook; returning False without raising is a driver bug."""
        return True

    @abstractmethod
    def set_value(
        self,
        path: str,
        value: Any,
        generic: TypeDescriptor | None,
        field: FieldDeclaration | None,
    ) -> None:
        """Store a typed value at ``path``."""
        ...

    @abstractmethod
    def remove_value(
        self,
        path: str,
        generic: TypeDescriptor | None,
        field: FieldDeclaration | None,
    ) -> None:
        """Delete ``path`` from the document."""
        ...

    @abstractmethod
    def load(self, stream: IO[str], declaration: TransformedObjectDeclaration) -> None:
        """Parse the backend's text from ``stream``."""
        ...

    @abstractmethod
    def write(self, stream: IO[str], declaration: TransformedObjectDeclaration) -> None:
        """Write the document, with comments derived from ``declaration``."""
        ...
