"""Runtime generic type descriptors.

A ``TypeDescriptor`` is the resolver's view of a (possibly parametrized)
type: the raw class plus the descriptors of its type arguments. Descriptors
are built on demand from a live value, from a static annotation, or
explicitly, and are plain frozen values (equal by content, never cached).
"""

from __future__ import annotations

import enum
import types
from collections.abc import (
    Collection,
    Iterable,
    Mapping,
    MutableMapping,
    MutableSequence,
    MutableSet,
    Sequence,
)
from collections.abc import Set as AbstractSet
from dataclasses import dataclass
from enum import Enum
from functools import cached_property
from typing import (
    Annotated,
    Any,
    Literal,
    TypeAliasType,
    TypeVar,
    Union,
    get_args,
    get_origin,
)

# Python has no unboxed values, so every primitive is its own wrapper.
_PRIMITIVES: frozenset[type] = frozenset({bool, int, float, complex})

_SCALARS: frozenset[type] = _PRIMITIVES | {str, bytes, type(None)}

# Abstract containers are materialized as their closest concrete builtin.
_CONCRETE_COLLECTIONS: dict[type, type] = {
    Iterable: list,
    Collection: list,
    Sequence: list,
    MutableSequence: list,
    AbstractSet: set,
    MutableSet: set,
}

_CONCRETE_MAPS: dict[type, type] = {
    Mapping: dict,
    MutableMapping: dict,
}


class TypeKind(Enum):
    """Structural classification used to dispatch conversions."""

    SCALAR = "scalar"
    ENUM = "enum"
    COLLECTION = "collection"
    MAP = "map"
    NESTED_DOCUMENT = "nested_document"
    OBJECT = "object"


@dataclass(frozen=True)
class TypeDescriptor:
    """A raw type with optional type-parameter descriptors.

    Attributes:
        raw: The runtime class. ``object`` means the type is unbound and
            values are resolved from their own runtime class.
        sub_types: Descriptors of the type arguments, in declaration order.
        fixed_arity: True for ``tuple[A, B]`` style tuples where every
            position has its own type.

    """

    raw: type
    sub_types: tuple[TypeDescriptor, ...] = ()
    fixed_arity: bool = False

    @classmethod
    def ready(cls, raw: type, *sub_types: TypeDescriptor | type) -> TypeDescriptor:
        """Build a descriptor with explicit parametrization."""
        return cls(
            raw=raw,
            sub_types=tuple(
                sub if isinstance(sub, TypeDescriptor) else cls.of_type(sub)
                for sub in sub_types
            ),
        )

    @classmethod
    def of(cls, value: Any) -> TypeDescriptor:
        """Build a descriptor from a live value's runtime class.

        Values of user generics instantiated as ``Box[int](...)`` carry their
        parametrization in ``__orig_class__``; everything else yields a bare
        descriptor without sub types.
        """
        orig_class = getattr(value, "__orig_class__", None)
        if orig_class is not None:
            return cls.of_type(orig_class)
        return cls(raw=type(value))

    @classmethod
    def of_type(cls, annotation: Any) -> TypeDescriptor:
        """Build a descriptor from a static type annotation."""
        if annotation is None or annotation is type(None):
            return cls(raw=type(None))
        if annotation is Any:
            return UNBOUND

        if isinstance(annotation, TypeVar):
            bound = annotation.__bound__
            return cls.of_type(bound) if bound is not None else UNBOUND

        # Non-generic PEP 695 aliases expand to their value
        if isinstance(annotation, TypeAliasType):
            return cls.of_type(annotation.__value__)

        origin = get_origin(annotation)
        args = get_args(annotation)

        if origin is Annotated:
            return cls.of_type(args[0])

        if origin is Literal:
            return cls(raw=type(args[0])) if args else UNBOUND

        if isinstance(annotation, types.UnionType) or origin is Union:
            options = [arg for arg in args if arg is not type(None)]
            if len(options) == 1:
                return cls.of_type(options[0])
            return UNBOUND

        if isinstance(origin, TypeAliasType):
            return cls.of_type(origin.__value__)

        if origin is None:
            if isinstance(annotation, type):
                return cls(raw=annotation)
            return UNBOUND

        if not isinstance(origin, type):
            return UNBOUND

        if origin is tuple:
            if len(args) == 2 and args[1] is Ellipsis:
                return cls(raw=tuple, sub_types=(cls.of_type(args[0]),))
            return cls(
                raw=tuple,
                sub_types=tuple(cls.of_type(arg) for arg in args),
                fixed_arity=bool(args),
            )

        return cls(raw=origin, sub_types=tuple(cls.of_type(arg) for arg in args))

    def sub_type_at(self, index: int) -> TypeDescriptor | None:
        """Get the descriptor of type parameter ``index``, if it was supplied."""
        if 0 <= index < len(self.sub_types):
            return self.sub_types[index]
        return None

    @property
    def is_unbound(self) -> bool:
        """True when the descriptor carries no usable type information."""
        return self.raw is object

    @property
    def is_enum(self) -> bool:
        return isinstance(self.raw, type) and issubclass(self.raw, enum.Enum)

    @property
    def is_primitive(self) -> bool:
        return self.raw in _PRIMITIVES

    @property
    def has_wrapper(self) -> bool:
        return self.raw in _PRIMITIVES

    def to_wrapper(self) -> TypeDescriptor | None:
        """Get the boxed equivalent of a primitive descriptor."""
        if not self.has_wrapper:
            return None
        return TypeDescriptor(raw=self.raw)

    @cached_property
    def kind(self) -> TypeKind:
        """Classify the raw type for conversion dispatch."""
        # Deferred: objects depends on the resolver which depends on us
        from docshape.objects import TransformedObject

        raw = self.raw
        if raw is object:
            return TypeKind.OBJECT
        if issubclass(raw, enum.Enum):
            return TypeKind.ENUM
        if issubclass(raw, TransformedObject):
            return TypeKind.NESTED_DOCUMENT
        if raw in _SCALARS or issubclass(raw, str | bytes):
            return TypeKind.SCALAR
        if is_map_type(raw):
            return TypeKind.MAP
        if is_collection_type(raw):
            return TypeKind.COLLECTION
        return TypeKind.OBJECT

    def __str__(self) -> str:
        name = getattr(self.raw, "__name__", repr(self.raw))
        if not self.sub_types:
            return name
        inner = ", ".join(str(sub) for sub in self.sub_types)
        if self.raw is tuple and not self.fixed_arity:
            inner += ", ..."
        return f"{name}[{inner}]"


UNBOUND = TypeDescriptor(raw=object)

STRING = TypeDescriptor(raw=str)

LIST = TypeDescriptor(raw=list)

STRING_KEYED_MAP = TypeDescriptor(raw=dict, sub_types=(STRING, UNBOUND))


def is_map_type(raw: type) -> bool:
    """True for mapping classes (``dict``, ``Mapping`` and friends)."""
    return isinstance(raw, type) and issubclass(raw, Mapping)


def is_collection_type(raw: type) -> bool:
    """True for non-string, non-mapping iterable containers."""
    if not isinstance(raw, type) or issubclass(raw, str | bytes | bytearray):
        return False
    if issubclass(raw, Mapping):
        return False
    return issubclass(raw, Collection) or raw is Iterable


def new_collection(raw: type, items: list[Any]) -> Any:
    """Materialize ``items`` as an instance of the collection type ``raw``."""
    concrete = _CONCRETE_COLLECTIONS.get(raw, raw)
    try:
        return concrete(items)
    except TypeError as exc:
        msg = f"Cannot create collection of type {raw.__name__}"
        raise TypeError(msg) from exc


def new_map(raw: type, pairs: list[tuple[Any, Any]]) -> Mapping[Any, Any]:
    """Materialize ``pairs`` as an instance of the mapping type ``raw``."""
    concrete = _CONCRETE_MAPS.get(raw, raw)
    try:
        return concrete(pairs)
    except TypeError as exc:
        msg = f"Cannot create mapping of type {raw.__name__}"
        raise TypeError(msg) from exc
