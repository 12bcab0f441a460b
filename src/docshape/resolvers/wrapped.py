"""Resolvers that forward to another resolver."""

from __future__ import annotations

from typing import IO, TYPE_CHECKING, Any

from docshape.errors import TransformError
from docshape.paths import get_path, has_path, remove_path, set_path
from docshape.resolver import TransformResolver

if TYPE_CHECKING:
    from collections.abc import Collection, Mapping

    from docshape.declarations import FieldDeclaration, TransformedObjectDeclaration
    from docshape.generics import TypeDescriptor
    from docshape.registry import TransformPack, TransformRegistry


class WrappedTransformResolver(TransformResolver):
    """Forwards every operation to a delegate resolver.

    Subclasses override the subset of the driver contract they change; the
    registry, variables and conversion rules stay those of the delegate.
    """

    def __init__(self, delegate: TransformResolver) -> None:
        # Shares the delegate's registry; variables are always read through it
        super().__init__(delegate.registry)
        self._delegate = delegate

    @property
    def delegate(self) -> TransformResolver:
        return self._delegate

    @property
    def registry(self) -> TransformRegistry:
        return self._delegate.registry

    def with_registry(self, registry: TransformRegistry) -> TransformResolver:
        self._delegate.with_registry(registry)
        return self

    def with_transform_packs(self, *packs: TransformPack) -> TransformResolver:
        self._delegate.with_transform_packs(*packs)
        return self

    def with_variables(self, variables: Mapping[str, str]) -> TransformResolver:
        self._delegate.with_variables(variables)
        return self

    def resolve_variable(self, name: str) -> str | None:
        return self._delegate.resolve_variable(name)

    def serialize(
        self,
        value: Any,
        generic: TypeDescriptor | None,
        conservative: bool = False,
    ) -> Any:
        return self._delegate.serialize(value, generic, conservative)

    def serialize_collection(
        self,
        value: Collection[Any],
        generic: TypeDescriptor | None,
        conservative: bool = False,
    ) -> list[Any]:
        return self._delegate.serialize_collection(value, generic, conservative)

    def serialize_map(
        self,
        value: Mapping[Any, Any],
        generic: TypeDescriptor | None,
        conservative: bool = False,
    ) -> dict[Any, Any]:
        return self._delegate.serialize_map(value, generic, conservative)

    def deserialize(
        self,
        value: Any,
        source: TypeDescriptor | None,
        target_cls: Any,
        target: TypeDescriptor | None = None,
        default: Any = None,
    ) -> Any:
        return self._delegate.deserialize(value, source, target_cls, target, default)

    def is_to_string_object(self, value: Any, generic: TypeDescriptor | None) -> bool:
        return self._delegate.is_to_string_object(value, generic)

    def is_to_list_object(self, value: Any, generic: TypeDescriptor | None) -> bool:
        return self._delegate.is_to_list_object(value, generic)

    def is_valid(self, field: FieldDeclaration, value: Any) -> bool:
        return self._delegate.is_valid(field, value)

    def get_value(self, path: str) -> Any | None:
        return self._delegate.get_value(path)

    def path_exists(self, path: str) -> bool:
        return self._delegate.path_exists(path)

    def get_all_keys(self) -> list[str]:
        return self._delegate.get_all_keys()

    def set_value(
        self,
        path: str,
        value: Any,
        generic: TypeDescriptor | None,
        field: FieldDeclaration | None,
    ) -> None:
        self._delegate.set_value(path, value, generic, field)

    def remove_value(
        self,
        path: str,
        generic: TypeDescriptor | None,
        field: FieldDeclaration | None,
    ) -> None:
        self._delegate.remove_value(path, generic, field)

    def load(self, stream: IO[str], declaration: TransformedObjectDeclaration) -> None:
        self._delegate.load(stream, declaration)

    def write(self, stream: IO[str], declaration: TransformedObjectDeclaration) -> None:
        self._delegate.write(stream, declaration)


class InMemoryWrappedResolver(WrappedTransformResolver):
    """Serves a nested document section from an in-memory map.

    Nested objects are resolved against the map of their own section while
    conversion rules, registry and variables come from the delegate.
    """

    def __init__(self, delegate: TransformResolver, mapping: Mapping[str, Any] | None) -> None:
        super().__init__(delegate)
        self._mapping: dict[str, Any] = dict(mapping or {})

    @property
    def mapping(self) -> Mapping[str, Any]:
        return self._mapping

    def get_value(self, path: str) -> Any | None:
        return get_path(self._mapping, path)

    def path_exists(self, path: str) -> bool:
        return has_path(self._mapping, path)

    def get_all_keys(self) -> list[str]:
        return list(self._mapping)

    def set_value(
        self,
        path: str,
        value: Any,
        generic: TypeDescriptor | None,
        field: FieldDeclaration | None,
    ) -> None:
        set_path(self._mapping, path, self.serialize(value, generic, conservative=True))

    def remove_value(
        self,
        path: str,
        generic: TypeDescriptor | None,
        field: FieldDeclaration | None,
    ) -> None:
        remove_path(self._mapping, path)

    def load(self, stream: IO[str], declaration: TransformedObjectDeclaration) -> None:
        msg = "A nested section is loaded through its parent document"
        raise TransformError(msg)

    def write(self, stream: IO[str], declaration: TransformedObjectDeclaration) -> None:
        msg = "A nested section is written through its parent document"
        raise TransformError(msg)
