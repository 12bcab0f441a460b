"""Shared driver for formats that parse into nested maps."""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Mapping
from typing import IO, TYPE_CHECKING, Any

from docshape.errors import TransformError
from docshape.paths import get_path, has_path, remove_path, set_path
from docshape.resolver import TransformResolver

if TYPE_CHECKING:
    from docshape.declarations import FieldDeclaration, TransformedObjectDeclaration
    from docshape.generics import TypeDescriptor


class MapDocumentResolver(TransformResolver):
    """A document held in memory as a nested, insertion-ordered dict.

    Subclasses only translate between text and the dict: ``parse`` turns the
    stream's text into a mapping and ``dump`` renders the mapping back.
    Values are stored in their serialized form. Numbers and booleans are
    kept native; complex numbers and map keys are always written as strings.
    """

    def __init__(self) -> None:
        super().__init__()
        self._document: dict[str, Any] = {}

    @property
    def document(self) -> Mapping[str, Any]:
        return self._document

    @abstractmethod
    def parse(self, text: str) -> Any:
        """Parse document text; an empty document may yield None."""
        ...

    @abstractmethod
    def dump(self, document: Mapping[str, Any], declaration: TransformedObjectDeclaration) -> str:
        """Render the document as text."""
        ...

    def load(self, stream: IO[str], declaration: TransformedObjectDeclaration) -> None:
        parsed = self.parse(stream.read())
        if parsed is None:
            parsed = {}
        if not isinstance(parsed, Mapping):
            msg = (
                f"{type(self).__name__} expected a mapping at the top of the "
                f"document, got {type(parsed).__name__}"
            )
            raise TransformError(msg)
        self._document = dict(parsed)

    def write(self, stream: IO[str], declaration: TransformedObjectDeclaration) -> None:
        stream.write(self.dump(self._document, declaration))

    def serialize(
        self,
        value: Any,
        generic: TypeDescriptor | None,
        conservative: bool = False,
    ) -> Any:
        if isinstance(value, complex):
            conservative = False
        return super().serialize(value, generic, conservative)

    def serialize_map(
        self,
        value: Mapping[Any, Any],
        generic: TypeDescriptor | None,
        conservative: bool = False,
    ) -> dict[Any, Any]:
        key_type = generic.sub_type_at(0) if generic is not None else None
        value_type = generic.sub_type_at(1) if generic is not None else None
        return {
            self.serialize(key, key_type, conservative=False): self.serialize(
                item,
                value_type,
                conservative,
            )
            for key, item in value.items()
        }

    def get_value(self, path: str) -> Any | None:
        return get_path(self._document, path)

    def path_exists(self, path: str) -> bool:
        return has_path(self._document, path)

    def get_all_keys(self) -> list[str]:
        return list(self._document)

    def set_value(
        self,
        path: str,
        value: Any,
        generic: TypeDescriptor | None,
        field: FieldDeclaration | None,
    ) -> None:
        set_path(self._document, path, self.serialize(value, generic, conservative=True))

    def remove_value(
        self,
        path: str,
        generic: TypeDescriptor | None,
        field: FieldDeclaration | None,
    ) -> None:
        remove_path(self._document, path)
