"""Declared document objects.

Subclass ``TransformedObject`` and declare fields as annotated class
attributes; attach a resolver (a document backend) and load or save::

    class ServerConfig(TransformedObject, version=2, header="Server settings"):
        host: Annotated[str, Comment("Bind address")] = "127.0.0.1"
        port: Annotated[int, Variable("SERVER_PORT")] = 8080

    config = ServerConfig().with_resolver(YamlResolver()).with_file("server.yml")
    config.initiate()
"""

from __future__ import annotations

import copy
import io
import logging
from pathlib import Path
from typing import IO, TYPE_CHECKING, Any, ClassVar

from docshape.declarations import (
    DEFAULT_OPTIONS,
    ClassOptions,
    FieldDeclaration,
    FieldState,
    TransformedObjectDeclaration,
)
from docshape.errors import InvalidValueError, TransformError
from docshape.generics import STRING, TypeDescriptor

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from docshape.annotations import Comment
    from docshape.names import Names
    from docshape.registry import TransformPack
    from docshape.resolver import TransformResolver

logger = logging.getLogger(__name__)

_VERSION = TypeDescriptor(raw=int)


class TransformedObject:
    """Base class of objects projected onto a key/value document.

    Class keywords:
        version: Current schema version (default 1)
        header: Comment lines written at the top of the document
        names: Naming policy mapping attribute names to document keys
        version_key: Document key storing the schema version

    Instances start from deep copies of the class-level defaults, so mutable
    defaults are never shared between instances.
    """

    __docshape_options__: ClassVar[ClassOptions] = DEFAULT_OPTIONS

    def __init_subclass__(
        cls,
        *,
        version: int | None = None,
        header: str | Sequence[str] | Comment | None = None,
        names: Names | None = None,
        version_key: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init_subclass__(**kwargs)
        cls.__docshape_options__ = ClassOptions.create(
            cls.__docshape_options__,
            version=version,
            header=header,
            names=names,
            version_key=version_key,
        )

    def __init__(self, **values: Any) -> None:
        self._declaration = TransformedObjectDeclaration.of(type(self))
        self._resolver: TransformResolver | None = None
        self._path: Path | None = None
        self._field_states: dict[str, FieldState] = {}
        for field in self._declaration.fields.values():
            if field.name in values:
                value = values.pop(field.name)
            else:
                value = copy.deepcopy(field.initial_value)
            setattr(self, field.name, value)
            self._field_states[field.name] = FieldState(starting_value=value)
        if values:
            msg = f"{type(self).__name__} has no declared fields {', '.join(sorted(values))}"
            raise TypeError(msg)

    def __repr__(self) -> str:
        body = ", ".join(
            f"{field.name}={getattr(self, field.name)!r}"
            for field in self._declaration.fields.values()
        )
        return f"{type(self).__name__}({body})"

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return all(
            getattr(self, field.name) == getattr(other, field.name)
            for field in self._declaration.fields.values()
        )

    __hash__ = None  # type: ignore[assignment]

    def __deepcopy__(self, memo: dict[int, Any]) -> TransformedObject:
        # Copies share the declaration and are detached from any document
        clone = type(self).__new__(type(self))
        memo[id(self)] = clone
        for key, value in vars(self).items():
            if key == "_declaration":
                setattr(clone, key, value)
            elif key == "_resolver":
                setattr(clone, key, None)
            else:
                setattr(clone, key, copy.deepcopy(value, memo))
        return clone

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    @property
    def declaration(self) -> TransformedObjectDeclaration:
        return self._declaration

    @property
    def resolver(self) -> TransformResolver:
        if self._resolver is None:
            msg = f"No resolver attached to {type(self).__name__}; call with_resolver() first"
            raise TransformError(msg)
        return self._resolver

    @property
    def path(self) -> Path | None:
        return self._path

    def with_declaration(self, declaration: TransformedObjectDeclaration) -> TransformedObject:
        """Use a declaration computed elsewhere (e.g. from a private cache)."""
        self._declaration = declaration
        return self

    def with_resolver(self, resolver: TransformResolver) -> TransformedObject:
        self._resolver = resolver.with_current_object(self)
        return self

    def with_file(self, path: str | Path) -> TransformedObject:
        self._path = Path(path)
        return self

    def with_transform_pack(self, *packs: TransformPack) -> TransformedObject:
        self.resolver.with_transform_packs(*packs)
        return self

    def with_variables(self, variables: Mapping[str, str]) -> TransformedObject:
        """Supply override variables consulted before the environment."""
        self.resolver.with_variables(variables)
        return self

    def field_state(self, name: str) -> FieldState:
        """Get the per-instance load state of field ``name``."""
        state = self._field_states.get(name)
        if state is None:
            state = FieldState(starting_value=getattr(self, name, None))
            self._field_states[name] = state
        return state

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def exists(self, path: str | Path | None = None) -> bool:
        return self._require_path(path).exists()

    def create_file(self, path: str | Path | None = None) -> TransformedObject:
        """Create the file (and its parent directories) if missing."""
        target = self._require_path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.touch(exist_ok=True)
        return self

    def initiate(self, path: str | Path | None = None, update: bool = True) -> TransformedObject:
        """Load the file if it exists, otherwise create it with current values.

        Args:
            path: File to use; defaults to the one given to ``with_file``
            update: Write the loaded document back (adding new fields)

        """
        target = self._require_path(path)
        if target.exists():
            return self.load(target, update)
        self.create_file(target)
        return self.save(target)

    def load(self, path: str | Path | None = None, update: bool = True) -> TransformedObject:
        target = self._require_path(path)
        try:
            with target.open(encoding="utf-8") as stream:
                self.load_from_stream(stream)
        except OSError as exc:
            msg = f"Failed to load {target}"
            raise TransformError(msg) from exc
        if update:
            self.save(target)
        return self

    def save(self, path: str | Path | None = None) -> TransformedObject:
        target = self._require_path(path)
        try:
            self.create_file(target)
            with target.open("w", encoding="utf-8") as stream:
                self.save_to_stream(stream)
        except OSError as exc:
            msg = f"Failed to save {target}"
            raise TransformError(msg) from exc
        return self

    def save_defaults(self, path: str | Path | None = None) -> TransformedObject:
        """Write the current values only if the file does not exist yet."""
        target = self._require_path(path)
        if not target.exists():
            self.save(target)
        return self

    def _require_path(self, path: str | Path | None) -> Path:
        if path is not None:
            return Path(path)
        if self._path is None:
            msg = f"No file given for {type(self).__name__}; call with_file() or pass a path"
            raise TransformError(msg)
        return self._path

    # ------------------------------------------------------------------
    # Streams
    # ------------------------------------------------------------------

    def load_from_string(self, text: str) -> TransformedObject:
        return self.load_from_stream(io.StringIO(text))

    def load_from_stream(self, stream: IO[str]) -> TransformedObject:
        """Parse a document from ``stream`` and update every field from it."""
        resolver = self.resolver
        try:
            resolver.load(stream, self._declaration)
        except TransformError:
            raise
        except Exception as exc:
            msg = f"Failed to load {type(self).__name__} with {type(resolver).__name__}"
            raise TransformError(msg) from exc
        return self.update()

    def save_to_string(self) -> str:
        stream = io.StringIO()
        self.save_to_stream(stream)
        return stream.getvalue()

    def save_to_stream(self, stream: IO[str]) -> TransformedObject:
        """Write the schema version and every active field to ``stream``."""
        resolver = self.resolver
        declaration = self._declaration
        resolver.set_value(declaration.version_key, declaration.version, _VERSION, None)
        for field in declaration.non_migrated_fields.values():
            value = field.get_value(self)
            self._validate(resolver, field, value)
            try:
                resolver.set_value(field.path, value, field.generic, field)
            except TransformError:
                raise
            except Exception as exc:
                msg = f"Failed to set {field.path}"
                raise TransformError(msg) from exc
        try:
            resolver.write(stream, declaration)
        except TransformError:
            raise
        except Exception as exc:
            msg = f"Failed to write {type(self).__name__} with {type(resolver).__name__}"
            raise TransformError(msg) from exc
        return self

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def update(self) -> TransformedObject:
        """Refresh every field from the attached document.

        The stored schema version is read first and superseded paths are
        swept; then each field takes its variable override if one resolves,
        else its document value (converted with the current value as the
        default). Fields absent from the document keep their current value.
        """
        resolver = self.resolver
        declaration = self._declaration
        file_version = self._document_version(resolver, declaration)
        for field in declaration.fields.values():
            field.remove_if_migrated(self, file_version, declaration, resolver)
        for field in declaration.fields.values():
            self._update_field(resolver, field)
        return self

    def _document_version(
        self,
        resolver: TransformResolver,
        declaration: TransformedObjectDeclaration,
    ) -> int:
        raw = resolver.get_value(declaration.version_key)
        if raw is None:
            return 1
        try:
            return resolver.deserialize(raw, TypeDescriptor.of(raw), int)
        except TransformError:
            raise
        except Exception as exc:
            msg = f"Failed to read schema version from {declaration.version_key}"
            raise TransformError(msg) from exc

    def _update_field(self, resolver: TransformResolver, field: FieldDeclaration) -> None:
        state = self.field_state(field.name)
        if state.hidden:
            field.set_value(self, state.starting_value)
            state.hidden = False
        else:
            state.starting_value = getattr(self, field.name)

        if field.variable is not None:
            override = resolver.resolve_variable(field.variable.name)
            if override is not None:
                try:
                    value = resolver.deserialize(override, STRING, field.generic.raw, field.generic)
                except TransformError:
                    raise
                except Exception as exc:
                    msg = f"Failed to deserialize variable {field.variable.name} for {field.path}"
                    raise TransformError(msg) from exc
                self._validate(resolver, field, value)
                logger.info("Overriding %s from variable %s", field.path, field.variable.name)
                field.set_value(self, value)
                state.hidden = True

        if not resolver.path_exists(field.path):
            return

        current = state.starting_value if state.hidden else getattr(self, field.name)
        try:
            value = resolver.get_value_as(field.path, field.generic.raw, field.generic, current)
        except TransformError:
            raise
        except Exception as exc:
            msg = f"Failed to get {field.path}"
            raise TransformError(msg) from exc
        if not state.hidden:
            self._validate(resolver, field, value)
            if value is not None:
                field.set_value(self, value)
        state.starting_value = value

    @staticmethod
    def _validate(resolver: TransformResolver, field: FieldDeclaration, value: Any) -> None:
        if not resolver.is_valid(field, value):
            raise InvalidValueError(resolver, field.path)

    # ------------------------------------------------------------------
    # Document access
    # ------------------------------------------------------------------

    def get(self, path: str, cls: Any = None) -> Any:
        """Get a field (or raw document value) by document path.

        Args:
            path: Document path of a declared field or of any document entry
            cls: Convert the value to this type

        Returns:
            The value, or None if nothing is stored at ``path``.

        """
        resolver = self.resolver
        field = self._declaration.fields.get(path)
        if field is None:
            if cls is None:
                return resolver.get_value(path)
            return resolver.get_value_as(path, cls)
        value = getattr(self, field.name)
        if cls is None or value is None:
            return value
        return resolver.deserialize(value, field.generic, cls)

    def set(self, path: str, value: Any) -> TransformedObject:
        """Set a field (or raw document value) by document path.

        Values for declared fields are converted to the field's type first.
        An explicit set replaces any variable override on the field.
        """
        resolver = self.resolver
        field = self._declaration.fields.get(path)
        if field is None:
            resolver.set_value(path, value, None, None)
            return self
        if value is not None and not field.generic.is_unbound:
            value = resolver.deserialize(
                value,
                TypeDescriptor.of(value),
                field.generic.raw,
                field.generic,
            )
        field.set_value(self, value)
        state = self.field_state(field.name)
        state.hidden = False
        state.starting_value = value
        resolver.set_value(path, value, field.generic, field)
        return self

    def get_all_keys(self) -> list[str]:
        """Document paths of every declared field."""
        return list(self._declaration.fields)

    def as_map(self, resolver: TransformResolver, conservative: bool = False) -> dict[str, Any]:
        """Flatten the object into a path-keyed document map.

        Active fields come first, in declaration order, followed by any
        undeclared entries of the attached document.
        """
        declaration = self._declaration
        result: dict[str, Any] = {
            field.path: resolver.serialize(field.get_value(self), field.generic, conservative)
            for field in declaration.non_migrated_fields.values()
        }
        if self._resolver is None:
            return result
        skipped = set(declaration.fields) | {declaration.version_key}
        skipped |= {path.split(".", 1)[0] for path in declaration.fields}
        for key in self._resolver.get_all_keys():
            if key in result or key in skipped:
                continue
            value = self._resolver.get_value(key)
            result[key] = self._resolver.serialize(value, TypeDescriptor.of(value), conservative)
        return result
