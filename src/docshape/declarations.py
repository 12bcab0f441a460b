"""Field and object declarations.

A declaration is the once-computed metadata of a declared document type:
the document path of every field, its type descriptor, comments, migration
tag and variable override. Declarations describe classes, never instances;
per-instance load state lives in ``FieldState`` records on the object.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Annotated, Any, ClassVar, get_args, get_origin, get_type_hints

from docshape.annotations import Comment, CustomKey, Exclude, Migration, Variable
from docshape.errors import DeclarationError
from docshape.generics import TypeDescriptor
from docshape.names import DEFAULT_NAMES, Names

if TYPE_CHECKING:
    from collections.abc import Hashable, Mapping

    from docshape.objects import TransformedObject
    from docshape.resolver import TransformResolver

logger = logging.getLogger(__name__)

DEFAULT_VERSION_KEY = "version"


@dataclass(frozen=True)
class ClassOptions:
    """Class-level declaration settings given as subclass keywords."""

    version: int = 1
    header: Comment | None = None
    names: Names = DEFAULT_NAMES
    version_key: str = DEFAULT_VERSION_KEY

    @classmethod
    def create(
        cls,
        parent: ClassOptions,
        *,
        version: int | None = None,
        header: str | Sequence[str] | Comment | None = None,
        names: Names | None = None,
        version_key: str | None = None,
    ) -> ClassOptions:
        """Derive options from a parent's, overriding what was given."""
        if isinstance(header, str):
            header = Comment(header)
        elif header is not None and not isinstance(header, Comment):
            header = Comment(*header)
        if version is not None and version < 1:
            msg = f"Schema version must be at least 1, got {version}"
            raise DeclarationError(msg)
        return cls(
            version=parent.version if version is None else version,
            header=parent.header if header is None else header,
            names=parent.names if names is None else names,
            version_key=parent.version_key if version_key is None else version_key,
        )


DEFAULT_OPTIONS = ClassOptions()


@dataclass
class FieldState:
    """Per-instance load state of one field."""

    starting_value: Any = None
    hidden: bool = False


class DeclarationCache:
    """Compute-once store for object and field declarations.

    Concurrent misses for the same key converge on a single computed value:
    the factory runs under a re-entrant lock, and the result is published
    before the lock is released.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._entries: dict[Hashable, Any] = {}

    def get_or_create[T](self, key: Hashable, factory: Callable[[], T]) -> T:
        cached = self._entries.get(key)
        if cached is not None:
            return cached
        with self._lock:
            cached = self._entries.get(key)
            if cached is None:
                cached = factory()
                self._entries[key] = cached
            return cached

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


DEFAULT_CACHE = DeclarationCache()


@dataclass(frozen=True)
class FieldDeclaration:
    """One persisted field of a declared object type.

    Attributes:
        name: Attribute name on the object
        path: Document key (dotted paths address nested maps)
        generic: Declared type of the field
        comment: Comment written above the field
        migration: Version at which the field's path is retired
        variable: Environment variable overriding the field
        initial_value: Class-level default at declaration time

    """

    name: str
    path: str
    generic: TypeDescriptor
    comment: Comment | None = None
    migration: Migration | None = None
    variable: Variable | None = None
    initial_value: Any = None

    @classmethod
    def of(
        cls,
        owner: type,
        name: str,
        annotation: Any,
        *,
        names: Names = DEFAULT_NAMES,
        cache: DeclarationCache | None = None,
    ) -> FieldDeclaration:
        """Get the cached declaration of ``owner.name``, building it once."""
        store = cache if cache is not None else DEFAULT_CACHE
        return store.get_or_create(
            ("field", owner, name),
            lambda: cls._build(owner, name, annotation, names),
        )

    @classmethod
    def _build(cls, owner: type, name: str, annotation: Any, names: Names) -> FieldDeclaration:
        markers = get_args(annotation)[1:] if get_origin(annotation) is Annotated else ()
        comment = _marker(markers, Comment, owner, name)
        migration = _marker(markers, Migration, owner, name)
        variable = _marker(markers, Variable, owner, name)
        custom_key = _marker(markers, CustomKey, owner, name)
        return cls(
            name=name,
            path=custom_key.key if custom_key is not None else names.apply(name),
            generic=TypeDescriptor.of_type(annotation),
            comment=comment,
            migration=migration,
            variable=variable,
            initial_value=getattr(owner, name, None),
        )

    def get_value(self, obj: TransformedObject) -> Any:
        """Get the value to persist; the starting value if an override hides it."""
        state = obj.field_state(self.name)
        if state.hidden:
            return state.starting_value
        return getattr(obj, self.name)

    def set_value(self, obj: TransformedObject, value: Any) -> None:
        setattr(obj, self.name, value)

    def is_migrated(self, version: int | TransformedObjectDeclaration) -> bool:
        """True iff the field is tagged and ``version`` has reached the tag."""
        if isinstance(version, TransformedObjectDeclaration):
            version = version.version
        return self.migration is not None and version >= self.migration.version

    def remove_if_migrated(
        self,
        obj: TransformedObject,
        file_version: int,
        declaration: TransformedObjectDeclaration,
        resolver: TransformResolver,
    ) -> bool:
        """Retire the field's document path if its migration falls due.

        The path is removed when the migration version lies in
        ``(file_version, declaration.version]`` and the path is still present,
        so a document is swept once, on the load that first crosses the
        migration version.

        Returns:
            True if the field was cleared and its path removed.

        """
        if self.migration is None:
            return False
        if not file_version < self.migration.version <= declaration.version:
            return False
        if not resolver.path_exists(self.path):
            return False
        logger.info(
            "Removing %s migrated at version %d (document version %d, schema version %d)",
            self.path,
            self.migration.version,
            file_version,
            declaration.version,
        )
        self.set_value(obj, None)
        resolver.remove_value(self.path, self.generic, self)
        return True


@dataclass(frozen=True)
class TransformedObjectDeclaration:
    """Metadata of a declared document type.

    Attributes:
        object_class: The declared class
        fields: Field declarations keyed by document path, in declaration order
        header: Comment written at the top of the document
        version: Current schema version (1 unless declared)
        version_key: Document key holding the stored schema version

    """

    object_class: type
    fields: Mapping[str, FieldDeclaration]
    header: Comment | None = None
    version: int = 1
    version_key: str = DEFAULT_VERSION_KEY

    @classmethod
    def of(
        cls,
        target: type | TransformedObject,
        cache: DeclarationCache | None = None,
    ) -> TransformedObjectDeclaration:
        """Get the cached declaration of a class (or an instance's class)."""
        owner = target if isinstance(target, type) else type(target)
        store = cache if cache is not None else DEFAULT_CACHE
        return store.get_or_create(("object", owner), lambda: cls._build(owner, store))

    @classmethod
    def _build(cls, owner: type, cache: DeclarationCache) -> TransformedObjectDeclaration:
        options: ClassOptions = getattr(owner, "__docshape_options__", DEFAULT_OPTIONS)
        fields: dict[str, FieldDeclaration] = {}
        for name, annotation in get_type_hints(owner, include_extras=True).items():
            if name.startswith("_") or _is_class_var(annotation):
                continue
            if get_origin(annotation) is Annotated and any(
                isinstance(marker, Exclude) for marker in get_args(annotation)[1:]
            ):
                continue
            field = FieldDeclaration.of(owner, name, annotation, names=options.names, cache=cache)
            existing = fields.get(field.path)
            if existing is None:
                fields[field.path] = field
                continue
            if existing.migration is not None:
                logger.warning(
                    "%s.%s shares path %r with migrated field %s; keeping %s",
                    owner.__name__,
                    name,
                    field.path,
                    existing.name,
                    existing.name,
                )
                continue
            msg = (
                f"Duplicate path {field.path!r} in {owner.__name__}: "
                f"{existing.name} and {name}"
            )
            raise DeclarationError(msg)
        if options.version_key in fields:
            msg = (
                f"Field path {options.version_key!r} in {owner.__name__} "
                "collides with the schema version key"
            )
            raise DeclarationError(msg)
        return cls(
            object_class=owner,
            fields=MappingProxyType(fields),
            header=options.header,
            version=options.version,
            version_key=options.version_key,
        )

    @property
    def migrated_fields(self) -> Mapping[str, FieldDeclaration]:
        """Fields whose path the current schema version has retired."""
        return MappingProxyType(
            {path: f for path, f in self.fields.items() if f.is_migrated(self.version)},
        )

    @property
    def non_migrated_fields(self) -> Mapping[str, FieldDeclaration]:
        """Fields active in the current schema version."""
        return MappingProxyType(
            {path: f for path, f in self.fields.items() if not f.is_migrated(self.version)},
        )

    def field_by_name(self, name: str) -> FieldDeclaration | None:
        for field in self.fields.values():
            if field.name == name:
                return field
        return None


def _is_class_var(annotation: Any) -> bool:
    if get_origin(annotation) is Annotated:
        annotation = get_args(annotation)[0]
    return annotation is ClassVar or get_origin(annotation) is ClassVar


def _marker[M](markers: tuple[Any, ...], kind: type[M], owner: type, name: str) -> M | None:
    found = [marker for marker in markers if isinstance(marker, kind)]
    if len(found) > 1:
        msg = f"{owner.__name__}.{name} declares {kind.__name__} more than once"
        raise DeclarationError(msg)
    return found[0] if found else None
