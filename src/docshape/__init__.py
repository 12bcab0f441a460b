"""docshape - Typed object to document mapping for Python 3.12+."""

from docshape.annotations import (
    Comment,
    CustomKey,
    Exclude,
    Migration,
    Variable,
)
from docshape.data import TransformedData
from docshape.declarations import (
    DeclarationCache,
    FieldDeclaration,
    TransformedObjectDeclaration,
)
from docshape.errors import (
    DeclarationError,
    EnumLookupError,
    GenericShapeError,
    InvalidValueError,
    TransformError,
    UnresolvableConversionError,
    UnserializableValueError,
)
from docshape.formats import (
    JsonResolver,
    MapDocumentResolver,
    YamlResolver,
)
from docshape.generics import (
    TypeDescriptor,
    TypeKind,
)
from docshape.names import (
    NameModifier,
    Names,
    NameStrategy,
)
from docshape.objects import TransformedObject
from docshape.registry import (
    DefaultTransformers,
    TransformPack,
    TransformRegistry,
)
from docshape.resolver import TransformResolver
from docshape.resolvers import (
    InMemoryWrappedResolver,
    WrappedTransformResolver,
)
from docshape.serializer import ObjectSerializer
from docshape.transformers import (
    Transformer,
    TwoSideTransformer,
)

__all__ = [
    # Field markers
    "Comment",
    "CustomKey",
    # Declarations
    "DeclarationCache",
    # Errors
    "DeclarationError",
    "DefaultTransformers",
    "EnumLookupError",
    "Exclude",
    "FieldDeclaration",
    "GenericShapeError",
    "InMemoryWrappedResolver",
    "InvalidValueError",
    # Document drivers
    "JsonResolver",
    "MapDocumentResolver",
    "Migration",
    # Naming
    "NameModifier",
    "NameStrategy",
    "Names",
    # Conversion
    "ObjectSerializer",
    "TransformError",
    "TransformPack",
    "TransformRegistry",
    "TransformResolver",
    "TransformedData",
    "TransformedObject",
    "TransformedObjectDeclaration",
    "Transformer",
    "TwoSideTransformer",
    "TypeDescriptor",
    "TypeKind",
    "UnresolvableConversionError",
    "UnserializableValueError",
    "Variable",
    "WrappedTransformResolver",
    "YamlResolver",
]
