"""YAML document driver."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import yaml

from docshape.declarations import TransformedObjectDeclaration
from docshape.formats.base import MapDocumentResolver
from docshape.generics import TypeKind
from docshape.postprocessor import PostProcessor, YamlCommentWalker

if TYPE_CHECKING:
    from collections.abc import Mapping


class YamlResolver(MapDocumentResolver):
    """Reads and writes block-style YAML with header and field comments.

    Args:
        comment_prefix: Text starting every written comment line
        indent: Spaces per nesting level

    """

    def __init__(self, comment_prefix: str = "# ", indent: int = 2) -> None:
        super().__init__()
        self.comment_prefix = comment_prefix
        self.indent = indent

    def parse(self, text: str) -> Any:
        return yaml.safe_load(text)

    def dump(self, document: Mapping[str, Any], declaration: TransformedObjectDeclaration) -> str:
        text = ""
        if document:
            text = yaml.safe_dump(
                dict(document),
                sort_keys=False,
                allow_unicode=True,
                default_flow_style=False,
                indent=self.indent,
                width=float("inf"),
            )
        processor = PostProcessor(text).update_context(
            YamlCommentWalker(field_comments(declaration), self.comment_prefix),
        )
        if declaration.header is not None:
            processor.prepend_comment(self.comment_prefix, declaration.header.lines)
        return processor.context


def field_comments(
    declaration: TransformedObjectDeclaration,
    prefix: str = "",
    seen: frozenset[type] = frozenset(),
) -> dict[str, tuple[str, ...]]:
    """Collect comment lines of active fields, nested sections included.

    Returns:
        Comment lines keyed by the field's full dotted path.

    """
    comments: dict[str, tuple[str, ...]] = {}
    seen = seen | {declaration.object_class}
    for field in declaration.non_migrated_fields.values():
        path = prefix + field.path
        if field.comment is not None:
            comments[path] = field.comment.lines
        nested = field.generic.raw
        if field.generic.kind is TypeKind.NESTED_DOCUMENT and nested not in seen:
            comments.update(
                field_comments(TransformedObjectDeclaration.of(nested), f"{path}.", seen),
            )
    return comments
