"""JSON document driver."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from docshape.formats.base import MapDocumentResolver

if TYPE_CHECKING:
    from collections.abc import Mapping

    from docshape.declarations import TransformedObjectDeclaration


class JsonResolver(MapDocumentResolver):
    """Reads and writes documents as JSON objects.

    JSON has no comments, so header and field comments are not written.
    """

    def __init__(self, indent: int | None = 2) -> None:
        super().__init__()
        self.indent = indent

    def parse(self, text: str) -> Any:
        if not text.strip():
            return None
        return json.loads(text)

    def dump(self, document: Mapping[str, Any], declaration: TransformedObjectDeclaration) -> str:
        return json.dumps(document, indent=self.indent, ensure_ascii=False) + "\n"
