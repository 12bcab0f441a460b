"""Line-oriented post-processing of rendered documents.

Serializers for indentation-based formats know nothing about comments.
``PostProcessor`` walks the rendered text line by line, tracks the key path
of every line through a ``SectionWalker`` and lets the walker rewrite it,
which is how field comments are placed above their keys.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

_BLOCK_SCALAR_MARKERS = (">", ">-", "|", "|-")


@dataclass(frozen=True)
class LineInfo:
    """A key line seen while walking a document.

    Attributes:
        name: The key
        indent: Leading spaces before the key
        change: Indent difference to the previous key line

    """

    name: str
    indent: int
    change: int


class SectionWalker(ABC):
    """Recognizes key lines of a format and rewrites them."""

    @abstractmethod
    def is_path(self, line: str) -> bool:
        """Whether ``line`` starts a key."""
        ...

    @abstractmethod
    def is_path_multiline_start(self, line: str) -> bool:
        """Whether ``line`` opens a value spanning the following lines."""
        ...

    @abstractmethod
    def read_name(self, line: str) -> str:
        ...

    @abstractmethod
    def update(self, line: str, info: LineInfo, path: Sequence[LineInfo]) -> str:
        """Rewrite a key line; ``path`` ends with ``info``."""
        ...


class YamlSectionWalker(SectionWalker):
    """Key recognition for block-style YAML."""

    def is_path(self, line: str) -> bool:
        if ":" not in line:
            return False
        name = self.read_name(line)
        return bool(name) and name[0] not in "-#"

    def is_path_multiline_start(self, line: str) -> bool:
        return line.rstrip().endswith(_BLOCK_SCALAR_MARKERS)

    def read_name(self, line: str) -> str:
        name = line.split(":", 1)[0].strip()
        if len(name) > 1 and name[0] == name[-1] and name[0] in "'\"":
            return name[1:-1]
        return name


class YamlCommentWalker(YamlSectionWalker):
    """Places comment lines above the keys they belong to.

    Args:
        comments: Comment lines keyed by dotted key path
        prefix: Text starting every comment line

    """

    def __init__(self, comments: Mapping[str, Sequence[str]], prefix: str = "# ") -> None:
        self._comments = comments
        self._prefix = prefix

    def update(self, line: str, info: LineInfo, path: Sequence[LineInfo]) -> str:
        lines = self._comments.get(".".join(part.name for part in path))
        if not lines:
            return line
        indent = " " * info.indent
        rendered = [indent + format_comment(self._prefix, text) for text in lines]
        return "\n".join([*rendered, line])


def format_comment(prefix: str, text: str) -> str:
    """Render one comment line; blank text yields a bare marker."""
    if not text:
        return prefix.rstrip()
    return prefix + text


class PostProcessor:
    """Mutable text buffer with comment-oriented rewrites."""

    def __init__(self, context: str) -> None:
        self._context = context

    @property
    def context(self) -> str:
        return self._context

    def prepend_comment(self, prefix: str, lines: Sequence[str]) -> PostProcessor:
        """Put a comment block and a blank line before the text."""
        if lines:
            header = "\n".join(format_comment(prefix, text) for text in lines)
            self._context = f"{header}\n\n{self._context}"
        return self

    def update_context(self, walker: SectionWalker) -> PostProcessor:
        """Run ``walker.update`` on every key line, tracking the key path."""
        path: list[LineInfo] = []
        block_indent: int | None = None
        last_indent = 0
        result: list[str] = []
        for line in self._context.split("\n"):
            stripped = line.strip()
            indent = len(line) - len(line.lstrip(" "))
            if block_indent is not None:
                if not stripped or indent > block_indent:
                    result.append(line)
                    continue
                block_indent = None
            if not stripped or not walker.is_path(line):
                result.append(line)
                continue
            while path and path[-1].indent >= indent:
                path.pop()
            info = LineInfo(walker.read_name(line), indent, indent - last_indent)
            last_indent = indent
            path.append(info)
            if walker.is_path_multiline_start(line):
                block_indent = indent
            result.append(walker.update(line, info, path))
        self._context = "\n".join(result)
        return self
