"""Naming policy mapping attribute names to document keys."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

_WORD_BOUNDARY = re.compile(r"_+|(?<=[a-z0-9])(?=[A-Z])")


def _words(name: str) -> list[str]:
    return [word for word in _WORD_BOUNDARY.split(name) if word]


class NameStrategy(Enum):
    """How the words of an attribute name are joined into a key."""

    IDENTITY = "identity"
    SNAKE_CASE = "snake_case"
    HYPHEN_CASE = "hyphen-case"
    DOT_CASE = "dot.case"
    LOWER_CAMEL_CASE = "lowerCamelCase"
    UPPER_CAMEL_CASE = "UpperCamelCase"

    def apply(self, name: str) -> str:
        if self is NameStrategy.IDENTITY:
            return name
        words = _words(name)
        if self is NameStrategy.SNAKE_CASE:
            return "_".join(word.lower() for word in words)
        if self is NameStrategy.HYPHEN_CASE:
            return "-".join(word.lower() for word in words)
        if self is NameStrategy.DOT_CASE:
            return ".".join(word.lower() for word in words)
        capitalized = [word[:1].upper() + word[1:].lower() for word in words]
        if self is NameStrategy.UPPER_CAMEL_CASE:
            return "".join(capitalized)
        if not capitalized:
            return ""
        return capitalized[0].lower() + "".join(capitalized[1:])


class NameModifier(Enum):
    """Case applied after the strategy."""

    NONE = "none"
    TO_LOWER = "lower"
    TO_UPPER = "upper"

    def apply(self, name: str) -> str:
        if self is NameModifier.TO_LOWER:
            return name.lower()
        if self is NameModifier.TO_UPPER:
            return name.upper()
        return name


@dataclass(frozen=True)
class Names:
    """Class-level naming policy: a strategy followed by a modifier."""

    strategy: NameStrategy = NameStrategy.IDENTITY
    modifier: NameModifier = NameModifier.NONE

    def apply(self, name: str) -> str:
        return self.modifier.apply(self.strategy.apply(name))


DEFAULT_NAMES = Names()
