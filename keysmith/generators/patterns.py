#!/usr/bin/env python3
"""
Pattern Templates
=================
Compiles a template such as ``LLDDS`` into one charset per position.

Tokens (case-insensitive):
    L  letter            U  uppercase letter    W  lowercase letter
    D  digit             S  symbol              A  letter or digit
    *  any grapheme of the effective set

Every class is carved out of the effective set, so exclusions and forced
graphemes apply to patterns the same way they apply to plain generation.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional, Tuple

from keysmith.errors import (
    EmptyClassError,
    IncompatibleIncludeError,
    UnknownTokenError,
)
from keysmith.generators.charsets import CharacterSet


def _is_letter(g: str) -> bool:
    return g.isascii() and g.isalpha()


def _is_symbol(g: str) -> bool:
    return not (g.isascii() and g.isalnum())


# token -> (class name, predicate)
TOKEN_CLASSES: Dict[str, Tuple[str, Callable[[str], bool]]] = {
    'L': ('letter', _is_letter),
    'U': ('upper', lambda g: _is_letter(g) and g.isupper()),
    'W': ('lower', lambda g: _is_letter(g) and g.islower()),
    'D': ('digit', lambda g: g.isascii() and g.isdigit()),
    'S': ('symbol', _is_symbol),
    'A': ('alphanumeric', lambda g: g.isascii() and g.isalnum()),
    '*': ('any', lambda g: True),
}


@dataclass(frozen=True)
class CompiledPattern:
    """Ordered per-position charsets of a template."""
    template: str
    positions: Tuple[CharacterSet, ...]
    classes: Tuple[str, ...]

    def __len__(self) -> int:
        return len(self.positions)

    def matches(self, value: str) -> bool:
        """True if every grapheme of value belongs to its position's class."""
        if len(value) != len(self.positions):
            return False
        return all(g in charset for g, charset in zip(value, self.positions))


class PatternCompiler:
    """
    Compiles templates against one effective character set.

    Usage:
        compiler = PatternCompiler(effective)
        compiled = compiler.compile("LLDDS")
        compiled.classes  # ('letter', 'letter', 'digit', 'digit', 'symbol')
    """

    def __init__(self, effective: CharacterSet):
        self.effective = effective
        self._class_cache: Dict[str, CharacterSet] = {}

    def class_charset(self, token: str) -> CharacterSet:
        name, predicate = TOKEN_CLASSES[token]
        if name not in self._class_cache:
            charset = self.effective.filter(predicate, set_id=name)
            if not charset:
                raise EmptyClassError(name)
            self._class_cache[name] = charset
        return self._class_cache[name]

    def compile(self, template: str, length: Optional[int] = None,
                forced: Iterable[str] = "") -> CompiledPattern:
        """
        Compile a template.

        Args:
            template: Pattern template
            length: Total length; positions past the template draw from the
                    whole effective set
            forced: Graphemes that must fit at least one position

        Raises:
            UnknownTokenError, EmptyClassError, IncompatibleIncludeError
        """
        if length is not None and length < len(template):
            raise ValueError(f"Length {length} is shorter than pattern '{template}'")

        positions = []
        classes = []
        for i, raw in enumerate(template):
            token = raw.upper()
            if token not in TOKEN_CLASSES:
                raise UnknownTokenError(raw, i)
            positions.append(self.class_charset(token))
            classes.append(TOKEN_CLASSES[token][0])

        if length is not None:
            for _ in range(length - len(template)):
                positions.append(self.class_charset('*'))
                classes.append('any')

        for g in forced:
            if not any(g in charset for charset in positions):
                raise IncompatibleIncludeError(g)

        return CompiledPattern(template=template, positions=tuple(positions), classes=tuple(classes))


__all__ = [
    'TOKEN_CLASSES',
    'CompiledPattern',
    'PatternCompiler',
]
