#!/usr/bin/env python3
"""
Character Sets
==============
Named, immutable character sets and the registry that resolves
allow/exclude/force-include requests into one effective set.

Usage:
    registry = default_registry()
    effective = registry.resolve(["digit", "lowerletter"], excluded="l1", forced="#")
"""

from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Callable, Iterable, Iterator, List, Tuple

from keysmith.errors import EmptyCharsetError, UnknownSetError


# =============================================================================
# Predefined Sets
# =============================================================================
# Homoglyph sets group characters that are easily confused with each other
# (l/1/I/|, 2/Z, ...). Umbrella sets are kept verbatim; duplicates collapse
# when the set is built.

DEFINE: Tuple[Tuple[str, str], ...] = (
    ("symbol1", "#%&?@"),
    ("symbol2", "!#$%&*+-./:=?@~"),
    ("symbol3", "!\"#$%&'()*+,-./:;<=>?@[\\]^_`{|}~"),
    ("digit", "0123456789"),
    ("lowerletter", "abcdefghijklmnopqrstuvwxyz"),
    ("upperletter", "ABCDEFGHIJKLMNOPQRSTUVWXYZ"),
    ("shell", "!\"$&`'"),
    ("homoglyph1", "71lI|"),
    ("homoglyph2", "2Z"),
    ("homoglyph3", "6G"),
    ("homoglyph4", ":;"),
    ("homoglyph5", "^`'"),
    ("homoglyph6", "!|"),
    ("homoglyph7", "<({[]})>"),
    ("homoglyph8", "~-"),
    ("slashes", "/\\"),
    ("brackets", "[]{}()"),
    ("punctuation", "!\"#$%&'()*+,-./:;<=>?@[\\]^_`{|}~"),
    ("all", "!\"#$%&'()*+,-./0123456789:;<=>?@ABCDEFGHIJKLMNOPQRSTUVWXYZ[\\]^_`abcdefghijklmnopqrstuvwxyz{|}~"),
    ("allprint", "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ!\"#$%&'()*+,-./:;<=>?@[\\]^_`{|}~"),
    ("allprintnoquote", "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ!#$%&()*+,-./:;<=>?@[\\]^_`{|}~"),
    ("allprintnospace", "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ!\"#$%&'()*+,-./:;<=>?@[\\]^_`{|}~"),
    ("allprintnospacequote", "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ!#$%&()*+,-./:;<=>?@[\\]^_`{|}~"),
    ("allprintnospacequotebracket", "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ!#$%&()*+,-./:;<=>?@[\\]^_`{|}~[]{}()"),
    ("allprintnospacequotebracketpunctuation", "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ!#$%&()*+,-./:;<=>?@[\\]^_`{|}~[]{}()!\"#$%&'()*+,-./:;<=>?@[\\]^_`{|}~"),
    ("allprintnospacequotebracketpunctuationslashes", "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ!#$%&()*+,-.:;<=>?@[\\]^_`{|}~[]{}()!\"#$%&'()*+,-./:;<=>?@[\\]^_`{|}~"),
    ("allprintnospacequotebracketpunctuationslashesshell", "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ#$%&()*+,-.:;<=>?@[\\]^_`{|}~[]"),
)

PRINTABLE_SET_ID = "allprint"


def _unique(graphemes: Iterable[str]) -> Tuple[str, ...]:
    seen = set()
    ordered = []
    for g in graphemes:
        if g not in seen:
            seen.add(g)
            ordered.append(g)
    return tuple(ordered)


# =============================================================================
# Character Set
# =============================================================================

@dataclass(frozen=True)
class CharacterSet:
    """Immutable ordered set of unique graphemes."""
    id: str
    graphemes: Tuple[str, ...]

    @classmethod
    def of(cls, set_id: str, graphemes: Iterable[str]) -> "CharacterSet":
        return cls(set_id, _unique(graphemes))

    def __len__(self) -> int:
        return len(self.graphemes)

    def __iter__(self) -> Iterator[str]:
        return iter(self.graphemes)

    def __contains__(self, grapheme) -> bool:
        return grapheme in self.graphemes

    def __bool__(self) -> bool:
        return bool(self.graphemes)

    def union(self, other: "CharacterSet", set_id: str = None) -> "CharacterSet":
        return CharacterSet.of(set_id or f"{self.id}+{other.id}", self.graphemes + other.graphemes)

    def difference(self, graphemes: Iterable[str], set_id: str = None) -> "CharacterSet":
        removed = set(graphemes)
        return CharacterSet(set_id or self.id, tuple(g for g in self.graphemes if g not in removed))

    def with_graphemes(self, graphemes: Iterable[str], set_id: str = None) -> "CharacterSet":
        return CharacterSet.of(set_id or self.id, self.graphemes + tuple(graphemes))

    def filter(self, predicate: Callable[[str], bool], set_id: str = None) -> "CharacterSet":
        return CharacterSet(set_id or self.id, tuple(g for g in self.graphemes if predicate(g)))

    def as_string(self) -> str:
        return ''.join(self.graphemes)


# =============================================================================
# Registry
# =============================================================================

class CharsetRegistry:
    """
    Read-only registry of named character sets.

    Build once and pass it to the generators; nothing mutates it after
    construction.
    """

    def __init__(self, definitions: Iterable[Tuple[str, str]] = DEFINE):
        sets = {}
        for set_id, chars in definitions:
            sets[set_id] = CharacterSet.of(set_id, chars)
        self._sets = MappingProxyType(sets)

    def __contains__(self, set_id: str) -> bool:
        return set_id in self._sets

    def names(self) -> List[str]:
        return list(self._sets.keys())

    def get(self, set_id: str) -> CharacterSet:
        try:
            return self._sets[set_id]
        except KeyError:
            raise UnknownSetError(set_id, self.names()) from None

    @staticmethod
    def parse_ids(value: str) -> List[str]:
        """Split a comma separated id list, ignoring blanks."""
        return [part.strip() for part in value.split(',') if part.strip()]

    def resolve(self, allowed_ids: Iterable[str],
                excluded: Iterable[str] = "",
                forced: Iterable[str] = "") -> CharacterSet:
        """
        Compute the effective set.

        union(allowed) -> minus excluded -> plus forced. Forced graphemes are
        added even when outside the allowed union (and even if excluded).

        Raises:
            UnknownSetError: an id is not registered
            EmptyCharsetError: nothing is left to draw from
        """
        if isinstance(allowed_ids, str):
            allowed_ids = self.parse_ids(allowed_ids)
        ids = list(allowed_ids)

        collected: List[str] = []
        for set_id in ids:
            collected.extend(self.get(set_id).graphemes)

        effective = CharacterSet.of("+".join(ids) or "empty", collected)
        effective = effective.difference(excluded)
        effective = effective.with_graphemes(forced)

        if not effective:
            raise EmptyCharsetError(
                f"No graphemes left from sets [{', '.join(ids)}] after exclusions"
            )
        return effective


@lru_cache(maxsize=1)
def default_registry() -> CharsetRegistry:
    """Shared registry of the predefined sets."""
    return CharsetRegistry()


__all__ = [
    'DEFINE',
    'PRINTABLE_SET_ID',
    'CharacterSet',
    'CharsetRegistry',
    'default_registry',
]
