#!/usr/bin/env python3
"""
Data Model
==========
Requests, generated secrets and reports passed between the generation
components.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from keysmith.settings import require_setting

RANDOM_SEPARATOR = "random"


class Mode(Enum):
    """Generation strategy."""
    CHARACTER = "character"
    PATTERN = "pattern"
    DICEWARE = "diceware"
    PRONOUNCEABLE = "pronounceable"

    @classmethod
    def parse(cls, value) -> "Mode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            available = ', '.join(m.value for m in cls)
            raise ValueError(f"Unknown mode '{value}'. Available modes: {available}") from None


class StrengthCategory(Enum):
    WEAK = "weak"
    MODERATE = "moderate"
    STRONG = "strong"
    VERY_STRONG = "very-strong"


class MutationKind(Enum):
    """Edit operation applied by the mutation engine."""
    REPLACE = "replace"
    SWAP = "swap"
    INSERT = "insert"
    LENGTHEN = "lengthen"
    REMOVE = "remove"
    MIXED = "mixed"

    @classmethod
    def parse(cls, value) -> "MutationKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            available = ', '.join(k.value for k in cls)
            raise ValueError(f"Invalid mutation type: {value}. Available: {available}") from None


@dataclass
class GenerationRequest:
    """
    Fully resolved generation request.

    ``length`` counts graphemes, or words in diceware mode. Left unset it
    becomes the template length in pattern mode, ``generation.default_word_count``
    in diceware mode and ``generation.default_length`` otherwise. ``separator`` is a
    single grapheme or ``RANDOM_SEPARATOR`` for a fresh symbol per gap.
    ``seed`` makes output reproducible and must never be used for real secrets.
    """
    mode: Mode = Mode.CHARACTER
    length: Optional[int] = None
    count: int = 1
    allowed: Tuple[str, ...] = ("allprint",)
    excluded: str = ""
    included: str = ""
    avoid_repeat: bool = False
    separator: str = " "
    separator_set: str = "symbol2"
    pattern: Optional[str] = None
    seed: Optional[int] = None
    strict_alternation: Optional[bool] = None

    def __post_init__(self):
        self.mode = Mode.parse(self.mode)
        if isinstance(self.allowed, str):
            self.allowed = tuple(s.strip() for s in self.allowed.split(',') if s.strip())
        else:
            self.allowed = tuple(self.allowed)
        self.resolve_length()

    def resolve_length(self):
        """Fill in the per-mode default length when none was given."""
        if self.length is not None or self.mode is Mode.PATTERN:
            return
        if self.mode is Mode.DICEWARE:
            self.length = require_setting("generation.default_word_count")
        else:
            self.length = require_setting("generation.default_length")

    @property
    def uses_random_separator(self) -> bool:
        return self.separator == RANDOM_SEPARATOR

    def validate(self):
        """Reject structurally invalid requests before any randomness is drawn."""
        self.resolve_length()
        if self.count is None or self.count <= 0:
            raise ValueError("Number of secrets must be greater than 0")
        if self.mode is Mode.PATTERN:
            if not self.pattern:
                raise ValueError("Pattern mode requires a pattern template")
            if self.length is not None and self.length < len(self.pattern):
                raise ValueError(
                    f"Length {self.length} is shorter than pattern '{self.pattern}'"
                )
        elif self.length is None or self.length <= 0:
            raise ValueError("Length must be greater than 0")
        if self.mode is Mode.DICEWARE and not self.uses_random_separator:
            if len(self.separator) > 1:
                raise ValueError("Separator must be a single grapheme or 'random'")


class GeneratedSecret:
    """
    A generated secret held in a mutable buffer.

    The buffer can be zeroed with ``wipe()`` once the value has been printed or
    handed off. ``handoff()`` returns an independent copy for the receiver.
    """

    __slots__ = ('_buffer', 'entropy_bits', 'mode', 'details')

    def __init__(self, value: str, entropy_bits: float, mode: Mode, details: dict = None):
        self._buffer = bytearray(value.encode('utf-8'))
        self.entropy_bits = entropy_bits
        self.mode = mode
        self.details = details or {}

    @property
    def value(self) -> str:
        return self._buffer.decode('utf-8').rstrip('\x00')

    @property
    def wiped(self) -> bool:
        return not any(self._buffer)

    def __len__(self) -> int:
        return len(self.value)

    def handoff(self) -> bytearray:
        """Return an owned copy of the secret bytes."""
        return bytearray(self._buffer)

    def wipe(self):
        for i in range(len(self._buffer)):
            self._buffer[i] = 0

    def __repr__(self) -> str:
        return f"GeneratedSecret(mode={self.mode.value}, entropy_bits={self.entropy_bits:.1f})"


@dataclass
class MutationSpec:
    """How to mutate an existing secret."""
    kind: MutationKind = MutationKind.MIXED
    strength: int = 1
    seed: Optional[int] = None
    increase: int = 0

    def __post_init__(self):
        self.kind = MutationKind.parse(self.kind)
        if self.strength is None or self.strength <= 0:
            raise ValueError("Mutation strength must be a positive integer")
        if self.increase < 0:
            raise ValueError("Mutation increase cannot be negative")


@dataclass
class StrengthReport:
    """Entropy estimate with classification and improvement hints."""
    entropy_bits: float
    category: StrengthCategory
    suggestions: List[str] = field(default_factory=list)

    @property
    def is_acceptable(self) -> bool:
        return self.category in (StrengthCategory.STRONG, StrengthCategory.VERY_STRONG)


__all__ = [
    'RANDOM_SEPARATOR',
    'Mode',
    'StrengthCategory',
    'MutationKind',
    'GenerationRequest',
    'GeneratedSecret',
    'MutationSpec',
    'StrengthReport',
]
