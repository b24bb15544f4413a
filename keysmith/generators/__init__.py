#!/usr/bin/env python3
"""
Secret Generators
=================
Provides multiple generation strategies:
- Character: Uniform draws from a resolved character set
- Pattern: Per-position character classes from a template
- Diceware: Words from a verified diceware wordlist
- Pronounceable: Consonant/vowel alternation
"""

from .entropy import (
    RandomSource,
    SystemRandomSource,
    SeededRandomSource,
    make_random_source,
)
from .charsets import (
    DEFINE,
    PRINTABLE_SET_ID,
    CharacterSet,
    CharsetRegistry,
    default_registry,
)
from .patterns import (
    TOKEN_CLASSES,
    CompiledPattern,
    PatternCompiler,
)
from .pronounceable import (
    PronounceableGenerator,
    PronounceableResult,
)
from .diceware import (
    assemble_passphrase,
    passphrase_entropy,
)
from .mutation import MutationEngine
from .engine import PasswordGenerator

__all__ = [
    # Randomness
    'RandomSource',
    'SystemRandomSource',
    'SeededRandomSource',
    'make_random_source',
    # Character sets
    'DEFINE',
    'PRINTABLE_SET_ID',
    'CharacterSet',
    'CharsetRegistry',
    'default_registry',
    # Patterns
    'TOKEN_CLASSES',
    'CompiledPattern',
    'PatternCompiler',
    # Pronounceable
    'PronounceableGenerator',
    'PronounceableResult',
    # Diceware
    'assemble_passphrase',
    'passphrase_entropy',
    # Mutation
    'MutationEngine',
    # Engine
    'PasswordGenerator',
]
