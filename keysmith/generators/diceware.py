#!/usr/bin/env python3
"""
Diceware Passphrases
====================
Assembles passphrases from a verified wordlist.
"""

import math
from typing import Sequence

from keysmith.generators.charsets import CharacterSet
from keysmith.generators.entropy import RandomSource
from keysmith.models import RANDOM_SEPARATOR


def assemble_passphrase(words: Sequence[str],
                        word_count: int,
                        rng: RandomSource,
                        separator: str = " ",
                        separator_set: CharacterSet = None) -> str:
    """
    Draw ``word_count`` words uniformly and join them.

    With ``separator == "random"`` each gap gets an independent draw from
    ``separator_set`` rather than one symbol shared by all gaps.
    """
    if word_count <= 0:
        raise ValueError("Word count must be greater than 0")
    if not words:
        raise ValueError("Wordlist is empty")
    random_gaps = separator == RANDOM_SEPARATOR
    if random_gaps and not separator_set:
        raise ValueError("Random separators need a non-empty separator set")

    parts = []
    for i in range(word_count):
        if i > 0:
            parts.append(rng.choice(separator_set.graphemes) if random_gaps else separator)
        parts.append(words[rng.next_uniform_index(len(words))])
    return ''.join(parts)


def passphrase_entropy(wordlist_size: int, word_count: int, separator_set_size: int = 0) -> float:
    """word_count * log2(W), plus log2(|separators|) per gap for random separators."""
    bits = word_count * math.log2(wordlist_size)
    if separator_set_size > 1 and word_count > 1:
        bits += (word_count - 1) * math.log2(separator_set_size)
    return bits


__all__ = [
    'assemble_passphrase',
    'passphrase_entropy',
]
