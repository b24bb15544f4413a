#!/usr/bin/env python3
"""
Pronounceable Generation
========================
Two-state (consonant/vowel) machine producing readable strings.

Each step draws uniformly from the current state's class and then moves to
the next state. In strict mode the states alternate; otherwise the state
repeats with a small probability so output is less mechanical. The reduced
per-position alphabet is reported back so strength estimates stay honest.
"""

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from keysmith.generators.entropy import RandomSource, SystemRandomSource
from keysmith.generators.phonemes import PhoneticConfig, load_phonetics
from keysmith.settings import get_setting, require_setting


@dataclass(frozen=True)
class PronounceableResult:
    value: str
    states: Tuple[str, ...]


def _binary_entropy(p: float) -> float:
    if p <= 0 or p >= 1:
        return 0.0
    return -(p * math.log2(p) + (1 - p) * math.log2(1 - p))


class PronounceableGenerator:
    """
    Alternating phonetic-class generator.

    Args:
        phonetics: Phonetic classes (default: phonemes/phonetics.yaml)
        strict_alternation: Never repeat a state (default from app.yaml)
        repeat_probability: Chance of staying in the same state when not strict
        start_state: Class of the first grapheme
    """

    def __init__(self,
                 phonetics: PhoneticConfig = None,
                 strict_alternation: Optional[bool] = None,
                 repeat_probability: Optional[float] = None,
                 start_state: Optional[str] = None):
        cfg = get_setting("pronounceable", {}) or {}
        self.phonetics = phonetics or load_phonetics()

        if strict_alternation is None:
            strict_alternation = require_setting("pronounceable.strict_alternation")
        self.strict_alternation = bool(strict_alternation)

        if repeat_probability is None:
            repeat_probability = require_setting("pronounceable.repeat_probability")
        if not 0 <= repeat_probability < 1:
            raise ValueError("repeat_probability must be in [0, 1)")
        self.repeat_probability = repeat_probability

        self.start_state = start_state or cfg.get("start_state") or "consonant"
        if self.start_state not in self.phonetics.classes:
            raise ValueError(f"Unknown start state '{self.start_state}'")

    def generate(self, length: int, rng: RandomSource = None) -> PronounceableResult:
        """Generate ``length`` graphemes."""
        if length <= 0:
            raise ValueError("Length must be greater than 0")
        rng = rng or SystemRandomSource()

        graphemes = []
        states = []
        state = self.start_state
        for _ in range(length):
            graphemes.append(rng.choice(self.phonetics.classes[state]))
            states.append(state)
            if self.strict_alternation or not rng.chance(self.repeat_probability):
                state = self.phonetics.next_state(state)

        return PronounceableResult(value=''.join(graphemes), states=tuple(states))

    def entropy_bits(self, states: Tuple[str, ...]) -> float:
        """
        Entropy of a generated value given its state trace.

        Sum of log2(class size) per position, plus the transition choice
        entropy when alternation is not strict.
        """
        bits = sum(math.log2(self.phonetics.class_size(s)) for s in states)
        if not self.strict_alternation and len(states) > 1:
            bits += (len(states) - 1) * _binary_entropy(self.repeat_probability)
        return bits


__all__ = [
    'PronounceableResult',
    'PronounceableGenerator',
]
