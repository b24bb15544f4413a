"""
Tests for Pronounceable Generation
==================================
Tests the consonant/vowel state machine and its entropy accounting in
keysmith/generators/pronounceable.py.
"""

import math

import pytest
import sys
from pathlib import Path

# Ensure repo root is on path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from keysmith.generators.entropy import SeededRandomSource
from keysmith.generators.phonemes import load_phonetics
from keysmith.generators.pronounceable import PronounceableGenerator

CONSONANTS = "bcdfghjklmnpqrstvwxyz"
VOWELS = "aeiou"


class TestPhonetics:
    """Tests for the YAML phonetic classes."""

    def test_classes_loaded(self):
        phonetics = load_phonetics()
        assert "".join(phonetics.classes["consonant"]) == CONSONANTS
        assert "".join(phonetics.classes["vowel"]) == VOWELS

    def test_transitions_alternate(self):
        phonetics = load_phonetics()
        assert phonetics.next_state("consonant") == "vowel"
        assert phonetics.next_state("vowel") == "consonant"


class TestStrictAlternation:
    """Tests for strict consonant/vowel alternation."""

    def test_alternates(self):
        gen = PronounceableGenerator(strict_alternation=True)
        result = gen.generate(12, SeededRandomSource(1))
        assert len(result.value) == 12
        for i, g in enumerate(result.value):
            assert g in (CONSONANTS if i % 2 == 0 else VOWELS)

    def test_states_trace(self):
        gen = PronounceableGenerator(strict_alternation=True, start_state="vowel")
        result = gen.generate(3, SeededRandomSource(1))
        assert result.states == ("vowel", "consonant", "vowel")

    def test_entropy(self):
        gen = PronounceableGenerator(strict_alternation=True)
        result = gen.generate(7, SeededRandomSource(2))
        assert gen.entropy_bits(result.states) == pytest.approx(4 * math.log2(21) + 3 * math.log2(5))

    def test_seeded_reproducible(self):
        gen = PronounceableGenerator(strict_alternation=True)
        assert gen.generate(10, SeededRandomSource(9)).value == gen.generate(10, SeededRandomSource(9)).value

    @pytest.mark.parametrize("length", [0, -1])
    def test_invalid_length(self, length):
        with pytest.raises(ValueError):
            PronounceableGenerator(strict_alternation=True).generate(length)


class TestLooseAlternation:
    """Tests for the non-strict mode where a state may repeat."""

    def test_state_repeats_occur(self):
        gen = PronounceableGenerator(strict_alternation=False, repeat_probability=0.5)
        result = gen.generate(200, SeededRandomSource(3))
        repeats = sum(1 for a, b in zip(result.states, result.states[1:]) if a == b)
        assert repeats > 0

    def test_graphemes_follow_states(self):
        gen = PronounceableGenerator(strict_alternation=False, repeat_probability=0.3)
        result = gen.generate(50, SeededRandomSource(4))
        for g, state in zip(result.value, result.states):
            assert g in (CONSONANTS if state == "consonant" else VOWELS)

    def test_entropy_includes_transition_choice(self):
        p = 0.1
        gen = PronounceableGenerator(strict_alternation=False, repeat_probability=p)
        states = ("consonant", "vowel", "vowel")
        h = -(p * math.log2(p) + (1 - p) * math.log2(1 - p))
        expected = math.log2(21) + 2 * math.log2(5) + 2 * h
        assert gen.entropy_bits(states) == pytest.approx(expected)


class TestConfiguration:
    """Tests for settings validation."""

    def test_defaults_from_settings(self):
        gen = PronounceableGenerator()
        assert gen.strict_alternation is True
        assert gen.repeat_probability == pytest.approx(0.1)
        assert gen.start_state == "consonant"

    def test_bad_probability(self):
        with pytest.raises(ValueError):
            PronounceableGenerator(repeat_probability=1.5)

    def test_unknown_start_state(self):
        with pytest.raises(ValueError):
            PronounceableGenerator(start_state="glide")
