"""
Tests for Random Sources
========================
Tests uniform index sampling, seeded reproducibility and batch forking in
keysmith/generators/entropy.py.
"""

import pytest
import sys
from collections import Counter
from pathlib import Path

# Ensure repo root is on path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from keysmith.generators.entropy import (
    RandomSource,
    SeededRandomSource,
    SystemRandomSource,
    make_random_source,
)


class ScriptedSource(RandomSource):
    """Returns pre-recorded bit strings to exercise rejection sampling."""

    def __init__(self, values):
        self.values = list(values)
        self.requested_bits = []

    def _random_bits(self, k):
        self.requested_bits.append(k)
        return self.values.pop(0)


class TestUniformIndex:
    """Tests for next_uniform_index."""

    def test_rejects_out_of_range_candidates(self):
        """Candidates >= bound are discarded, never folded with modulo."""
        source = ScriptedSource([6, 7, 5])
        assert source.next_uniform_index(6) == 5
        # bound 6 needs 3 bits; 6 and 7 were rejected
        assert source.requested_bits == [3, 3, 3]

    def test_power_of_two_bound_uses_exact_bits(self):
        source = ScriptedSource([15])
        assert source.next_uniform_index(16) == 15
        assert source.requested_bits == [4]

    def test_bound_one_consumes_nothing(self):
        source = ScriptedSource([])
        assert source.next_uniform_index(1) == 0
        assert source.requested_bits == []

    @pytest.mark.parametrize("bound", [0, -3])
    def test_non_positive_bound_raises(self, bound):
        with pytest.raises(ValueError):
            SystemRandomSource().next_uniform_index(bound)

    def test_system_source_stays_in_range(self):
        source = SystemRandomSource()
        values = [source.next_uniform_index(7) for _ in range(500)]
        assert min(values) >= 0
        assert max(values) < 7

    def test_seeded_distribution_covers_all_values(self):
        """10k draws over 10 values should hit every value a reasonable number of times."""
        source = SeededRandomSource(1234)
        counts = Counter(source.next_uniform_index(10) for _ in range(10000))
        assert set(counts) == set(range(10))
        assert all(700 < n < 1300 for n in counts.values())


class TestSeededSource:
    """Tests for SeededRandomSource determinism."""

    def test_same_seed_same_stream(self):
        a = SeededRandomSource(42)
        b = SeededRandomSource(42)
        assert [a.next_uniform_index(1000) for _ in range(50)] == \
               [b.next_uniform_index(1000) for _ in range(50)]

    def test_different_seed_different_stream(self):
        a = SeededRandomSource(1)
        b = SeededRandomSource(2)
        assert [a.next_uniform_index(1 << 20) for _ in range(10)] != \
               [b.next_uniform_index(1 << 20) for _ in range(10)]

    def test_fork_is_independent_of_parent_position(self):
        """Forked stream depends only on seed and index."""
        parent = SeededRandomSource(7)
        before = [parent.fork(3).next_uniform_index(1000) for _ in range(1)]
        parent.next_uniform_index(1000)
        parent.next_uniform_index(1000)
        after = [parent.fork(3).next_uniform_index(1000) for _ in range(1)]
        assert before == after

    def test_forks_differ_by_index(self):
        parent = SeededRandomSource(7)
        first = [parent.fork(0).next_uniform_index(1 << 20) for _ in range(1)]
        second = [parent.fork(1).next_uniform_index(1 << 20) for _ in range(1)]
        assert first != second

    def test_marked_deterministic(self):
        assert SeededRandomSource(1).deterministic is True
        assert SystemRandomSource().deterministic is False


class TestHelpers:
    """Tests for choice, chance and make_random_source."""

    def test_choice_from_empty_raises(self):
        with pytest.raises(IndexError):
            SeededRandomSource(1).choice([])

    def test_choice_returns_member(self):
        source = SeededRandomSource(5)
        for _ in range(20):
            assert source.choice("xyz") in "xyz"

    def test_chance_extremes(self):
        source = SeededRandomSource(5)
        assert source.chance(0) is False
        assert source.chance(1) is True

    def test_chance_rate(self):
        source = SeededRandomSource(99)
        hits = sum(source.chance(0.25) for _ in range(4000))
        assert 800 < hits < 1200

    def test_make_random_source(self):
        assert isinstance(make_random_source(), SystemRandomSource)
        seeded = make_random_source(3)
        assert isinstance(seeded, SeededRandomSource)
        assert seeded.seed == 3
