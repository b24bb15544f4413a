#!/usr/bin/env python3
"""
Strength Estimation
===================
Entropy estimates, strength categories and improvement suggestions.

Generated secrets carry their exact entropy (computed from the alphabets
they were drawn from). Arbitrary text, such as a hand-edited password, gets a
heuristic estimate with penalties for runs, repeats and common words.
"""

import math
from typing import Iterable, List, Optional

from keysmith.models import GeneratedSecret, Mode, StrengthCategory, StrengthReport
from keysmith.settings import get_setting, require_setting

# Pool sizes for heuristic estimates of arbitrary text
LOWER_POOL = 26
UPPER_POOL = 26
DIGIT_POOL = 10
SYMBOL_POOL = 33

SEQUENTIAL_PENALTY = 0.8
REPEAT_PENALTY = 0.9
COMMON_WORD_PENALTY = 0.7

BAR_LENGTH = 20


def charset_entropy(position_sizes: Iterable[int]) -> float:
    """Sum of log2(alphabet size) over positions."""
    return sum(math.log2(n) for n in position_sizes if n > 1)


def has_sequential_chars(text: str) -> bool:
    """Three consecutive code points in ascending order (abc, 123)."""
    for a, b, c in zip(text, text[1:], text[2:]):
        if ord(a) + 1 == ord(b) and ord(b) + 1 == ord(c):
            return True
    return False


def has_repeated_chars(text: str) -> bool:
    for a, b, c in zip(text, text[1:], text[2:]):
        if a == b == c:
            return True
    return False


def strength_bar(entropy_bits: float, ceiling: float = 128.0) -> str:
    filled = round(min(entropy_bits / ceiling, 1.0) * BAR_LENGTH)
    return f"[{'█' * filled}{'░' * (BAR_LENGTH - filled)}]"


class StrengthScorer:
    """
    Classifies entropy and produces suggestions.

    Thresholds (bits): <28 weak, 28-59 moderate, 60-127 strong, >=128 very strong.
    Suggestions are only produced for weak and moderate results and depend
    only on the report inputs.
    """

    def __init__(self,
                 weak_below: Optional[float] = None,
                 moderate_below: Optional[float] = None,
                 strong_below: Optional[float] = None,
                 common_words: Optional[List[str]] = None):
        cfg = get_setting("strength", {}) or {}
        self.weak_below = weak_below if weak_below is not None else require_setting("strength.weak_below")
        self.moderate_below = (moderate_below if moderate_below is not None
                               else require_setting("strength.moderate_below"))
        self.strong_below = strong_below if strong_below is not None else require_setting("strength.strong_below")
        if not self.weak_below <= self.moderate_below <= self.strong_below:
            raise ValueError("strength thresholds must be ascending")
        if common_words is None:
            common_words = cfg.get("common_words", [])
        self.common_words = [w.lower() for w in common_words]

    def classify(self, entropy_bits: float) -> StrengthCategory:
        if entropy_bits < self.weak_below:
            return StrengthCategory.WEAK
        if entropy_bits < self.moderate_below:
            return StrengthCategory.MODERATE
        if entropy_bits < self.strong_below:
            return StrengthCategory.STRONG
        return StrengthCategory.VERY_STRONG

    def report(self, entropy_bits: float, mode: Mode = None, details: dict = None) -> StrengthReport:
        """Build a report for an entropy estimate of a secret of the given mode."""
        category = self.classify(entropy_bits)
        suggestions = []
        if category in (StrengthCategory.WEAK, StrengthCategory.MODERATE):
            suggestions = self._suggestions(entropy_bits, mode, details or {})
        return StrengthReport(entropy_bits=entropy_bits, category=category, suggestions=suggestions)

    def score(self, secret: GeneratedSecret) -> StrengthReport:
        return self.report(secret.entropy_bits, secret.mode, secret.details)

    def _suggestions(self, entropy_bits: float, mode: Optional[Mode], details: dict) -> List[str]:
        target = self.moderate_below
        hints = []

        if mode is Mode.DICEWARE:
            size = details.get('wordlist_size')
            if size and size > 1:
                needed = math.ceil(target / math.log2(size))
                hints.append(f"Use at least {needed} words")
            else:
                hints.append("Use more words")
            if not details.get('random_separator'):
                hints.append("Use random separators between words")
            hints.append("Do not reuse a diceware passphrase; generate a fresh one per account")
        elif mode is Mode.PRONOUNCEABLE:
            length = details.get('length') or 0
            if length > 0:
                per_char = entropy_bits / length
                needed = math.ceil(target / per_char) if per_char > 0 else length + 1
                hints.append(f"Increase length to at least {needed} characters")
            else:
                hints.append("Increase length")
            hints.append("Pronounceable output has fewer bits per character; use character mode for short secrets")
        else:
            size = details.get('alphabet_size') or 0
            if size > 1:
                needed = math.ceil(target / math.log2(size))
                hints.append(f"Increase length to at least {needed} characters")
            else:
                hints.append("Increase length")
            if size < 62:
                hints.append("Broaden character classes (upper, lower, digits, symbols)")
            if details.get('penalties'):
                hints.extend(details['penalties'])

        return hints

    # -------------------------------------------------------------------------
    # Arbitrary text
    # -------------------------------------------------------------------------

    def estimate_text(self, text: str) -> StrengthReport:
        """
        Heuristic estimate for text of unknown origin.

        length * log2(pool of present classes), then multiplied by penalties
        for ascending runs, triple repeats and common words.
        """
        if not text:
            return self.report(0.0, Mode.CHARACTER, {'alphabet_size': 0})

        pool = 0
        if any(c.islower() for c in text):
            pool += LOWER_POOL
        if any(c.isupper() for c in text):
            pool += UPPER_POOL
        if any(c.isdigit() for c in text):
            pool += DIGIT_POOL
        if any(not c.isalnum() for c in text):
            pool += SYMBOL_POOL

        bits = len(text) * math.log2(pool) if pool > 1 else 0.0
        penalties = []
        if has_sequential_chars(text):
            bits *= SEQUENTIAL_PENALTY
            penalties.append("Avoid sequential characters such as 'abc' or '123'")
        if has_repeated_chars(text):
            bits *= REPEAT_PENALTY
            penalties.append("Avoid repeating the same character three times")
        lowered = text.lower()
        if any(word in lowered for word in self.common_words):
            bits *= COMMON_WORD_PENALTY
            penalties.append("Avoid common words and keyboard patterns")

        return self.report(bits, Mode.CHARACTER, {'alphabet_size': pool, 'penalties': penalties})


__all__ = [
    'StrengthScorer',
    'charset_entropy',
    'has_sequential_chars',
    'has_repeated_chars',
    'strength_bar',
]
