#!/usr/bin/env python3
"""
Generation Engine
=================
Dispatches a GenerationRequest to the matching strategy and produces one
GeneratedSecret per requested secret.

Strategies:
- character:     independent draws from the effective set
- pattern:       per-position draws from a compiled template
- diceware:      words from the verified wordlist
- pronounceable: consonant/vowel state machine

Secret ``i`` of a batch always uses ``rng.fork(i)``, so seeded batches are
reproducible regardless of how the worker pool schedules them.
"""

import math
from dataclasses import replace
from typing import Callable, Dict, List, Optional, Sequence, Set
import logging

from keysmith.errors import InsufficientUniqueError
from keysmith.generators.charsets import CharacterSet, CharsetRegistry, default_registry
from keysmith.generators.diceware import assemble_passphrase, passphrase_entropy
from keysmith.generators.entropy import RandomSource, make_random_source
from keysmith.generators.patterns import PatternCompiler
from keysmith.generators.pronounceable import PronounceableGenerator
from keysmith.models import GeneratedSecret, GenerationRequest, Mode
from keysmith.parallel import run_indexed

logger = logging.getLogger(__name__)


def _match(positions: Sequence[CharacterSet], used: Set[str]) -> Optional[Dict[str, int]]:
    """
    Give every position a distinct grapheme not in ``used``.

    Bipartite matching (augmenting paths) between positions and graphemes.
    Returns grapheme -> position, or None when no such assignment exists.
    """
    owner: Dict[str, int] = {}

    def assign(index: int, seen: Set[str]) -> bool:
        for g in positions[index].graphemes:
            if g in used or g in seen:
                continue
            seen.add(g)
            if g not in owner or assign(owner[g], seen):
                owner[g] = index
                return True
        return False

    for i in range(len(positions)):
        if not assign(i, set()):
            return None
    return owner


def _has_matching(positions: Sequence[CharacterSet], used: Set[str]) -> bool:
    return _match(positions, used) is not None


def _feasible(charset: CharacterSet, rest: Sequence[CharacterSet], used: Set[str]) -> List[str]:
    """Unused graphemes of ``charset`` that still leave ``rest`` fillable."""
    candidates = [g for g in charset.graphemes if g not in used]
    if all(p is charset or p == charset for p in rest):
        return candidates if len(candidates) > len(rest) else []
    matching = _match(rest, used)
    if matching is None:
        return []
    # graphemes outside the matching leave it intact
    return [g for g in candidates if g not in matching or _has_matching(rest, used | {g})]


def draw_positions(positions: Sequence[CharacterSet], rng: RandomSource,
                   avoid_repeat: bool = False) -> tuple:
    """
    Draw one grapheme per position.

    With ``avoid_repeat`` each position draws uniformly from the graphemes
    that keep the remaining positions fillable with distinct graphemes, so
    generation never paints itself into a corner. The entropy counts exactly
    those feasible choices. Callers check feasibility of the whole template
    first.

    Returns:
        (value, entropy_bits)
    """
    chosen = []
    bits = 0.0
    used: Set[str] = set()
    for i, charset in enumerate(positions):
        if not avoid_repeat:
            chosen.append(rng.choice(charset.graphemes))
            bits += math.log2(len(charset)) if len(charset) > 1 else 0.0
            continue

        feasible = _feasible(charset, positions[i + 1:], used)
        if not feasible:
            raise InsufficientUniqueError(len(positions) - i, len(set(charset.graphemes) - used))
        if len(feasible) > 1:
            bits += math.log2(len(feasible))
        g = feasible[rng.next_uniform_index(len(feasible))]
        chosen.append(g)
        used.add(g)
    return ''.join(chosen), bits


class PasswordGenerator:
    """
    Produces secrets for a GenerationRequest.

    Usage:
        generator = PasswordGenerator()
        secrets = generator.generate(GenerationRequest(length=20, count=3))
        for s in secrets:
            print(s.value)
            s.wipe()
    """

    def __init__(self,
                 registry: CharsetRegistry = None,
                 wordlist_provider=None,
                 pronounceable: PronounceableGenerator = None,
                 rng: RandomSource = None,
                 max_workers: Optional[int] = None):
        """
        Args:
            registry: Character set registry (default: predefined sets)
            wordlist_provider: Provider for diceware mode (created lazily)
            pronounceable: Pronounceable generator (created per request if None)
            rng: Base random source; a request seed overrides it
            max_workers: Worker pool size for batches (default from app.yaml)
        """
        self.registry = registry or default_registry()
        self._wordlist_provider = wordlist_provider
        self._pronounceable = pronounceable
        self.rng = rng
        self.max_workers = max_workers

    @property
    def wordlist_provider(self):
        if self._wordlist_provider is None:
            from keysmith.wordlist import get_wordlist_provider
            self._wordlist_provider = get_wordlist_provider()
        return self._wordlist_provider

    def resolve_charset(self, request: GenerationRequest) -> CharacterSet:
        return self.registry.resolve(request.allowed, request.excluded, request.included)

    def _base_rng(self, request: GenerationRequest) -> RandomSource:
        if request.seed is not None:
            return make_random_source(request.seed)
        return self.rng or make_random_source()

    def generate(self, request: GenerationRequest) -> List[GeneratedSecret]:
        """
        Generate ``request.count`` secrets.

        All validation (charset resolution, pattern compilation, wordlist
        verification) happens before any secret is drawn. A failure raises
        and no partial batch is returned.
        """
        request.validate()
        make = self._planner(request)
        base = self._base_rng(request)
        if base.deterministic:
            logger.debug("Using seeded random source; output is reproducible and not secret")
        return run_indexed(lambda i: make(base.fork(i)), request.count, self.max_workers)

    def generate_one(self, request: GenerationRequest) -> GeneratedSecret:
        return self.generate(replace(request, count=1))[0]

    # -------------------------------------------------------------------------
    # Strategy planning
    # -------------------------------------------------------------------------

    def _planner(self, request: GenerationRequest) -> Callable[[RandomSource], GeneratedSecret]:
        if request.mode is Mode.CHARACTER:
            return self._plan_character(request)
        if request.mode is Mode.PATTERN:
            return self._plan_pattern(request)
        if request.mode is Mode.DICEWARE:
            return self._plan_diceware(request)
        if request.mode is Mode.PRONOUNCEABLE:
            return self._plan_pronounceable(request)
        raise ValueError(f"Unsupported mode: {request.mode}")

    def _plan_character(self, request: GenerationRequest):
        effective = self.resolve_charset(request)
        if request.avoid_repeat and request.length > len(effective):
            raise InsufficientUniqueError(request.length, len(effective))
        positions = (effective,) * request.length
        details = {'alphabet_size': len(effective), 'length': request.length}

        def make(rng: RandomSource) -> GeneratedSecret:
            value, bits = draw_positions(positions, rng, request.avoid_repeat)
            return GeneratedSecret(value, bits, Mode.CHARACTER, dict(details))
        return make

    def _plan_pattern(self, request: GenerationRequest):
        effective = self.resolve_charset(request)
        compiled = PatternCompiler(effective).compile(request.pattern, request.length, request.included)
        positions = compiled.positions
        if request.avoid_repeat and not _has_matching(positions, set()):
            available = len({g for charset in positions for g in charset})
            raise InsufficientUniqueError(len(positions), available)
        details = {
            'alphabet_size': len({g for charset in positions for g in charset}),
            'length': len(positions),
            'classes': compiled.classes,
        }

        def make(rng: RandomSource) -> GeneratedSecret:
            value, bits = draw_positions(positions, rng, request.avoid_repeat)
            return GeneratedSecret(value, bits, Mode.PATTERN, dict(details))
        return make

    def _plan_diceware(self, request: GenerationRequest):
        separator_set = None
        if request.uses_random_separator:
            separator_set = self.registry.get(request.separator_set)
        wordlist = self.wordlist_provider.ensure_loaded()
        bits = passphrase_entropy(len(wordlist), request.length,
                                  len(separator_set) if separator_set else 0)
        details = {
            'wordlist_size': len(wordlist),
            'word_count': request.length,
            'random_separator': request.uses_random_separator,
        }

        def make(rng: RandomSource) -> GeneratedSecret:
            value = assemble_passphrase(wordlist.words, request.length, rng,
                                        request.separator, separator_set)
            return GeneratedSecret(value, bits, Mode.DICEWARE, dict(details))
        return make

    def _plan_pronounceable(self, request: GenerationRequest):
        generator = self._pronounceable
        if generator is None or request.strict_alternation is not None:
            generator = PronounceableGenerator(strict_alternation=request.strict_alternation)

        def make(rng: RandomSource) -> GeneratedSecret:
            result = generator.generate(request.length, rng)
            details = {'length': request.length, 'states': result.states}
            return GeneratedSecret(result.value, generator.entropy_bits(result.states),
                                   Mode.PRONOUNCEABLE, details)
        return make


__all__ = [
    'PasswordGenerator',
    'draw_positions',
]
