#!/usr/bin/env python3
"""
Mutation Engine
===============
Applies a fixed number of random edits to an existing secret.

Edit types:
- replace:  swap one grapheme for another of the same class (digit, lower,
            upper, symbol), falling back to the printable set
- swap:     exchange two adjacent graphemes
- insert:   insert a random grapheme at a random position
- lengthen: append a grapheme drawn from the original generation charset
- remove:   delete one grapheme
- mixed:    each edit picks one of replace/swap/insert/remove

Every draw goes through a RandomSource, so a seeded spec replays the exact
edit sequence.
"""

import math
from typing import List, Optional

from keysmith.errors import EmptyInputError
from keysmith.generators.charsets import (
    PRINTABLE_SET_ID,
    CharacterSet,
    CharsetRegistry,
    default_registry,
)
from keysmith.generators.entropy import RandomSource, SystemRandomSource, make_random_source
from keysmith.models import GeneratedSecret, MutationKind, MutationSpec

MUTATION_STREAM = "mutate"

MIXED_KINDS = (MutationKind.REPLACE, MutationKind.SWAP, MutationKind.INSERT, MutationKind.REMOVE)

# Class guesses for replace edits, checked in order
CLASS_SET_IDS = ("digit", "lowerletter", "upperletter", "symbol3")


class MutationEngine:
    """
    Applies MutationSpecs to secrets.

    Usage:
        engine = MutationEngine()
        mutated = engine.mutate("hunter2", MutationSpec(kind="replace", strength=2, seed=7))
    """

    def __init__(self, rng: RandomSource = None, registry: CharsetRegistry = None):
        self.rng = rng or SystemRandomSource()
        self.registry = registry or default_registry()
        self.printable = self.registry.get(PRINTABLE_SET_ID)
        self._class_sets = [self.registry.get(set_id) for set_id in CLASS_SET_IDS]

    def infer_class(self, grapheme: str) -> Optional[CharacterSet]:
        """Best guess of the set a grapheme was drawn from."""
        for charset in self._class_sets:
            if grapheme in charset:
                return charset
        return None

    def stream_for(self, spec: MutationSpec) -> RandomSource:
        """Random source for one mutation: seeded when the spec has a seed."""
        if spec.seed is not None:
            return make_random_source(spec.seed, MUTATION_STREAM)
        return self.rng

    def batch_streams(self, spec: MutationSpec, count: int) -> list:
        """
        One independent stream per secret of a batch.

        With a seed, secret ``i`` gets ``fork(i)`` of the seeded mutation
        stream, so no two secrets share edit positions or appended graphemes.
        """
        if spec.seed is None:
            return [self.rng] * count
        base = self.stream_for(spec)
        return [base.fork(i) for i in range(count)]

    def mutate(self, text: str, spec: MutationSpec, charset: CharacterSet = None,
               rng: RandomSource = None) -> str:
        """
        Apply ``spec.strength`` edits, then append ``spec.increase`` graphemes.

        Args:
            text: Secret to mutate
            spec: Edit kind, count and optional seed
            charset: Charset of the original generation (used by insert,
                     lengthen and increase); defaults to the printable set
            rng: Random source overriding the spec seed

        Raises:
            EmptyInputError: text is empty
        """
        if not text:
            raise EmptyInputError()

        rng = rng or self.stream_for(spec)
        pool = charset if charset else self.printable
        graphemes = list(text)

        for _ in range(spec.strength):
            kind = spec.kind
            if kind is MutationKind.MIXED:
                kind = rng.choice(MIXED_KINDS)
            self._apply(kind, graphemes, rng, pool)

        for _ in range(spec.increase):
            graphemes.append(rng.choice(pool.graphemes))

        return ''.join(graphemes)

    def _apply(self, kind: MutationKind, graphemes: List[str], rng: RandomSource, pool: CharacterSet):
        # swap/remove need two graphemes; fall back so every edit lands
        if kind in (MutationKind.SWAP, MutationKind.REMOVE) and len(graphemes) < 2:
            kind = MutationKind.REPLACE

        if kind is MutationKind.REPLACE:
            index = rng.next_uniform_index(len(graphemes))
            current = graphemes[index]
            charset = self.infer_class(current) or self.printable
            candidates = [g for g in charset.graphemes if g != current] or list(charset.graphemes)
            graphemes[index] = rng.choice(candidates)
        elif kind is MutationKind.SWAP:
            index = rng.next_uniform_index(len(graphemes) - 1)
            graphemes[index], graphemes[index + 1] = graphemes[index + 1], graphemes[index]
        elif kind is MutationKind.INSERT:
            position = rng.next_uniform_index(len(graphemes) + 1)
            graphemes.insert(position, rng.choice(pool.graphemes))
        elif kind is MutationKind.LENGTHEN:
            graphemes.append(rng.choice(pool.graphemes))
        elif kind is MutationKind.REMOVE:
            del graphemes[rng.next_uniform_index(len(graphemes))]
        else:
            raise ValueError(f"Unsupported mutation kind: {kind}")

    def mutate_secret(self, secret: GeneratedSecret, spec: MutationSpec,
                      charset: CharacterSet = None, rng: RandomSource = None) -> GeneratedSecret:
        """
        Mutate a generated secret and wipe the input.

        Appended graphemes are fresh randomness and raise the entropy
        estimate; in-place edits leave it unchanged.
        """
        value = secret.value
        mutated = self.mutate(value, spec, charset, rng)
        pool = charset if charset else self.printable

        appended = spec.increase
        if spec.kind is MutationKind.LENGTHEN:
            appended += spec.strength
        entropy = secret.entropy_bits + appended * math.log2(len(pool)) if len(pool) > 1 else secret.entropy_bits

        details = dict(secret.details)
        details.update({'mutation': spec.kind.value, 'edits': spec.strength})
        result = GeneratedSecret(mutated, entropy, secret.mode, details)
        secret.wipe()
        return result


__all__ = [
    'MutationEngine',
]
