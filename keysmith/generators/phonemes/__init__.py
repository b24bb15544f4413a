#!/usr/bin/env python3
"""
Phonetic Class Loader
=====================
Loads the phonetic classes used by pronounceable generation from YAML.

Usage:
    from keysmith.generators.phonemes import load_phonetics

    phonetics = load_phonetics()
    phonetics.classes["vowel"]  # ('a', 'e', 'i', 'o', 'u')
"""

import yaml
from pathlib import Path
from typing import Dict, Tuple, Any
from dataclasses import dataclass
from functools import lru_cache


PHONEMES_DIR = Path(__file__).parent


@dataclass(frozen=True)
class PhoneticConfig:
    """Phonetic classes and the default state transitions between them."""
    classes: Dict[str, Tuple[str, ...]]
    transitions: Dict[str, str]
    raw: Dict[str, Any]

    def class_size(self, name: str) -> int:
        return len(self.classes[name])

    def next_state(self, state: str) -> str:
        return self.transitions[state]


def _load_yaml(filename: str) -> Dict[str, Any]:
    """Load a YAML file from the phonemes directory."""
    filepath = PHONEMES_DIR / filename
    if not filepath.exists():
        raise FileNotFoundError(f"Phoneme config not found: {filepath}")

    with open(filepath, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f)


@lru_cache(maxsize=1)
def load_phonetics() -> PhoneticConfig:
    """Load consonant/vowel classes."""
    raw = _load_yaml('phonetics.yaml')

    classes = {}
    for name, graphemes in raw.get('classes', {}).items():
        unique = tuple(dict.fromkeys(graphemes))
        if not unique:
            raise ValueError(f"Phonetic class '{name}' is empty in phonetics.yaml")
        classes[name] = unique

    transitions = dict(raw.get('transitions', {}))
    for state, target in transitions.items():
        if state not in classes or target not in classes:
            raise ValueError(f"Transition {state} -> {target} references an unknown class")

    return PhoneticConfig(classes=classes, transitions=transitions, raw=raw)


__all__ = [
    'PhoneticConfig',
    'load_phonetics',
]
