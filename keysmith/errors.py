#!/usr/bin/env python3
"""
Error Types
===========
Every failure the generation core can report. Callers catch the family
(``CharsetError``, ``WordlistError``, ...) or ``KeysmithError`` for all of them.
"""


class KeysmithError(Exception):
    """Base class for all keysmith errors."""


# =============================================================================
# Character sets
# =============================================================================

class CharsetError(KeysmithError):
    """Character set resolution failed."""


class EmptyCharsetError(CharsetError):
    """The effective character set is empty."""


class UnknownSetError(CharsetError):
    """A character set id is not registered."""

    def __init__(self, set_id: str, available: list = None):
        self.set_id = set_id
        self.available = list(available or [])
        msg = f"Unknown character set '{set_id}'"
        if self.available:
            msg += f". Available sets: {', '.join(self.available)}"
        super().__init__(msg)


class InsufficientUniqueError(CharsetError):
    """Avoid-repeat generation needs more unique graphemes than exist."""

    def __init__(self, needed: int, available: int):
        self.needed = needed
        self.available = available
        super().__init__(
            f"Cannot draw {needed} non-repeating graphemes from "
            f"{available} unique graphemes"
        )


# =============================================================================
# Patterns
# =============================================================================

class PatternError(KeysmithError):
    """Pattern template could not be compiled."""


class UnknownTokenError(PatternError):
    def __init__(self, token: str, position: int):
        self.token = token
        self.position = position
        super().__init__(f"Unknown pattern token '{token}' at position {position}")


class EmptyClassError(PatternError):
    def __init__(self, class_name: str):
        self.class_name = class_name
        super().__init__(f"Pattern class '{class_name}' has no graphemes left after resolution")


class IncompatibleIncludeError(PatternError):
    def __init__(self, grapheme: str):
        self.grapheme = grapheme
        super().__init__(f"Forced grapheme '{grapheme}' fits no position of the pattern")


# =============================================================================
# Wordlist
# =============================================================================

class WordlistError(KeysmithError):
    """Diceware wordlist could not be provided."""


class WordlistDownloadError(WordlistError):
    def __init__(self, url: str, attempts: int, reason: str):
        self.url = url
        self.attempts = attempts
        self.reason = reason
        super().__init__(f"Failed to download {url} after {attempts} attempt(s): {reason}")


class ChecksumMismatchError(WordlistError):
    def __init__(self, expected: str, actual: str, source: str):
        self.expected = expected
        self.actual = actual
        self.source = source
        super().__init__(
            f"Checksum mismatch for {source}: expected {expected}, got {actual}"
        )


class WordlistCacheError(WordlistError):
    """Cache directory or file could not be written."""


class WordlistFormatError(WordlistError):
    """Verified content does not have the expected diceware layout."""


# =============================================================================
# Mutation
# =============================================================================

class MutationError(KeysmithError):
    """Mutation could not be applied."""


class EmptyInputError(MutationError):
    def __init__(self):
        super().__init__("Cannot mutate an empty secret")


# =============================================================================
# Clipboard
# =============================================================================

class ClipboardError(KeysmithError):
    """Clipboard persistence failed."""


class ClipboardUnavailableError(ClipboardError):
    """No clipboard backend is reachable."""


class ClipboardEmptyError(ClipboardError):
    def __init__(self):
        super().__init__("Refusing to copy an empty value to the clipboard")


__all__ = [
    'KeysmithError',
    'CharsetError',
    'EmptyCharsetError',
    'UnknownSetError',
    'InsufficientUniqueError',
    'PatternError',
    'UnknownTokenError',
    'EmptyClassError',
    'IncompatibleIncludeError',
    'WordlistError',
    'WordlistDownloadError',
    'ChecksumMismatchError',
    'WordlistCacheError',
    'WordlistFormatError',
    'MutationError',
    'EmptyInputError',
    'ClipboardError',
    'ClipboardUnavailableError',
    'ClipboardEmptyError',
]
