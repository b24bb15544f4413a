#!/usr/bin/env python3
"""
keysmith - Password & Passphrase Generator
==========================================

Generates secrets with several strategies, mutates and scores them, and
optionally keeps a copy on the OS clipboard after the process exits.

Quick Start
-----------
    from keysmith import KeySmith, GenerationRequest

    ks = KeySmith()

    # 20-character passwords from upper/lower/digits
    secrets = ks.generate(length=20, count=3, allowed="upperletter,lowerletter,digit")

    # Six-word diceware passphrase with random separators
    phrase = ks.generate(mode="diceware", length=6, separator="random")[0]

    # Strength report
    report = ks.score(phrase)
    print(report.category.value, report.suggestions)

Modules
-------
    keysmith.generators - Character sets, patterns, diceware, pronounceable, mutation
    keysmith.wordlist   - Wordlist download, verification and cache
    keysmith.strength   - Entropy estimates and suggestions
    keysmith.clipboard  - Clipboard persistence via a detached worker

CLI Usage
---------
    python -m keysmith generate -l 20 -n 5
    python -m keysmith generate --mode diceware -l 6 --separator random
    python -m keysmith score "correct horse battery staple"
    python -m keysmith charsets
"""

__version__ = "0.4.0"
__author__ = "keysmith"

# =============================================================================
# Submodule Imports
# =============================================================================

from . import generators
from . import errors
from . import models

# =============================================================================
# Model and Error Imports
# =============================================================================

from .models import (
    RANDOM_SEPARATOR,
    Mode,
    MutationKind,
    StrengthCategory,
    GenerationRequest,
    GeneratedSecret,
    MutationSpec,
    StrengthReport,
)
from .errors import (
    KeysmithError,
    CharsetError,
    EmptyCharsetError,
    UnknownSetError,
    InsufficientUniqueError,
    PatternError,
    UnknownTokenError,
    EmptyClassError,
    IncompatibleIncludeError,
    WordlistError,
    WordlistDownloadError,
    ChecksumMismatchError,
    WordlistCacheError,
    WordlistFormatError,
    MutationError,
    EmptyInputError,
    ClipboardError,
    ClipboardUnavailableError,
    ClipboardEmptyError,
)

# =============================================================================
# Component Imports
# =============================================================================

from .generators import (
    CharacterSet,
    CharsetRegistry,
    MutationEngine,
    PasswordGenerator,
    PatternCompiler,
    PronounceableGenerator,
    SeededRandomSource,
    SystemRandomSource,
    default_registry,
)
from .strength import StrengthScorer
from .stats import BatchQuality, batch_quality
from .policy import apply_policy, list_policies


# =============================================================================
# KeySmith Main Class
# =============================================================================

class KeySmith:
    """
    Main interface for generating, mutating, scoring and copying secrets.

    Examples
    --------
        >>> ks = KeySmith()
        >>> for secret in ks.generate(length=16, count=2):
        ...     print(secret.value, ks.score(secret).category.value)
        ...     secret.wipe()
    """

    def __init__(self, wordlist_provider=None, rng=None, max_workers: int = None):
        """
        Parameters
        ----------
        wordlist_provider : WordlistProvider, optional
            Diceware wordlist source. Defaults to the shared provider,
            created on first diceware request.
        rng : RandomSource, optional
            Random source for unseeded requests. Defaults to os.urandom.
        max_workers : int, optional
            Worker pool size for batches (default from app.yaml).
        """
        self._registry = default_registry()
        self._generator = PasswordGenerator(
            registry=self._registry,
            wordlist_provider=wordlist_provider,
            rng=rng,
            max_workers=max_workers,
        )
        self._mutator = MutationEngine(rng=rng, registry=self._registry)
        self._scorer = None
        self._clipboard = None

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def registry(self) -> CharsetRegistry:
        return self._registry

    @property
    def scorer(self) -> StrengthScorer:
        if self._scorer is None:
            self._scorer = StrengthScorer()
        return self._scorer

    @property
    def clipboard(self):
        if self._clipboard is None:
            from .clipboard import ClipboardDaemon
            self._clipboard = ClipboardDaemon()
        return self._clipboard

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def generate(self, request: GenerationRequest = None, policy: str = None, **kwargs) -> list:
        """
        Generate secrets.

        Parameters
        ----------
        request : GenerationRequest, optional
            Fully built request. When omitted, one is built from kwargs
            (mode, length, count, allowed, excluded, included, ...).
        policy : str, optional
            Policy name applied to the request before generation.

        Returns
        -------
        list of GeneratedSecret
        """
        if request is None:
            request = GenerationRequest(**kwargs)
        elif kwargs:
            raise ValueError("Pass either a GenerationRequest or keyword arguments, not both")
        if policy:
            apply_policy(policy, request)
        return self._generator.generate(request)

    def mutate(self, secret, spec: MutationSpec = None, request: GenerationRequest = None):
        """
        Mutate a GeneratedSecret (wiping the input) or a plain string.

        ``request`` supplies the original charset for insert/lengthen edits.
        """
        spec = spec or MutationSpec()
        charset = self._generator.resolve_charset(request) if request is not None else None
        if isinstance(secret, GeneratedSecret):
            return self._mutator.mutate_secret(secret, spec, charset)
        return self._mutator.mutate(secret, spec, charset)

    def mutate_batch(self, secrets: list, spec: MutationSpec, request: GenerationRequest = None) -> list:
        """
        Mutate every secret of a batch, each with its own random stream.

        A seeded spec stays reproducible per index without secrets sharing
        edits. Inputs are wiped.
        """
        charset = self._generator.resolve_charset(request) if request is not None else None
        streams = self._mutator.batch_streams(spec, len(secrets))
        return [self._mutator.mutate_secret(secret, spec, charset, rng)
                for secret, rng in zip(secrets, streams)]

    def score(self, secret) -> StrengthReport:
        """Strength report for a GeneratedSecret or a plain string."""
        if isinstance(secret, GeneratedSecret):
            return self.scorer.score(secret)
        return self.scorer.estimate_text(secret)

    def copy(self, secret: GeneratedSecret):
        """Persist a secret to the clipboard; the secret is wiped afterwards."""
        self.clipboard.persist(secret)

    def stats(self, secrets) -> BatchQuality:
        values = [s.value if isinstance(s, GeneratedSecret) else s for s in secrets]
        return batch_quality(values)


__all__ = [
    '__version__',
    'KeySmith',
    # Models
    'RANDOM_SEPARATOR',
    'Mode',
    'MutationKind',
    'StrengthCategory',
    'GenerationRequest',
    'GeneratedSecret',
    'MutationSpec',
    'StrengthReport',
    'BatchQuality',
    # Components
    'CharacterSet',
    'CharsetRegistry',
    'MutationEngine',
    'PasswordGenerator',
    'PatternCompiler',
    'PronounceableGenerator',
    'SeededRandomSource',
    'SystemRandomSource',
    'StrengthScorer',
    'default_registry',
    'apply_policy',
    'list_policies',
    # Errors
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
