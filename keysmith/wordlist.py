#!/usr/bin/env python3
"""
Diceware Wordlist Provider
==========================
Provides the EFF long wordlist for passphrase generation.

Resolution order:
1. In-process copy (already verified)
2. Cache file with a matching SHA-256
3. Download over HTTPS, verify, persist atomically, return

The checksum is pinned in app.yaml (with a compiled-in fallback) and is never
fetched remotely. Content that fails verification is never used and never
written to the cache.
"""

import os
import ssl
import time
import hashlib
import tempfile
import itertools
import http.client
from pathlib import Path
from dataclasses import dataclass
from typing import Optional, Tuple
from urllib.parse import urlsplit
import logging

from keysmith.errors import (
    ChecksumMismatchError,
    WordlistCacheError,
    WordlistDownloadError,
    WordlistFormatError,
)
from keysmith.parallel import RetryHandler
from keysmith.settings import get_setting, require_setting, resolve_path

logger = logging.getLogger(__name__)

EFF_LARGE_WORDLIST_URL = "https://www.eff.org/files/2016/07/18/eff_large_wordlist.txt"
EFF_LARGE_WORDLIST_SHA256 = "addd35536511597a02fa0a9ff1e5284677b8883b83e986e43f15a3db996b903e"
DICE_FACES = "123456"
MAX_REDIRECTS = 5
USER_AGENT = "keysmith-wordlist/1"


class TransientHTTPError(Exception):
    """Server side failure worth retrying (5xx, 429)."""

    def __init__(self, status: int, reason: str):
        self.status = status
        super().__init__(f"HTTP {status} {reason}")


@dataclass(frozen=True)
class Wordlist:
    """Verified diceware wordlist."""
    source: str
    checksum: str
    words: Tuple[str, ...]
    cache_path: Optional[Path]
    loaded_at: float
    dice_digits: int = 5

    def __len__(self) -> int:
        return len(self.words)

    def __getitem__(self, index: int) -> str:
        return self.words[index]

    def lookup(self, roll: str) -> str:
        """Word for a dice roll such as ``"11111"`` (first) or ``"66666"`` (last)."""
        roll = str(roll).strip()
        if len(roll) != self.dice_digits or any(d not in DICE_FACES for d in roll):
            raise ValueError(f"Dice roll must be {self.dice_digits} digits from 1-6, got '{roll}'")
        index = 0
        for d in roll:
            index = index * 6 + (int(d) - 1)
        return self.words[index]


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def parse_wordlist(text: str, expected_entries: int = 7776, dice_digits: int = 5) -> Tuple[str, ...]:
    """
    Parse ``<roll>\\t<word>`` lines.

    Rolls must enumerate every ``dice_digits`` base-6 roll in order, so the
    word at index i corresponds to roll number i.
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) != expected_entries:
        raise WordlistFormatError(f"Expected {expected_entries} entries, found {len(lines)}")

    expected_rolls = (''.join(r) for r in itertools.product(DICE_FACES, repeat=dice_digits))
    words = []
    for lineno, (line, expected_roll) in enumerate(zip(lines, expected_rolls), start=1):
        roll, sep, word = line.partition('\t')
        word = word.strip()
        if not sep or not word:
            raise WordlistFormatError(f"Line {lineno} is not '<roll>\\t<word>': {line!r}")
        if roll.strip() != expected_roll:
            raise WordlistFormatError(f"Line {lineno}: expected roll {expected_roll}, found {roll!r}")
        words.append(word)
    return tuple(words)


class WordlistProvider:
    """
    Loads, downloads, verifies and caches the diceware wordlist.

    Usage:
        provider = WordlistProvider()
        wordlist = provider.ensure_loaded()
        print(len(wordlist), wordlist.lookup("11111"))
    """

    def __init__(self,
                 source_url: Optional[str] = None,
                 expected_checksum: Optional[str] = None,
                 cache_dir: Optional[str] = None,
                 cache_filename: Optional[str] = None,
                 timeout: Optional[float] = None,
                 max_attempts: Optional[int] = None,
                 expected_entries: Optional[int] = None,
                 retry_handler: Optional[RetryHandler] = None):
        """
        Initialize provider.

        Args:
            source_url: HTTPS URL of the wordlist
            expected_checksum: Pinned SHA-256 hex digest
            cache_dir: Directory holding the cached wordlist
            cache_filename: Versioned cache file name
            timeout: Per-request timeout (seconds)
            max_attempts: Total download attempts for transient failures
            expected_entries: Number of words in the list
            retry_handler: Custom retry handler (overrides max_attempts)
        """
        cfg = get_setting("wordlist", {}) or {}
        self.source_url = source_url or cfg.get("source_url") or EFF_LARGE_WORDLIST_URL
        self.expected_checksum = (expected_checksum or cfg.get("sha256") or EFF_LARGE_WORDLIST_SHA256).lower()
        self.cache_filename = cache_filename or require_setting("wordlist.cache_filename")
        self.timeout = timeout if timeout is not None else require_setting("wordlist.request_timeout_seconds")
        self.expected_entries = (expected_entries if expected_entries is not None
                                 else require_setting("wordlist.expected_entries"))
        self.dice_digits = cfg.get("dice_digits", 5)

        if retry_handler is None:
            if max_attempts is None:
                max_attempts = require_setting("wordlist.max_attempts")
            retry_handler = RetryHandler(max_retries=max(0, max_attempts - 1))
        self.retry_handler = retry_handler

        if cache_dir:
            self.cache_dir = resolve_path(cache_dir)
        else:
            self.cache_dir = resolve_path(cfg.get("cache_dir", "~/.keysmith"))

        self._loaded: Optional[Wordlist] = None

    def cache_path(self, cache_dir=None) -> Path:
        base = resolve_path(cache_dir) if cache_dir else self.cache_dir
        return base / self.cache_filename

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def ensure_loaded(self, cache_dir=None) -> Wordlist:
        """
        Return a verified wordlist, downloading it if necessary.

        Raises:
            WordlistDownloadError: network failed after all attempts
            ChecksumMismatchError: downloaded content does not match the pin
            WordlistCacheError: cache could not be written
            WordlistFormatError: verified content is not a diceware list
        """
        path = self.cache_path(cache_dir)
        if self._loaded is not None and self._loaded.cache_path == path:
            return self._loaded

        wordlist = self._load_from_cache(path)
        if wordlist is None:
            body = self._download()
            checksum = sha256_hex(body)
            if checksum != self.expected_checksum:
                raise ChecksumMismatchError(self.expected_checksum, checksum, self.source_url)
            words = self._parse(body)
            self._save_to_cache(path, body)
            wordlist = self._build(words, checksum, path)
            logger.info(f"Wordlist downloaded to {path}")

        self._loaded = wordlist
        return wordlist

    # -------------------------------------------------------------------------
    # Cache
    # -------------------------------------------------------------------------

    def _build(self, words: Tuple[str, ...], checksum: str, path: Path) -> Wordlist:
        return Wordlist(
            source=self.source_url,
            checksum=checksum,
            words=words,
            cache_path=path,
            loaded_at=time.time(),
            dice_digits=self.dice_digits,
        )

    def _parse(self, body: bytes) -> Tuple[str, ...]:
        try:
            text = body.decode('utf-8')
        except UnicodeDecodeError as e:
            raise WordlistFormatError(f"Wordlist is not valid UTF-8: {e}") from e
        return parse_wordlist(text, self.expected_entries, self.dice_digits)

    def _load_from_cache(self, path: Path) -> Optional[Wordlist]:
        """Load cached wordlist if present and its checksum matches."""
        if not path.exists():
            return None
        try:
            body = path.read_bytes()
        except OSError as e:
            logger.warning(f"Could not read cached wordlist {path}: {e}")
            return None

        checksum = sha256_hex(body)
        if checksum != self.expected_checksum:
            logger.warning(f"Discarding cached wordlist {path}: checksum mismatch")
            return None
        try:
            words = self._parse(body)
        except WordlistFormatError as e:
            logger.warning(f"Discarding cached wordlist {path}: {e}")
            return None

        logger.debug(f"Loaded wordlist from cache {path}")
        return self._build(words, checksum, path)

    def _save_to_cache(self, path: Path, body: bytes):
        """Write via a temp file in the same directory, then rename over the target."""
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WordlistCacheError(f"Cannot create cache directory {path.parent}: {e}") from e

        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile('wb', dir=path.parent, prefix='.wordlist-',
                                             suffix='.tmp', delete=False) as tmp:
                tmp_name = tmp.name
                tmp.write(body)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise WordlistCacheError(f"Cannot write wordlist cache {path}: {e}") from e

    # -------------------------------------------------------------------------
    # Network
    # -------------------------------------------------------------------------

    def _download(self) -> bytes:
        logger.info(f"Downloading wordlist from {self.source_url}")
        try:
            return self.retry_handler.execute(
                self._fetch,
                retryable_exceptions=(OSError, http.client.HTTPException, TransientHTTPError),
            )
        except (OSError, http.client.HTTPException, TransientHTTPError) as e:
            raise WordlistDownloadError(self.source_url, self.retry_handler.max_attempts, str(e)) from e

    def _fetch(self) -> bytes:
        """Single download attempt, following a bounded number of redirects."""
        url = self.source_url
        for _ in range(MAX_REDIRECTS + 1):
            parts = urlsplit(url)
            if parts.scheme != 'https':
                raise WordlistDownloadError(url, 1, "only https sources are allowed")

            conn = http.client.HTTPSConnection(
                parts.hostname, parts.port or 443,
                timeout=self.timeout,
                context=ssl.create_default_context(),
            )
            try:
                path = parts.path or '/'
                if parts.query:
                    path += '?' + parts.query
                conn.request("GET", path, headers={"User-Agent": USER_AGENT})
                response = conn.getresponse()
                status = response.status

                if status == 200:
                    body = response.read()
                    if not body:
                        raise WordlistDownloadError(url, 1, "downloaded wordlist was empty")
                    return body
                if status in (301, 302, 303, 307, 308):
                    location = response.getheader('Location')
                    if not location:
                        raise WordlistDownloadError(url, 1, f"redirect {status} without Location")
                    url = location if '://' in location else f"{parts.scheme}://{parts.netloc}{location}"
                    continue
                if status == 429 or status >= 500:
                    raise TransientHTTPError(status, response.reason)
                raise WordlistDownloadError(url, 1, f"HTTP {status} {response.reason}")
            finally:
                conn.close()

        raise WordlistDownloadError(self.source_url, 1, "too many redirects")


# Singleton
_default_provider = None

def get_wordlist_provider() -> WordlistProvider:
    """Get default provider instance"""
    global _default_provider
    if _default_provider is None:
        _default_provider = WordlistProvider()
    return _default_provider


__all__ = [
    'EFF_LARGE_WORDLIST_URL',
    'EFF_LARGE_WORDLIST_SHA256',
    'Wordlist',
    'WordlistProvider',
    'TransientHTTPError',
    'parse_wordlist',
    'sha256_hex',
    'get_wordlist_provider',
]
