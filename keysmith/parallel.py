#!/usr/bin/env python3
"""
Parallel Infrastructure
=======================
Bounded worker pool for batch generation and retry with exponential backoff
for network operations.

Usage:
    from keysmith.parallel import RetryHandler, run_indexed

    secrets = run_indexed(lambda i: make_secret(i), count=20, max_workers=4)

    retry = RetryHandler(max_retries=3, base_delay=0.5)
    body = retry.execute(fetch, retryable_exceptions=(OSError,))
"""

import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Optional
import logging

from keysmith.settings import get_setting, require_setting
logger = logging.getLogger(__name__)

# =============================================================================
# Retry Logic
# =============================================================================

class RetryHandler:
    """
    Re-runs a flaky call with a clamped exponential backoff between tries.

    Used around the wordlist download, where a timeout or a 5xx answer is
    worth another attempt but a 404 or a checksum failure is not. Only
    exceptions listed in ``retryable_exceptions`` are retried; anything else
    propagates on the first occurrence.
    """

    # constructor argument -> parallel.* key in app.yaml
    SETTING_KEYS = {
        'max_retries': 'max_retries',
        'base_delay': 'retry_base_delay',
        'max_delay': 'retry_max_delay',
        'exponential_base': 'retry_exponential_base',
    }

    def __init__(self,
                 max_retries: Optional[int] = None,
                 base_delay: Optional[float] = None,
                 max_delay: Optional[float] = None,
                 exponential_base: Optional[float] = None,
                 sleep: Callable[[float], None] = None):
        """
        Args:
            max_retries: Extra attempts after the first one
            base_delay: Pause after the first failure (seconds)
            max_delay: Upper bound for any single pause (seconds)
            exponential_base: Growth factor between pauses
            sleep: Sleep function (tests pass a recorder)

        Unset arguments come from the ``parallel`` section of app.yaml.
        """
        given = {
            'max_retries': max_retries,
            'base_delay': base_delay,
            'max_delay': max_delay,
            'exponential_base': exponential_base,
        }
        for name, key in self.SETTING_KEYS.items():
            if given[name] is None:
                given[name] = require_setting(f"parallel.{key}")
        if given['max_retries'] < 0:
            raise ValueError("max_retries cannot be negative")

        self.max_retries = int(given['max_retries'])
        self.base_delay = given['base_delay']
        self.max_delay = given['max_delay']
        self.exponential_base = given['exponential_base']
        self._sleep = sleep or time.sleep

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, failures: int) -> float:
        """Pause after ``failures`` consecutive failed attempts (1-based)."""
        return min(self.base_delay * self.exponential_base ** (failures - 1), self.max_delay)

    def execute(self, func: Callable[[], Any], retryable_exceptions: tuple = (Exception,)) -> Any:
        """
        Call ``func()`` until it succeeds or the attempts run out.

        Raises:
            The exception of the final attempt
        """
        failures = 0
        while True:
            try:
                return func()
            except retryable_exceptions as e:
                failures += 1
                if failures >= self.max_attempts:
                    raise
                delay = self.delay_for(failures)
                logger.debug(f"Attempt {failures}/{self.max_attempts} failed ({e}); retrying in {delay:.2f}s")
                self._sleep(delay)


# =============================================================================
# Worker Pool
# =============================================================================

def run_indexed(func: Callable[[int], Any],
                count: int,
                max_workers: Optional[int] = None,
                min_batch_for_pool: Optional[int] = None) -> List[Any]:
    """
    Run ``func(i)`` for i in range(count) and return results in index order.

    Small batches run inline. Larger ones use a bounded thread pool; the
    first failure is re-raised after the pool shuts down, so callers never
    see a partial result list.
    """
    if max_workers is None:
        max_workers = require_setting("parallel.workers")
    if min_batch_for_pool is None:
        min_batch_for_pool = get_setting("parallel.min_batch_for_pool", 1)

    if count <= 0:
        return []
    if max_workers <= 1 or count < min_batch_for_pool:
        return [func(i) for i in range(count)]

    with ThreadPoolExecutor(max_workers=min(max_workers, count)) as executor:
        futures = [executor.submit(func, i) for i in range(count)]
        # result() re-raises the worker's exception; iterate in index order
        return [future.result() for future in futures]

__all__ = [
    'RetryHandler',
    'run_indexed',
]
