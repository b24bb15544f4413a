#!/usr/bin/env python3
"""
Batch Statistics
================
Distribution of per-secret Shannon entropy across a batch. Useful to spot a
misconfigured charset (every value scoring the same low entropy) at a glance.
"""

import math
import statistics
from collections import Counter
from dataclasses import dataclass
from typing import Iterable


@dataclass
class BatchQuality:
    """Moments of the per-secret Shannon entropy."""
    count: int
    mean: float
    variance: float
    skewness: float
    kurtosis: float


def shannon_entropy(value: str) -> float:
    """Bits per grapheme of the value's own grapheme frequencies."""
    if not value:
        return 0.0
    length = len(value)
    return -sum((n / length) * math.log2(n / length) for n in Counter(value).values())


def batch_quality(values: Iterable[str]) -> BatchQuality:
    """
    Mean, population variance, skewness and excess kurtosis.

    A batch with zero variance reports skewness 0 and kurtosis -3.
    """
    entropies = [shannon_entropy(v) for v in values]
    n = len(entropies)
    if n == 0:
        return BatchQuality(count=0, mean=0.0, variance=0.0, skewness=0.0, kurtosis=0.0)

    mean = statistics.fmean(entropies)
    variance = statistics.pvariance(entropies, mu=mean)
    if variance == 0:
        return BatchQuality(count=n, mean=mean, variance=0.0, skewness=0.0, kurtosis=-3.0)

    skewness = sum((x - mean) ** 3 for x in entropies) / (n * variance ** 1.5)
    kurtosis = sum((x - mean) ** 4 for x in entropies) / (n * variance ** 2) - 3.0
    return BatchQuality(count=n, mean=mean, variance=variance, skewness=skewness, kurtosis=kurtosis)


__all__ = [
    'BatchQuality',
    'shannon_entropy',
    'batch_quality',
]
