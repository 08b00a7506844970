"""Build the search-term queue and split it across workers."""
from __future__ import annotations

import random
from typing import Iterable, List, Optional, Sequence, TypeVar

from .models import SearchTerm

T = TypeVar("T")


def fisher_yates_shuffle(items: Iterable[T], rng: Optional[random.Random] = None) -> List[T]:
    """Return a uniformly shuffled copy of ``items``."""

    rng = rng or random.Random()
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def _dedupe(values: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(value.strip() for value in values if value and value.strip()))


def build_work_queue(
    locations: Iterable[str],
    categories: Iterable[str],
    rng: Optional[random.Random] = None,
) -> List[SearchTerm]:
    """Cross shuffled locations with shuffled categories, location-major."""

    rng = rng or random.Random()
    shuffled_locations = fisher_yates_shuffle(_dedupe(locations), rng)
    shuffled_categories = fisher_yates_shuffle(_dedupe(categories), rng)
    return [
        SearchTerm(location=location, category=category)
        for location in shuffled_locations
        for category in shuffled_categories
    ]


def partition(items: Sequence[T], workers: int) -> List[List[T]]:
    """Deal ``items`` round-robin into ``workers`` buckets."""

    if workers < 1:
        raise ValueError(f"Worker count must be at least 1, got {workers}")
    buckets: List[List[T]] = [[] for _ in range(workers)]
    for index, item in enumerate(items):
        buckets[index % workers].append(item)
    return buckets


def distribute(
    locations: Iterable[str],
    categories: Iterable[str],
    workers: int,
    rng: Optional[random.Random] = None,
) -> List[List[SearchTerm]]:
    return partition(build_work_queue(locations, categories, rng), workers)


__all__ = ["build_work_queue", "distribute", "fisher_yates_shuffle", "partition"]
