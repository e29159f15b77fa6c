"""Expiry decisions for cached responses.

A :class:`~srcomapi.models.CacheTimeout` describes an age range
``[low, high)``.  Inside that range an entry survives a read with a
probability that falls linearly from 1 at ``low`` to 0 at ``high``; this
spreads refetches of a popular URL over time instead of having every
caller miss at the same instant.

The decision is split into a pure :func:`probability` and a draw from an
injectable :class:`random.Random` so tests can pin the outcome.
"""

from __future__ import annotations

import random
from typing import Optional

from srcomapi.models import CacheTimeout


def probability(age: float, low: float, high: float) -> float:
    """Chance that an entry of the given *age* is still considered valid.

    Returns 1.0 below *low*, 0.0 at or above *high*, and
    ``(high - age) / (high - low)`` in between.
    """
    if age < low:
        return 1.0
    if age >= high:
        return 0.0
    return (high - age) / (high - low)


def is_valid(age: float, timeout: Optional[CacheTimeout], rng: random.Random) -> bool:
    """Decide whether an entry of *age* seconds may be served.

    ``timeout=None`` means entries never expire.  A negative *age* (an
    entry stamped in the future, e.g. after the clock stepped back) is
    invalid under any timeout.  The random source is only consulted
    strictly inside the ``[low, high)`` range, so a fixed timeout
    (``low == high``) is fully deterministic.
    """
    if timeout is None:
        return True
    if age < 0:
        return False
    p = probability(age, timeout.low, timeout.high)
    if p >= 1.0:
        return True
    if p <= 0.0:
        return False
    return rng.random() < p


def is_definitely_stale(age: float, timeout: Optional[CacheTimeout]) -> bool:
    """True once *age* reached the upper bound; used when loading from disk.

    Entries from the future are stale as well, matching :func:`is_valid`.
    """
    return timeout is not None and (age < 0 or age >= timeout.high)
