#!/usr/bin/env python3
"""
Deterministic random streams and id factories.

Every stochastic step in the simulation draws from a stream created here, so
the same seed string always reproduces the same galaxy, opinions and events.
"""
from __future__ import annotations

import hashlib
import itertools
import uuid
from typing import Callable

RandomStream = Callable[[], float]
IdFactory = Callable[[str], str]

MASK32 = 0xFFFFFFFF
_GOLDEN = 0x6D2B79F5


def string_to_seed(value: str) -> int:
    return sum(ord(char) for char in value)


def derive_seed(*parts: object) -> str:
    """
    Stable sub-seed for a (seed, purpose, tick) tuple. The checksum seeding of
    create_random is order-insensitive, so parts are hashed first.
    """
    joined = ":".join(str(part) for part in parts)
    return hashlib.sha256(joined.encode("utf-8")).hexdigest()


def _imul(a: int, b: int) -> int:
    return (a * b) & MASK32


def create_random(seed: str) -> RandomStream:
    """
    Mulberry32 stream seeded by the character-code checksum of `seed`.
    Returns floats in [0, 1).
    """
    state = (string_to_seed(seed) + _GOLDEN) & MASK32

    def next_float() -> float:
        nonlocal state
        state = (state + _GOLDEN) & MASK32
        x = _imul(state ^ (state >> 15), 1 | state)
        x ^= (x + _imul(x ^ (x >> 7), 61 | x)) & MASK32
        return ((x ^ (x >> 14)) & MASK32) / 4294967296

    return next_float


def create_id_factory(seed: str) -> IdFactory:
    """Ids of the form `<prefix>-<10 hex>`, reproducible for the same seed."""
    counter = itertools.count()

    def next_id(prefix: str) -> str:
        digest = hashlib.sha256(f"{seed}:{next(counter)}".encode("utf-8"))
        return f"{prefix}-{digest.hexdigest()[:10]}"

    return next_id


def uuid_id_factory(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4()}"
