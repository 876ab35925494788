from __future__ import annotations

import hashlib
import json
import random
from typing import Any, Sequence, TypeVar

from storycast.contracts import RandomSource

T = TypeVar("T")


def derive_seed(*parts: object) -> int:
    """Stable 64-bit seed for a tuple of key parts; part boundaries are preserved."""
    key = json.dumps([str(part) for part in parts], separators=(",", ":"))
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
    return int(digest[:16], 16)


class PythonRandomSource(RandomSource):
    """Seeded randomness source; substreams are derived by hashing, never shared."""

    def __init__(self, seed: int) -> None:
        self._seed = seed
        self._rng = random.Random(seed)

    @property
    def seed(self) -> int:
        return self._seed

    def rand(self) -> float:
        return self._rng.random()

    def randint(self, a: int, b: int) -> int:
        return self._rng.randint(a, b)

    def choice(self, items: Sequence[Any]) -> Any:
        if not items:
            raise ValueError("choice items must not be empty")
        return self._rng.choice(items)

    def spawn(self, substream_id: str) -> PythonRandomSource:
        return PythonRandomSource(seed=derive_seed(self._seed, substream_id))


def seeded_random(seed: int) -> PythonRandomSource:
    return PythonRandomSource(seed=seed)


class TieBreakSource:
    """Per-resolution tie breaker keyed by (world seed, storylet, choice).

    ``draw`` is a pure function of the key, the role id and the tied list: every
    call spawns its own substream, so the order of draws within a resolution
    never changes the result.
    """

    def __init__(self, world_seed: int, storylet_id: str, choice_id: str) -> None:
        self.world_seed = world_seed
        self.storylet_id = storylet_id
        self.choice_id = choice_id
        self._root = PythonRandomSource(seed=derive_seed(world_seed, storylet_id, choice_id))

    def draw(self, role_id: str, tied: Sequence[T]) -> T:
        if not tied:
            raise ValueError(f"no tied candidates to draw from for role '{role_id}'")
        if len(tied) == 1:
            return tied[0]
        return self._root.spawn(f"role:{role_id}").choice(tied)
