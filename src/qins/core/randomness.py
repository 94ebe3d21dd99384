from __future__ import annotations

import hashlib
import random
from typing import Any, Sequence

from qins.contracts import RandomSource


class PythonRandomSource(RandomSource):
    """Injected randomness source for host rolls, sampling and test determinism."""

    def __init__(self, seed: int | None = None) -> None:
        self._seed = seed
        self._rng = random.Random(seed)
        self._saved_states: list[tuple[Any, ...]] = []

    def rand(self) -> float:
        return self._rng.random()

    def randint(self, a: int, b: int) -> int:
        return self._rng.randint(a, b)

    def gaussian(self) -> float:
        return self._rng.gauss(0.0, 1.0)

    def choice(self, items: Sequence[Any]) -> Any:
        if not items:
            raise ValueError("choice items must not be empty")
        return self._rng.choice(items)

    def spawn(self, substream_id: str) -> RandomSource:
        seed = self._seed
        if seed is None:
            return PythonRandomSource(seed=None)
        return PythonRandomSource(seed=derive_seed(seed, substream_id))

    def push_state(self, seed: int) -> None:
        self._saved_states.append(self._rng.getstate())
        self._rng.seed(seed)

    def pop_state(self) -> None:
        if not self._saved_states:
            raise RuntimeError("pop_state called without a matching push_state")
        self._rng.setstate(self._saved_states.pop())

    @property
    def depth(self) -> int:
        return len(self._saved_states)


def derive_seed(*parts: object) -> int:
    text = ":".join(str(p) for p in parts)
    digest = hashlib.sha256(text.encode("utf-8", "ignore")).hexdigest()
    return int(digest[:16], 16)


def gaussian_asymmetric(rng: RandomSource, mean: float, lower_width: float, upper_width: float) -> float:
    z = rng.gaussian()
    if z <= 0:
        return mean + z * lower_width
    return mean + z * upper_width


def gameplay_random() -> PythonRandomSource:
    return PythonRandomSource(seed=None)


def seeded_random(seed: int) -> PythonRandomSource:
    return PythonRandomSource(seed=seed)
