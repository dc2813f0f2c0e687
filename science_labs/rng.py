"""
Seeded Mulberry32 generator shared by every dataset generator and by the
acid-base colour noise. All arithmetic is masked to 32 bits so the stream is
bit-identical to the browser implementation for the same seed.
"""

import time
from typing import Iterator, List

MASK32 = 0xFFFFFFFF
INCREMENT = 0x6D2B79F5
TWO_POW_32 = 4294967296.0


def _imul(a: int, b: int) -> int:
    return (a * b) & MASK32


class Mulberry32:
    """Restartable uniform [0, 1) stream driven by a single 32-bit state word."""

    def __init__(self, seed: int):
        self.seed = int(seed) & MASK32
        self._state = self.seed

    @classmethod
    def from_time(cls) -> "Mulberry32":
        # Interactive convenience only; never used for training data.
        return cls(int(time.time() * 1000) % 1_000_000_000)

    def reset(self) -> None:
        self._state = self.seed

    def next_float(self) -> float:
        self._state = (self._state + INCREMENT) & MASK32
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & MASK32
        return ((t ^ (t >> 14)) & MASK32) / TWO_POW_32

    __call__ = next_float

    def uniform(self, low: float, high: float) -> float:
        return low + self.next_float() * (high - low)

    def take(self, count: int) -> List[float]:
        return [self.next_float() for _ in range(count)]

    def __iter__(self) -> Iterator[float]:
        while True:
            yield self.next_float()


def mulberry32(seed: int) -> Mulberry32:
    return Mulberry32(seed)
