"""
Random source for the BB84 simulation.

Basis symbols:
  Rectilinear  '+'
  Diagonal     '×'

This is a general-purpose PRNG, not a cryptographic one.  The simulation only
needs uniform, independent draws; the encryption demo never uses it for key
material.
"""
import random
from typing import List, Optional, Sequence, TypeVar

RECTILINEAR = '+'
DIAGONAL = '×'
BASES = (RECTILINEAR, DIAGONAL)

T = TypeVar("T")


class RandomSource:
    """Uniform bits and bases drawn from a seedable ``random.Random``."""

    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed)

    def random_bit(self) -> int:
        return self._rng.randint(0, 1)

    def random_basis(self) -> str:
        return self._rng.choice(BASES)

    def choose_sample(self, population: Sequence[T], k: int) -> List[T]:
        """Returns *k* distinct items of *population* (all of it if k is larger)."""
        k = max(0, min(k, len(population)))
        return self._rng.sample(list(population), k)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


_default_source = RandomSource()


def default_source() -> RandomSource:
    """The process-wide source used when a caller does not supply one."""
    return _default_source
