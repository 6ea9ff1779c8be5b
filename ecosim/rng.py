"""
RNG utilities for the ecosystem simulation.

All randomness flows through a numpy.random.Generator(PCG64) owned by the
Ecosystem. A configured seed is hashed with SHA256 together with a stream
name so that the same seed reproduces a run on the same platform; without
a seed every run draws fresh OS entropy.
"""

import hashlib
import numpy as np
from typing import Any, List, Optional, Sequence, TypeVar

T = TypeVar('T')


def make_seed(*components: Any) -> int:
    """
    Generate deterministic 64-bit seed from hierarchical components.

    Uses SHA256 to hash components into stable seed value.

    Args:
        *components: Seed components (world seed, stream name, etc.)

    Returns:
        64-bit integer seed for numpy RNG

    Example:
        world_seed = make_seed(config.simulation.seed, "ecosystem")
    """
    # Join all components with colon separator
    hash_input = ":".join(str(c) for c in components)

    # SHA256 hash and extract 64-bit integer
    hash_bytes = hashlib.sha256(hash_input.encode('utf-8')).digest()
    seed = int.from_bytes(hash_bytes[:8], byteorder='big')

    return seed


def make_rng(seed: Optional[int] = None, stream: str = "ecosystem") -> np.random.Generator:
    """
    Build the simulation Generator.

    Args:
        seed: World seed, or None for OS entropy
        stream: Stream name mixed into the seed

    Returns:
        numpy Generator backed by PCG64
    """
    if seed is None:
        return np.random.Generator(np.random.PCG64())
    return np.random.Generator(np.random.PCG64(make_seed(seed, stream)))


def random_choice(rng: np.random.Generator, items: Sequence[T]) -> Optional[T]:
    """Uniformly pick one element, or None for an empty sequence."""
    if not items:
        return None
    return items[int(rng.integers(len(items)))]


def shuffled(rng: np.random.Generator, items: Sequence[T]) -> List[T]:
    """Return a uniformly permuted copy of items."""
    order = rng.permutation(len(items))
    return [items[i] for i in order]
