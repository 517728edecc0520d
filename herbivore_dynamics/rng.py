"""Seeded random streams for individual-based herbivores.

Each habitat gets its own numpy Generator, spawned from one master
SeedSequence. Stream i is the i-th spawned child of the master seed, so:
  - habitats draw independently of each other
  - the same master seed replays bit-exactly
  - adding habitats leaves the streams of existing habitats unchanged

Only HerbivoreIndividual draws random numbers (its death event); cohorts
are deterministic.
"""

from __future__ import annotations

from typing import Dict

import numpy as np


def create_habitat_rng(master_seed: int, habitat_id: int) -> np.random.Generator:
    """Stream of one habitat, derived directly from the master seed.

    Equal to the habitat's entry in create_rng_hierarchy(), which makes it
    usable for habitats added after the hierarchy was built.
    """
    if master_seed < 0:
        raise ValueError(f"master_seed must be non-negative, got {master_seed}")
    if habitat_id < 0:
        raise ValueError(f"habitat_id must be non-negative, got {habitat_id}")
    seed_seq = np.random.SeedSequence(master_seed, spawn_key=(habitat_id,))
    return np.random.Generator(np.random.PCG64(seed_seq))


def create_rng_hierarchy(
    master_seed: int,
    n_habitats: int,
) -> Dict[str, np.random.Generator]:
    """Streams 'habitat_0' .. 'habitat_{n-1}' for the initial habitats.

    Example:
        >>> rngs = create_rng_hierarchy(42, n_habitats=3)
        >>> rngs['habitat_0'].random()  # reproducible
    """
    if master_seed < 0:
        raise ValueError(f"master_seed must be non-negative, got {master_seed}")
    if n_habitats < 0:
        raise ValueError(f"n_habitats must be non-negative, got {n_habitats}")

    children = np.random.SeedSequence(master_seed).spawn(n_habitats)
    return {
        f'habitat_{i}': np.random.Generator(np.random.PCG64(child))
        for i, child in enumerate(children)
    }


def get_habitat_rng(
    rngs: Dict[str, np.random.Generator],
    habitat_id: int,
) -> np.random.Generator:
    """Get the RNG stream for a specific habitat.

    Raises:
        KeyError: If habitat_id doesn't have a stream.
    """
    key = f'habitat_{habitat_id}'
    if key not in rngs:
        raise KeyError(
            f"No RNG stream for habitat {habitat_id}. Available: {sorted(rngs)}"
        )
    return rngs[key]
