"""Sharing of a habitat's forage among competing herbivores.

DistributeForageEqually: if the total demand for a forage type can be met,
every herbivore gets its demand. Otherwise every herbivore gets the same
fraction of its demand, the fraction being supply / total demand.

FeedHerbivores collects demands, distributes, and lets every herbivore eat.
"""

from __future__ import annotations

from typing import Iterable, List, Sequence

from herbivore_dynamics.forage import ForageValues, HabitatForage
from herbivore_dynamics.herbivore import HerbivoreBase
from herbivore_dynamics.population import HerbivorePopulation
from herbivore_dynamics.types import ForageDistributionAlgorithm


class DistributeForageEqually:
    """Proportional rationing of available forage."""

    def __call__(self, available: ForageValues,
                 demands: Sequence[ForageValues]) -> List[ForageValues]:
        """Allotment per herbivore (kgDM/km²), in the order of `demands`.

        The sum of allotments never exceeds `available`.
        """
        total_demand = ForageValues(0.0)
        for demand in demands:
            total_demand = total_demand + demand

        # Fraction of each demand that is served, per forage type.
        served = ForageValues(1.0)
        for ft, total in total_demand:
            if total > available[ft]:
                served.set(ft, available[ft] / total)

        return [demand * served for demand in demands]


def create_distribute_forage(algorithm: ForageDistributionAlgorithm):
    """Distribution functor for the configured algorithm.

    Raises:
        RuntimeError: If the algorithm is not implemented.
    """
    if algorithm == ForageDistributionAlgorithm.EQUALLY:
        return DistributeForageEqually()
    raise RuntimeError(f"Forage distribution algorithm not implemented: {algorithm}")


class FeedHerbivores:
    """Feed all herbivores of a habitat for one day.

    Args:
        distribute: Callable (available, demands) -> allotments.
    """

    def __init__(self, distribute):
        if distribute is None:
            raise ValueError("FeedHerbivores: distribute must not be None")
        self.distribute = distribute

    def __call__(self, available_forage: HabitatForage,
                 populations: Iterable[HerbivorePopulation]) -> ForageValues:
        """Let every living herbivore eat its allotment.

        Nitrogen is eaten in proportion to forage mass.

        Returns:
            Total eaten forage (kgDM/km²).
        """
        herbivores: List[HerbivoreBase] = [
            h for population in populations for h in population if not h.is_dead()
        ]
        if not herbivores:
            return ForageValues(0.0)

        available_mass = available_forage.get_mass()
        demands = [h.get_forage_demands(available_forage) for h in herbivores]
        allotments = self.distribute(available_mass, demands)

        digestibility = available_forage.get_digestibility()
        nitrogen_per_mass = available_forage.get_nitrogen_mass().divide_safely(
            available_mass, 0.0)

        eaten = ForageValues(0.0)
        for herbivore, portion in zip(herbivores, allotments):
            herbivore.eat(portion, digestibility, portion * nitrogen_per_mass)
            eaten = eaten + portion
        return eaten
