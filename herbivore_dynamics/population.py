"""Populations of herbivores of one HFT.

  - CohortPopulation: list of HerbivoreCohort; cohorts of the same age and
    sex are merged, cohorts at or below the dead threshold are removed.
  - IndividualPopulation: list of HerbivoreIndividual in a habitat of fixed
    area; fractional offspring are carried over to the next birth event.

Entities are owned by the population's list. Merging and purging work on
list indices and rebuild the list, never deleting while iterating.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterator, List

import numpy as np

from herbivore_dynamics.config import Hft, Parameters
from herbivore_dynamics.herbivore import HerbivoreBase, HerbivoreCohort, HerbivoreIndividual
from herbivore_dynamics.types import DAYS_PER_YEAR, HerbivoreType, Sex

logger = logging.getLogger(__name__)


# Body condition of herbivores created by establishment.
ESTABLISHMENT_BODY_CONDITION = 1.0


# ═══════════════════════════════════════════════════════════════════════
# CREATION
# ═══════════════════════════════════════════════════════════════════════

class CreateHerbivoreCohort:
    """Factory for cohorts of one HFT."""

    def __init__(self, hft: Hft, params: Parameters):
        self.hft = hft
        self.params = params

    def __call__(self, ind_per_km2: float, age_years: int, sex: Sex) -> HerbivoreCohort:
        """Newborn cohort for age 0, established cohort otherwise."""
        if age_years < 0:
            raise ValueError(f"age_years must be >= 0, got {age_years}")
        if age_years == 0:
            return HerbivoreCohort(self.hft, sex, ind_per_km2)
        return HerbivoreCohort(self.hft, sex, ind_per_km2,
                               age_days=age_years * DAYS_PER_YEAR,
                               body_condition=ESTABLISHMENT_BODY_CONDITION)


class CreateHerbivoreIndividual:
    """Factory for individuals of one HFT sharing one habitat's RNG."""

    def __init__(self, hft: Hft, params: Parameters, rng: np.random.Generator):
        if params.habitat_area_km2 <= 0.0:
            raise ValueError(
                f"habitat_area_km2 must be > 0, got {params.habitat_area_km2}"
            )
        self.hft = hft
        self.params = params
        self.rng = rng

    def __call__(self, age_years: int, sex: Sex) -> HerbivoreIndividual:
        if age_years < 0:
            raise ValueError(f"age_years must be >= 0, got {age_years}")
        area = self.params.habitat_area_km2
        if age_years == 0:
            return HerbivoreIndividual(self.hft, sex, area, self.rng)
        return HerbivoreIndividual(self.hft, sex, area, self.rng,
                                   age_days=age_years * DAYS_PER_YEAR,
                                   body_condition=ESTABLISHMENT_BODY_CONDITION)


# ═══════════════════════════════════════════════════════════════════════
# POPULATIONS
# ═══════════════════════════════════════════════════════════════════════

class HerbivorePopulation(ABC):
    """Herbivores of one HFT in one habitat."""

    def __init__(self, hft: Hft):
        self.hft = hft
        self.herbivores: List[HerbivoreBase] = []

    def get_hft(self) -> Hft:
        return self.hft

    def __iter__(self) -> Iterator[HerbivoreBase]:
        return iter(self.herbivores)

    def __len__(self) -> int:
        return len(self.herbivores)

    def is_empty(self) -> bool:
        return not self.herbivores

    def get_ind_per_km2(self) -> float:
        return sum(h.get_ind_per_km2() for h in self.herbivores)

    def get_kg_per_km2(self) -> float:
        return sum(h.get_kg_per_km2() for h in self.herbivores)

    def _establishment_ages(self) -> List[int]:
        lo, hi = self.hft.establishment_age_range
        return list(range(lo, hi + 1))

    def _check_empty_for_establishment(self) -> None:
        if self.herbivores:
            raise RuntimeError(
                f"establish(): population of HFT '{self.hft.name}' is not empty"
            )

    @abstractmethod
    def establish(self) -> None:
        """Create the initial herbivores (population must be empty)."""

    @abstractmethod
    def create_offspring(self, ind_per_km2: float) -> None:
        """Add newborns totalling the given density."""

    @abstractmethod
    def purge_of_dead(self) -> float:
        """Remove dead herbivores and return the nitrogen they held (kgN/km²)."""

    def merge_same_age_cohorts(self) -> None:
        """Combine equal cohorts; individuals never merge."""


class CohortPopulation(HerbivorePopulation):
    """Population of herbivore cohorts.

    Args:
        create_cohort: Factory for new cohorts.
        dead_threshold: Density (ind/km²) at or below which a cohort counts
            as dead and is removed.
    """

    def __init__(self, create_cohort: CreateHerbivoreCohort, dead_threshold: float):
        if dead_threshold < 0.0:
            raise ValueError(f"dead_threshold must be >= 0, got {dead_threshold}")
        super().__init__(create_cohort.hft)
        self.create_cohort = create_cohort
        self.dead_threshold = dead_threshold

    def establish(self) -> None:
        """One male and one female cohort per year of the establishment age
        range, sharing the establishment density evenly."""
        self._check_empty_for_establishment()
        ages = self._establishment_ages()
        density = self.hft.establishment_density / (2 * len(ages))
        for age in ages:
            for sex in (Sex.FEMALE, Sex.MALE):
                self.herbivores.append(self.create_cohort(density, age, sex))
        logger.debug("Established %d cohorts of HFT '%s'",
                     len(self.herbivores), self.hft.name)

    def create_offspring(self, ind_per_km2: float) -> None:
        """Half males, half females; joins existing newborn cohorts."""
        if ind_per_km2 < 0.0:
            raise ValueError(f"create_offspring(): density must be >= 0, got {ind_per_km2}")
        if ind_per_km2 == 0.0:
            return
        for sex in (Sex.FEMALE, Sex.MALE):
            newborn = self.create_cohort(ind_per_km2 / 2.0, 0, sex)
            existing = self._find_cohort(0, sex)
            if existing is None:
                self.herbivores.append(newborn)
            else:
                existing.merge(newborn)
        logger.debug("Created %.4g ind/km² offspring of HFT '%s'",
                     ind_per_km2, self.hft.name)

    def _find_cohort(self, age_days: int, sex: Sex):
        for cohort in self.herbivores:
            if cohort.age_days == age_days and cohort.sex == sex and not cohort.is_dead():
                return cohort
        return None

    def merge_same_age_cohorts(self) -> None:
        """Merge every cohort into the first living one of equal age and sex."""
        n = len(self.herbivores)
        merged = 0
        for i in range(n):
            target = self.herbivores[i]
            if target.is_dead():
                continue
            for j in range(i + 1, n):
                donor = self.herbivores[j]
                if (not donor.is_dead() and donor.sex == target.sex
                        and donor.age_days == target.age_days):
                    target.merge(donor)
                    merged += 1
        if merged:
            logger.debug("Merged %d cohorts of HFT '%s'", merged, self.hft.name)

    def purge_of_dead(self) -> float:
        nitrogen = 0.0
        survivors = []
        for cohort in self.herbivores:
            if cohort.get_ind_per_km2() <= self.dead_threshold:
                nitrogen += cohort.nitrogen.reset_total()
            else:
                survivors.append(cohort)
        removed = len(self.herbivores) - len(survivors)
        self.herbivores = survivors
        if removed:
            logger.debug("Removed %d dead cohorts of HFT '%s'", removed, self.hft.name)
        return nitrogen


class IndividualPopulation(HerbivorePopulation):
    """Population of individual herbivores.

    Args:
        create_individual: Factory for new individuals.
    """

    def __init__(self, create_individual: CreateHerbivoreIndividual):
        super().__init__(create_individual.hft)
        self.create_individual = create_individual
        self.area_km2 = create_individual.params.habitat_area_km2
        self.offspring_carry_over = 0.0   # fractional newborns
        self._next_sex = Sex.FEMALE

    def _toggle_sex(self) -> Sex:
        sex = self._next_sex
        self._next_sex = Sex.MALE if sex == Sex.FEMALE else Sex.FEMALE
        return sex

    def establish(self) -> None:
        """Round establishment density × area to whole individuals.

        Individuals are created in female/male pairs, one pair per age of
        the establishment range in turn, so sexes alternate and every age
        gets both sexes once the count allows it."""
        self._check_empty_for_establishment()
        ages = self._establishment_ages()
        count = int(round(self.hft.establishment_density * self.area_km2))
        for k in range(count):
            age = ages[(k // 2) % len(ages)]
            self.herbivores.append(self.create_individual(age, self._toggle_sex()))
        logger.debug("Established %d individuals of HFT '%s'", count, self.hft.name)

    def create_offspring(self, ind_per_km2: float) -> None:
        if ind_per_km2 < 0.0:
            raise ValueError(f"create_offspring(): density must be >= 0, got {ind_per_km2}")
        total = ind_per_km2 * self.area_km2 + self.offspring_carry_over
        count = int(total)
        self.offspring_carry_over = total - count
        for _ in range(count):
            self.herbivores.append(self.create_individual(0, self._toggle_sex()))

    def purge_of_dead(self) -> float:
        nitrogen = 0.0
        survivors = []
        for individual in self.herbivores:
            if individual.is_dead():
                nitrogen += individual.nitrogen.reset_total()
            else:
                survivors.append(individual)
        self.herbivores = survivors
        return nitrogen


def create_population(hft: Hft, params: Parameters,
                      rng: np.random.Generator) -> HerbivorePopulation:
    """Population matching the configured herbivore representation.

    Raises:
        RuntimeError: If the herbivore type is not implemented.
    """
    if params.herbivore_type == HerbivoreType.COHORT:
        return CohortPopulation(CreateHerbivoreCohort(hft, params),
                                params.dead_herbivore_threshold)
    if params.herbivore_type == HerbivoreType.INDIVIDUAL:
        return IndividualPopulation(CreateHerbivoreIndividual(hft, params, rng))
    raise RuntimeError(f"Herbivore type not implemented: {params.herbivore_type}")
