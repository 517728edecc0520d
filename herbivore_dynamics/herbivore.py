"""Herbivore entities: cohorts and individuals.

HerbivoreBase implements the daily algorithm shared by both variants:

    simulate_day()  →  get_forage_demands()  →  eat()

Subclasses only define how many individuals per km² they represent and how
a death probability is applied:
  - HerbivoreCohort: density is reduced by the probability (deterministic)
  - HerbivoreIndividual: one Bernoulli draw flips the individual to dead

Growth: lean body mass grows linearly from birth to the age of physical
maturity; the fat ceiling is the potential body mass times bodyfat_max.

Units: body mass in kg/ind, densities in ind/km², forage in kgDM/km² or
kgDM/ind, energy in MJ/ind.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from herbivore_dynamics.config import Hft
from herbivore_dynamics.energetics import FatmassEnergyBudget, get_todays_expenditure
from herbivore_dynamics.forage import ForageValues, HabitatEnvironment, HabitatForage
from herbivore_dynamics.foraging import GetForageDemands
from herbivore_dynamics.mortality import get_mortality
from herbivore_dynamics.net_energy import get_net_energy_content
from herbivore_dynamics.nitrogen import NitrogenInHerbivore, get_retention_time
from herbivore_dynamics.output import HerbivoreData
from herbivore_dynamics.reproduction import get_offspring_proportion
from herbivore_dynamics.types import DAYS_PER_MONTH, DAYS_PER_YEAR, Sex
from herbivore_dynamics.utils import PeriodAverage

logger = logging.getLogger(__name__)


class HerbivoreBase:
    """State and daily algorithm common to cohorts and individuals.

    Two ways of construction:
      - Birth: ``age_days=0`` and no body condition. Fat mass is
        bodyfat_birth * bodymass_birth.
      - Establishment: ``age_days > 0`` and a body condition in [0, 1]
        (fat mass relative to its maximum).

    Args:
        hft: Herbivore functional type (shared, never modified).
        sex: Sex of the herbivore(s).
        age_days: Age in days.
        body_condition: Initial body condition for establishment.

    Raises:
        ValueError: On an invalid age/body condition combination.
    """

    def __init__(self, hft: Hft, sex: Sex, age_days: int = 0,
                 body_condition: Optional[float] = None):
        if hft is None:
            raise ValueError("HerbivoreBase: hft must not be None")
        self.hft = hft
        self.sex = Sex(sex)
        if body_condition is None:
            if age_days != 0:
                raise ValueError(
                    "HerbivoreBase: a body condition is required for "
                    "establishment (age_days > 0)"
                )
        else:
            if age_days <= 0:
                raise ValueError(
                    f"HerbivoreBase: establishment age must be > 0, got {age_days}"
                )
            if not 0.0 <= body_condition <= 1.0:
                raise ValueError(
                    f"HerbivoreBase: body condition must be in [0, 1], "
                    f"got {body_condition}"
                )
        self.age_days = age_days
        self.today: Optional[int] = None
        self.environment: Optional[HabitatEnvironment] = None

        if body_condition is None:
            initial_fatmass = hft.bodyfat_birth * hft.bodymass_birth
        else:
            initial_fatmass = body_condition * self.get_max_fatmass()
        self.energy_budget = FatmassEnergyBudget(initial_fatmass, self.get_max_fatmass())

        self.forage_demands = GetForageDemands(hft, self.get_bodymass_adult())
        self.nitrogen = NitrogenInHerbivore()
        self.body_condition_gestation = PeriodAverage(
            max(1, hft.gestation_months * DAYS_PER_MONTH))
        self.output = HerbivoreData()

    # ── capabilities defined by the variants ──────────────────────────

    def get_ind_per_km2(self) -> float:
        raise NotImplementedError

    def is_dead(self) -> bool:
        raise NotImplementedError

    def apply_mortality(self, mortality: float) -> None:
        raise NotImplementedError

    # ── body mass ─────────────────────────────────────────────────────

    def get_age_years(self) -> float:
        return self.age_days / DAYS_PER_YEAR

    def get_bodymass_adult(self) -> float:
        if self.sex == Sex.MALE:
            return self.hft.bodymass_male
        return self.hft.bodymass_female

    def get_lean_bodymass(self) -> float:
        """Lean mass (kg/ind), growing linearly until physical maturity."""
        hft = self.hft
        adult_lean = self.get_bodymass_adult() * (1.0 - hft.bodyfat_max)
        maturity_age = (hft.maturity_age_phys_male if self.sex == Sex.MALE
                        else hft.maturity_age_phys_female)
        if self.get_age_years() >= maturity_age:
            return adult_lean
        birth_lean = hft.bodymass_birth * (1.0 - hft.bodyfat_birth)
        fraction = self.age_days / (maturity_age * DAYS_PER_YEAR)
        return birth_lean + fraction * (adult_lean - birth_lean)

    def get_potential_bodymass(self) -> float:
        """Body mass (kg/ind) with full fat reserves."""
        return self.get_lean_bodymass() / (1.0 - self.hft.bodyfat_max)

    def get_max_fatmass(self) -> float:
        return self.get_potential_bodymass() * self.hft.bodyfat_max

    def get_fatmass(self) -> float:
        return self.energy_budget.get_fatmass()

    def get_bodymass(self) -> float:
        return self.get_fatmass() + self.get_lean_bodymass()

    def get_bodyfat(self) -> float:
        """Fat mass as a fraction of body mass."""
        return self.get_fatmass() / self.get_bodymass()

    def get_body_condition(self) -> float:
        """Fat mass relative to its current maximum, in [0, 1]."""
        return self.energy_budget.get_body_condition()

    def get_kg_per_km2(self) -> float:
        return self.get_bodymass() * self.get_ind_per_km2()

    def get_todays_output(self) -> HerbivoreData:
        return self.output

    def get_today(self) -> int:
        if self.today is None:
            raise RuntimeError(
                "Current day not yet initialized; call simulate_day() first"
            )
        return self.today

    # ── daily algorithm ───────────────────────────────────────────────

    def simulate_day(self, day: int, environment: HabitatEnvironment) -> float:
        """Advance the herbivore by one day.

        Args:
            day: Day of the year in [0, 365).
            environment: Today's abiotic conditions.

        Returns:
            Offspring produced today (ind/km²).

        Raises:
            ValueError: If day is out of range.
            RuntimeError: If the herbivore is dead or the day was already
                simulated.
        """
        if not 0 <= day < DAYS_PER_YEAR:
            raise ValueError(f"simulate_day(): day out of range: {day}")
        if self.is_dead():
            raise RuntimeError("simulate_day(): herbivore is dead")
        if self.today == day:
            raise RuntimeError(f"simulate_day(): day {day} was already simulated")

        self.environment = environment

        # Digestion runs on yesterday's body mass.
        self.nitrogen.digest_today(get_retention_time(self.get_bodymass()))

        self.today = day
        self.age_days += 1

        if self.sex == Sex.FEMALE:
            self.body_condition_gestation.add_value(self.get_body_condition())

        self.energy_budget.set_max_fatmass(
            self.get_max_fatmass(),
            self.hft.bodyfat_max_daily_gain * self.get_bodymass(),
        )

        self.output = HerbivoreData(
            age_years=self.get_age_years(),
            bodyfat=self.get_bodyfat(),
            inddens=self.get_ind_per_km2(),
            massdens=self.get_kg_per_km2(),
            bound_nitrogen=self.nitrogen.bound,
        )

        self.energy_budget.catabolize_fat()

        expenditure = get_todays_expenditure(
            self.hft.expenditure_components,
            self.get_bodymass(),
            self.get_bodymass_adult(),
            environment.air_temperature,
            self.hft.expenditure_allometry,
            self.hft.conductance,
            self.hft.core_temperature,
        )
        self.energy_budget.add_energy_needs(expenditure)
        self.output.expenditure = expenditure

        offspring = self.get_todays_offspring_proportion() * self.get_ind_per_km2()
        self.output.offspring = offspring

        mortality = get_mortality(self.hft, self.age_days, self.get_bodyfat(),
                                  self.get_body_condition())
        if mortality.new_body_condition is not None:
            self.energy_budget.force_body_condition(mortality.new_body_condition)
        self.output.mortality = dict(mortality.by_factor)
        self.apply_mortality(mortality.total)

        return offspring

    def get_todays_offspring_proportion(self) -> float:
        """Offspring per individual today (0 for males and immature females)."""
        if self.sex == Sex.MALE or self.get_age_years() < self.hft.maturity_age_sex:
            return 0.0
        body_condition = self.body_condition_gestation.get_average()
        return get_offspring_proportion(self.hft, self.get_today(), body_condition)

    def get_forage_demands(self, available_forage: HabitatForage) -> ForageValues:
        """Today's forage demand (kgDM/km²).

        The per-individual demand is computed on the first call of a day
        and reused for every later call on the same day.
        """
        if self.is_dead():
            return ForageValues(0.0)
        today = self.get_today()
        if not self.forage_demands.is_day_initialized(today):
            energy_content = get_net_energy_content(
                self.hft.net_energy_model,
                available_forage.get_digestibility(),
                self.hft.digestion_type,
            )
            self.forage_demands.init_today(today, available_forage,
                                           energy_content, self.get_bodymass())
            self.output.energy_content = energy_content

        energy_needs = (self.energy_budget.get_energy_needs()
                        + self.energy_budget.get_max_anabolism_per_day())
        demand_ind = self.forage_demands(energy_needs)
        return demand_ind * self.get_ind_per_km2()

    def eat(self, kg_per_km2: ForageValues, digestibility: ForageValues,
            n_kg_per_km2: Optional[ForageValues] = None) -> None:
        """Ingest forage.

        Args:
            kg_per_km2: Eaten dry matter per forage type (kgDM/km²).
            digestibility: Proportional digestibility of the eaten forage.
            n_kg_per_km2: Nitrogen in the eaten forage (kgN/km²).

        Raises:
            RuntimeError: If forage is given to a herbivore without
                individuals, or the intake exceeds the daily limit.
        """
        ind_per_km2 = self.get_ind_per_km2()
        if ind_per_km2 == 0.0:
            if kg_per_km2.sum() > 0.0:
                raise RuntimeError(
                    "eat(): herbivore has no individuals but received forage"
                )
            return
        if kg_per_km2.sum() == 0.0:
            return
        if not self.forage_demands.is_day_initialized(self.get_today()):
            raise RuntimeError("eat(): get_forage_demands() must be called first today")

        kg_per_ind = kg_per_km2 / ind_per_km2
        energy_content = get_net_energy_content(
            self.hft.net_energy_model, digestibility, self.hft.digestion_type)
        energy_per_ind = kg_per_ind * energy_content

        self.forage_demands.add_eaten(kg_per_ind)
        self.energy_budget.metabolize_energy(energy_per_ind.sum())

        bodymass = self.get_bodymass()
        self.output.eaten_forage_per_ind = self.output.eaten_forage_per_ind + kg_per_ind
        self.output.eaten_forage_per_mass = (self.output.eaten_forage_per_mass
                                             + kg_per_ind / bodymass)
        self.output.energy_intake_per_ind = (self.output.energy_intake_per_ind
                                             + energy_per_ind)
        self.output.energy_intake_per_mass = (self.output.energy_intake_per_mass
                                              + energy_per_ind / bodymass)

        if n_kg_per_km2 is not None:
            self.nitrogen.ingest(n_kg_per_km2.sum())
            self.output.bound_nitrogen = self.nitrogen.bound

    def take_nitrogen_excreta(self) -> float:
        """Return and clear excreted nitrogen (kgN/km²).

        A dead herbivore returns all nitrogen it still holds.
        """
        if self.is_dead():
            return self.nitrogen.reset_total()
        return self.nitrogen.reset_excreta()


class HerbivoreCohort(HerbivoreBase):
    """Same-age, same-sex group of herbivores described by a density.

    Args:
        hft: Herbivore functional type.
        sex: Sex of all members.
        ind_per_km2: Density (ind/km²), >= 0.
        age_days: 0 for a newborn cohort, > 0 for establishment.
        body_condition: Initial body condition (establishment only).
    """

    def __init__(self, hft: Hft, sex: Sex, ind_per_km2: float, age_days: int = 0,
                 body_condition: Optional[float] = None):
        if ind_per_km2 < 0.0:
            raise ValueError(
                f"HerbivoreCohort: ind_per_km2 must be >= 0, got {ind_per_km2}"
            )
        super().__init__(hft, sex, age_days, body_condition)
        self.ind_per_km2 = ind_per_km2

    def get_ind_per_km2(self) -> float:
        return self.ind_per_km2

    def is_dead(self) -> bool:
        return self.ind_per_km2 <= 0.0

    def apply_mortality(self, mortality: float) -> None:
        if not 0.0 <= mortality <= 1.0:
            raise ValueError(f"apply_mortality(): mortality must be in [0, 1], got {mortality}")
        self.ind_per_km2 = max(0.0, self.ind_per_km2 - mortality * self.ind_per_km2)

    def is_same_age(self, other: 'HerbivoreCohort') -> bool:
        return self.age_days == other.age_days

    def merge(self, other: 'HerbivoreCohort') -> None:
        """Absorb another cohort of the same HFT, sex and age.

        Densities are summed and fat reserves averaged with density as
        weight. The donor is left with zero density.

        Raises:
            ValueError: If HFT, sex or age differ.
        """
        if other is self:
            raise ValueError("merge(): cannot merge a cohort with itself")
        if other.hft is not self.hft:
            raise ValueError("merge(): cohorts have different HFTs")
        if other.sex != self.sex:
            raise ValueError("merge(): cohorts have different sex")
        if not self.is_same_age(other):
            raise ValueError(
                f"merge(): cohorts have different age "
                f"({self.age_days} vs {other.age_days} days)"
            )
        total = self.ind_per_km2 + other.ind_per_km2
        if total > 0.0:
            self.energy_budget.merge(other.energy_budget,
                                     self.ind_per_km2, other.ind_per_km2)
            self.body_condition_gestation.merge(other.body_condition_gestation,
                                                self.ind_per_km2, other.ind_per_km2)
        self.nitrogen.merge(other.nitrogen)
        self.ind_per_km2 = total
        other.ind_per_km2 = 0.0

    def __repr__(self) -> str:
        return (f"HerbivoreCohort(hft={self.hft.name!r}, sex={self.sex.name}, "
                f"age_days={self.age_days}, ind_per_km2={self.ind_per_km2:.4g})")


class HerbivoreIndividual(HerbivoreBase):
    """One herbivore living in a habitat of fixed area.

    Args:
        hft: Herbivore functional type.
        sex: Sex.
        area_km2: Habitat area (km²), > 0.
        rng: Random generator for the stochastic death draw.
        age_days: 0 for a newborn, > 0 for establishment.
        body_condition: Initial body condition (establishment only).
    """

    def __init__(self, hft: Hft, sex: Sex, area_km2: float, rng: np.random.Generator,
                 age_days: int = 0, body_condition: Optional[float] = None):
        if area_km2 <= 0.0:
            raise ValueError(f"HerbivoreIndividual: area_km2 must be > 0, got {area_km2}")
        if rng is None:
            raise ValueError("HerbivoreIndividual: rng must not be None")
        super().__init__(hft, sex, age_days, body_condition)
        self.area_km2 = area_km2
        self.rng = rng
        self.dead = False

    def get_ind_per_km2(self) -> float:
        return 0.0 if self.dead else 1.0 / self.area_km2

    def is_dead(self) -> bool:
        return self.dead

    def apply_mortality(self, mortality: float) -> None:
        if not 0.0 <= mortality <= 1.0:
            raise ValueError(f"apply_mortality(): mortality must be in [0, 1], got {mortality}")
        if mortality == 0.0:
            return
        if mortality == 1.0 or self.rng.random() < mortality:
            self.dead = True
            logger.debug("Individual of HFT '%s' died at age %d days",
                         self.hft.name, self.age_days)

    def __repr__(self) -> str:
        return (f"HerbivoreIndividual(hft={self.hft.name!r}, sex={self.sex.name}, "
                f"age_days={self.age_days}, dead={self.dead})")
