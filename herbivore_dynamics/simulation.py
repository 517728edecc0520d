"""Daily simulation of herbivores in habitats.

SimulateDay runs one day in one SimulationUnit, always in this order:

  1. habitat.init_day()
  2. establishment of empty populations (if requested)
  3. simulate_day() of every herbivore, summing offspring per population
  4. feeding (demand → distribution → eat)
  5. eaten forage removed from the habitat
  6. output collected
  7. excreted nitrogen returned to the habitat
  8. offspring created
  9. same-age cohorts merged, dead herbivores purged

Simulator owns the configuration, one SimulationUnit per habitat and the
RNG streams, and handles periodic re-establishment.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence

from herbivore_dynamics.config import SimulationConfig, validate_config
from herbivore_dynamics.distribute import FeedHerbivores, create_distribute_forage
from herbivore_dynamics.forage import ForageValues
from herbivore_dynamics.habitat import Habitat, SimulationUnit
from herbivore_dynamics.output import (
    DailyRecord,
    HabitatData,
    HerbivoreData,
    aggregate_herbivore_data,
)
from herbivore_dynamics.population import create_population
from herbivore_dynamics.rng import create_habitat_rng, create_rng_hierarchy, get_habitat_rng
from herbivore_dynamics.types import DAYS_PER_YEAR

logger = logging.getLogger(__name__)


class SimulateDay:
    """One day of herbivore simulation in one habitat.

    Args:
        day: Day of the year in [0, 365).
        sim_unit: Habitat with its populations.
        feed_herbivores: Feeding functor.
    """

    def __init__(self, day: int, sim_unit: SimulationUnit,
                 feed_herbivores: FeedHerbivores):
        if not 0 <= day < DAYS_PER_YEAR:
            raise ValueError(f"SimulateDay: day out of range: {day}")
        self.day = day
        self.sim_unit = sim_unit
        self.feed_herbivores = feed_herbivores

    def __call__(self, do_herbivores: bool = True,
                 establish_if_needed: bool = False) -> DailyRecord:
        """Run the day and return its output.

        Args:
            do_herbivores: If False, only the habitat advances.
            establish_if_needed: Establish populations that are empty.
        """
        habitat = self.sim_unit.habitat
        habitat.init_day(self.day)

        available = habitat.get_available_forage()
        record = DailyRecord(
            day=self.day,
            habitat=HabitatData(available_forage=available.get_mass()),
        )
        if not do_herbivores:
            self.sim_unit.records.append(record)
            return record

        populations = self.sim_unit.get_populations()

        if establish_if_needed:
            for population in populations:
                if population.is_empty():
                    population.establish()
                    if self.sim_unit.initial_establishment_done:
                        logger.info("Day %d: re-established HFT '%s'",
                                    self.day, population.get_hft().name)
            self.sim_unit.initial_establishment_done = True

        environment = habitat.get_environment()
        offspring: Dict[str, float] = {}
        for population in populations:
            total = 0.0
            for herbivore in population:
                total += herbivore.simulate_day(self.day, environment)
            offspring[population.get_hft().name] = total

        eaten = self.feed_herbivores(available, populations)
        if eaten.sum() > 0.0:
            habitat.remove_eaten_forage(eaten)
        record.habitat.eaten_forage = eaten

        for population in populations:
            record.herbivores[population.get_hft().name] = aggregate_herbivore_data(
                h.get_todays_output() for h in population
            )

        nitrogen = sum(h.take_nitrogen_excreta()
                       for population in populations for h in population)

        for population in populations:
            was_alive = not population.is_empty()
            population.create_offspring(offspring[population.get_hft().name])
            population.merge_same_age_cohorts()
            nitrogen += population.purge_of_dead()
            if was_alive and population.is_empty():
                logger.info("Day %d: HFT '%s' went extinct",
                            self.day, population.get_hft().name)

        if nitrogen > 0.0:
            habitat.add_excreted_nitrogen(nitrogen)
        record.habitat.excreted_nitrogen = nitrogen

        self.sim_unit.records.append(record)
        return record


class Simulator:
    """Herbivore simulation across several habitats.

    Args:
        config: Validated simulation configuration.
        habitats: Habitats provided by the host model.

    Example:
        >>> sim = Simulator(default_config(), [my_habitat])
        >>> for day in range(365):
        ...     sim.simulate_day(day)
    """

    def __init__(self, config: SimulationConfig, habitats: Sequence[Habitat] = ()):
        validate_config(config)
        self.config = config
        self.params = config.params
        self.rngs = create_rng_hierarchy(self.params.seed, len(habitats))
        self.sim_units: List[SimulationUnit] = []
        self.days_since_last_establishment = self.params.herbivore_establish_interval
        for habitat in habitats:
            self.add_habitat(habitat)
        logger.info("Simulator created: %d habitat(s), %d HFT(s), %s herbivores",
                    len(self.sim_units), len(config.hfts),
                    self.params.herbivore_type.value)

    def add_habitat(self, habitat: Habitat) -> SimulationUnit:
        """Create a simulation unit with populations for the habitat.

        With `one_hft_per_habitat`, habitats get one HFT each, assigned
        round-robin in the order the habitats are added.
        """
        index = len(self.sim_units)
        key = f"habitat_{index}"
        if key not in self.rngs:
            self.rngs[key] = create_habitat_rng(self.params.seed, index)
        rng = get_habitat_rng(self.rngs, index)

        hfts = self.config.hfts
        if self.params.one_hft_per_habitat and hfts:
            hfts = [hfts[index % len(hfts)]]

        populations = {hft.name: create_population(hft, self.params, rng) for hft in hfts}
        unit = SimulationUnit(habitat=habitat, populations=populations)
        self.sim_units.append(unit)
        return unit

    def simulate_day(self, day: int, do_herbivores: bool = True) -> List[DailyRecord]:
        """Simulate one day in every habitat.

        Populations are established on the first day and, if
        `herbivore_establish_interval` > 0, re-established every that many
        days if they went extinct.

        Returns:
            One DailyRecord per habitat.
        """
        if not 0 <= day < DAYS_PER_YEAR:
            raise ValueError(f"simulate_day(): day out of range: {day}")

        interval = self.params.herbivore_establish_interval
        periodic = interval > 0 and self.days_since_last_establishment >= interval
        if periodic:
            self.days_since_last_establishment = 0
        self.days_since_last_establishment += 1

        feed = FeedHerbivores(create_distribute_forage(self.params.forage_distribution))
        records = []
        for unit in self.sim_units:
            establish = periodic or not unit.initial_establishment_done
            records.append(SimulateDay(day, unit, feed)(do_herbivores, establish))
        return records

    def run(self, n_days: int, first_day: int = 0) -> List[List[DailyRecord]]:
        """Simulate n_days consecutive days, wrapping at year end."""
        if n_days < 0:
            raise ValueError(f"n_days must be >= 0, got {n_days}")
        results = []
        for i in range(n_days):
            results.append(self.simulate_day((first_day + i) % DAYS_PER_YEAR))
        logger.info("Simulated %d days in %d habitat(s)", n_days, len(self.sim_units))
        return results

    def take_records(self) -> List[List[DailyRecord]]:
        """Return and clear the records of every habitat (one list each).

        Long runs should drain records regularly so that memory use stays
        bounded; later calls to the output accessors only see newer days.
        """
        return [unit.take_records() for unit in self.sim_units]

    def get_herbivore_output(self, hft_name: str) -> List[HerbivoreData]:
        """Daily output of one HFT merged over all habitats, for the days
        recorded since the last take_records()."""
        n_days = max((len(u.records) for u in self.sim_units), default=0)
        result = []
        for d in range(n_days):
            merged = HerbivoreData()
            for unit in self.sim_units:
                if d < len(unit.records) and hft_name in unit.records[d].herbivores:
                    merged.merge(unit.records[d].herbivores[hft_name])
            result.append(merged)
        return result

    def get_total_eaten_forage(self) -> ForageValues:
        """Forage eaten on the recorded days, summed over habitats (kgDM/km²)."""
        total = ForageValues(0.0)
        for unit in self.sim_units:
            for record in unit.records:
                total = total + record.habitat.eaten_forage
        return total
