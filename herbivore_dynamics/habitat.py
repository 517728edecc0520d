"""Interface to the host vegetation model.

A Habitat supplies available forage and abiotic conditions once a day and
receives eaten forage and excreted nitrogen back. Concrete habitats live in
the host simulation; herbivore_dynamics only calls this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from herbivore_dynamics.forage import ForageValues, HabitatEnvironment, HabitatForage
from herbivore_dynamics.output import DailyRecord, HerbivoreData
from herbivore_dynamics.population import HerbivorePopulation
from herbivore_dynamics.types import DAYS_PER_YEAR


class Habitat(ABC):
    """One homogenous patch of vegetation."""

    def __init__(self):
        self.day: Optional[int] = None

    def init_day(self, day: int) -> None:
        """Start a new day. Subclasses extending this must call super()."""
        if not 0 <= day < DAYS_PER_YEAR:
            raise ValueError(f"init_day(): day out of range: {day}")
        self.day = day

    @abstractmethod
    def get_available_forage(self) -> HabitatForage:
        """Forage the herbivores may eat today."""

    @abstractmethod
    def get_environment(self) -> HabitatEnvironment:
        """Today's abiotic conditions."""

    @abstractmethod
    def remove_eaten_forage(self, eaten: ForageValues) -> None:
        """Subtract eaten forage (kgDM/km²) from the standing biomass."""

    def add_excreted_nitrogen(self, kg_per_km2: float) -> None:
        """Receive nitrogen from herbivore excreta (kgN/km²)."""
        if kg_per_km2 < 0.0:
            raise ValueError(f"add_excreted_nitrogen(): must be >= 0, got {kg_per_km2}")


@dataclass
class SimulationUnit:
    """A habitat together with the herbivore populations living in it."""
    habitat: Habitat
    populations: Dict[str, HerbivorePopulation] = field(default_factory=dict)
    initial_establishment_done: bool = False
    records: List[DailyRecord] = field(default_factory=list)

    def get_populations(self) -> List[HerbivorePopulation]:
        return list(self.populations.values())

    def take_records(self) -> List[DailyRecord]:
        """Return the records collected so far and start a new list.

        Hosts should call this after writing or aggregating output; records
        are otherwise kept for the whole run.
        """
        records = self.records
        self.records = []
        return records

    def get_output(self, hft_name: str) -> List[HerbivoreData]:
        """Daily records of one HFT in this unit (empty records where absent)."""
        return [record.herbivores.get(hft_name, HerbivoreData())
                for record in self.records]
