"""Daily output records of herbivores and habitats.

HerbivoreData holds one herbivore's (or one aggregate's) values for one
day. Records are combined with `merge()`: per-individual quantities are
averaged with individual density as weight, per-area quantities are summed.
Writing records to disk is left to the caller; `to_dict()` gives a flat
mapping for tabular writers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional

from herbivore_dynamics.forage import ForageValues
from herbivore_dynamics.types import MortalityFactor
from herbivore_dynamics.utils import average


def _average_forage(a: ForageValues, b: ForageValues, weight_a: float,
                    weight_b: float) -> ForageValues:
    return (a * weight_a + b * weight_b) / (weight_a + weight_b)


@dataclass
class HerbivoreData:
    """Output of herbivores for one day.

    Per-individual (density-weighted when merged):
      age_years, bodyfat, expenditure (MJ/ind/day), mortality (daily
      probability per factor), eaten_forage_per_ind (kgDM/ind/day),
      eaten_forage_per_mass (kgDM/kg/day), energy_intake_per_ind
      (MJ/ind/day), energy_intake_per_mass (MJ/kg/day), energy_content
      (MJ/kgDM).

    Per-area (summed when merged):
      inddens (ind/km²), massdens (kg/km²), offspring (ind/km²/day),
      bound_nitrogen (kgN/km²).
    """
    age_years: float = 0.0
    bodyfat: float = 0.0
    expenditure: float = 0.0
    mortality: Dict[MortalityFactor, float] = field(default_factory=dict)
    eaten_forage_per_ind: ForageValues = field(default_factory=ForageValues)
    eaten_forage_per_mass: ForageValues = field(default_factory=ForageValues)
    energy_intake_per_ind: ForageValues = field(default_factory=ForageValues)
    energy_intake_per_mass: ForageValues = field(default_factory=ForageValues)
    energy_content: ForageValues = field(default_factory=ForageValues)

    inddens: float = 0.0
    massdens: float = 0.0
    offspring: float = 0.0
    bound_nitrogen: float = 0.0

    def merge(self, other: 'HerbivoreData') -> 'HerbivoreData':
        """Combine with another record in place and return self.

        Records with zero individual density carry no weight. Merging two
        such records leaves the per-individual values of self unchanged.
        """
        w_self, w_other = self.inddens, other.inddens
        if w_self + w_other > 0.0:
            self.age_years = average(self.age_years, other.age_years, w_self, w_other)
            self.bodyfat = average(self.bodyfat, other.bodyfat, w_self, w_other)
            self.expenditure = average(self.expenditure, other.expenditure,
                                       w_self, w_other)
            factors = set(self.mortality) | set(other.mortality)
            self.mortality = {
                f: average(self.mortality.get(f, 0.0), other.mortality.get(f, 0.0),
                           w_self, w_other)
                for f in factors
            }
            for name in ('eaten_forage_per_ind', 'eaten_forage_per_mass',
                         'energy_intake_per_ind', 'energy_intake_per_mass',
                         'energy_content'):
                setattr(self, name, _average_forage(
                    getattr(self, name), getattr(other, name), w_self, w_other))

        self.inddens += other.inddens
        self.massdens += other.massdens
        self.offspring += other.offspring
        self.bound_nitrogen += other.bound_nitrogen
        return self

    def to_dict(self) -> Dict[str, float]:
        """Flat mapping of all values (forage vectors expanded per type)."""
        row: Dict[str, float] = {
            'age_years': self.age_years,
            'bodyfat': self.bodyfat,
            'expenditure': self.expenditure,
            'inddens': self.inddens,
            'massdens': self.massdens,
            'offspring': self.offspring,
            'bound_nitrogen': self.bound_nitrogen,
        }
        for factor, value in sorted(self.mortality.items(), key=lambda kv: kv[0].value):
            row[f'mortality_{factor.value}'] = value
        for name in ('eaten_forage_per_ind', 'eaten_forage_per_mass',
                     'energy_intake_per_ind', 'energy_intake_per_mass',
                     'energy_content'):
            for ft, value in getattr(self, name):
                row[f'{name}_{ft.name.lower()}'] = value
        return row


def aggregate_herbivore_data(records: Iterable[HerbivoreData]) -> HerbivoreData:
    """Merge many records into a new one."""
    result = HerbivoreData()
    for record in records:
        result.merge(record)
    return result


@dataclass
class HabitatData:
    """Forage state of one habitat on one day (kgDM/km²)."""
    available_forage: ForageValues = field(default_factory=ForageValues)
    eaten_forage: ForageValues = field(default_factory=ForageValues)
    excreted_nitrogen: float = 0.0   # kgN/km²


@dataclass
class DailyRecord:
    """Everything one simulation unit produced on one day."""
    day: int
    habitat: HabitatData
    herbivores: Dict[str, HerbivoreData] = field(default_factory=dict)

    def get_hft(self, name: str) -> Optional[HerbivoreData]:
        return self.herbivores.get(name)
