"""Shared fixtures: a constant-forage habitat and standard HFTs."""

import dataclasses

import pytest

from herbivore_dynamics.config import Hft, Parameters, SimulationConfig
from herbivore_dynamics.forage import (
    ForageValues,
    GrassForage,
    HabitatEnvironment,
    HabitatForage,
)
from herbivore_dynamics.habitat import Habitat


class ConstantForageHabitat(Habitat):
    """Habitat whose grass is restored to the same state every day."""

    def __init__(self, mass=200_000.0, digestibility=0.7, nitrogen_fraction=0.01,
                 air_temperature=20.0):
        super().__init__()
        self.mass = mass
        self.digestibility = digestibility
        self.nitrogen_fraction = nitrogen_fraction
        self.environment = HabitatEnvironment(air_temperature=air_temperature)
        self.current_mass = mass
        self.eaten_total = ForageValues(0.0)
        self.nitrogen_total = 0.0
        self.init_calls = 0

    def init_day(self, day):
        super().init_day(day)
        self.init_calls += 1
        self.current_mass = self.mass

    def get_available_forage(self):
        return HabitatForage(grass=GrassForage(
            mass=self.current_mass,
            digestibility=self.digestibility,
            nitrogen_mass=self.current_mass * self.nitrogen_fraction,
            fpc=1.0,
        ))

    def get_environment(self):
        return self.environment

    def remove_eaten_forage(self, eaten):
        remaining = ForageValues(self.current_mass) - eaten
        self.current_mass = remaining.sum()
        self.eaten_total = self.eaten_total + eaten

    def add_excreted_nitrogen(self, kg_per_km2):
        super().add_excreted_nitrogen(kg_per_km2)
        self.nitrogen_total += kg_per_km2


@pytest.fixture
def hft():
    """Default HFT."""
    return Hft()


@pytest.fixture
def make_hft():
    """Factory for HFT variants: make_hft(lifespan=5, ...)."""
    def _make(**kwargs):
        return dataclasses.replace(Hft(), **kwargs)
    return _make


@pytest.fixture
def habitat():
    return ConstantForageHabitat()


@pytest.fixture
def available_forage():
    return HabitatForage(grass=GrassForage(
        mass=200_000.0, digestibility=0.7, nitrogen_mass=2_000.0, fpc=1.0))


@pytest.fixture
def environment():
    return HabitatEnvironment(air_temperature=20.0)


@pytest.fixture
def cohort_config():
    return SimulationConfig(params=Parameters(), hfts=[Hft()])
