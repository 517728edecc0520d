"""Tests for herbivore_dynamics.foraging — intake limits and forage demand."""

import math

import pytest

from herbivore_dynamics.forage import Digestibility, ForageValues, GrassForage, HabitatForage
from herbivore_dynamics.foraging import (
    GetForageDemands,
    HalfMaxIntake,
    compose_diet,
    get_digestive_limit_illius_gordon_1992,
    kg_per_km2_to_g_per_m2,
)
from herbivore_dynamics.net_energy import get_net_energy_content
from herbivore_dynamics.types import (
    DietComposer,
    DigestionType,
    DigestiveLimit,
    ForageType,
    ForagingLimit,
    NetEnergyModel,
)

GRASS = ForageType.GRASS


def _forage(mass=200_000.0, digestibility=0.7):
    return HabitatForage(grass=GrassForage(
        mass=mass, digestibility=digestibility, nitrogen_mass=0.0, fpc=1.0))


def _energy_content(forage, digestion_type=DigestionType.RUMINANT):
    return get_net_energy_content(NetEnergyModel.DEFAULT,
                                  forage.get_digestibility(), digestion_type)


def _solver(hft, forage, day=0, bodymass=50.0):
    solver = GetForageDemands(hft, hft.bodymass_female)
    solver.init_today(day, forage, _energy_content(forage), bodymass)
    return solver


# ═══════════════════════════════════════════════════════════════════════
# LIMITS
# ═══════════════════════════════════════════════════════════════════════

class TestHalfMaxIntake:
    def test_invalid_parameters(self):
        with pytest.raises(ValueError):
            HalfMaxIntake(0.0, 10.0)
        with pytest.raises(ValueError):
            HalfMaxIntake(10.0, -1.0)

    def test_half_saturation(self):
        response = HalfMaxIntake(10.0, 4.0)
        assert response.get_intake_rate(10.0) == pytest.approx(2.0)

    def test_zero_density(self):
        assert HalfMaxIntake(10.0, 4.0).get_intake_rate(0.0) == 0.0

    def test_saturates(self):
        response = HalfMaxIntake(10.0, 4.0)
        assert response.get_intake_rate(1e9) == pytest.approx(4.0, rel=1e-6)

    def test_negative_density(self):
        with pytest.raises(ValueError):
            HalfMaxIntake(10.0, 4.0).get_intake_rate(-1.0)

    def test_unit_conversion(self):
        # 1 gDM/m² = 1000 kgDM/km²
        assert kg_per_km2_to_g_per_m2(1000.0) == pytest.approx(1.0)


class TestIlliusGordon1992:
    def test_adult_ruminant_value(self):
        d = 0.6
        expected = 0.034 * math.exp(3.565 * d) * 100.0 ** (0.077 * math.exp(d) + 0.73)
        result = get_digestive_limit_illius_gordon_1992(
            100.0, DigestionType.RUMINANT, 100.0, Digestibility(d))
        assert result[GRASS] == pytest.approx(expected)

    def test_juvenile_scaled_down(self):
        adult = get_digestive_limit_illius_gordon_1992(
            100.0, DigestionType.HINDGUT, 100.0, Digestibility(0.6))
        young = get_digestive_limit_illius_gordon_1992(
            100.0, DigestionType.HINDGUT, 50.0, Digestibility(0.6))
        assert young[GRASS] == pytest.approx(adult[GRASS] * 0.5 ** 0.75)

    def test_higher_digestibility_more_intake(self):
        low = get_digestive_limit_illius_gordon_1992(
            100.0, DigestionType.RUMINANT, 100.0, Digestibility(0.4))
        high = get_digestive_limit_illius_gordon_1992(
            100.0, DigestionType.RUMINANT, 100.0, Digestibility(0.7))
        assert low[GRASS] < high[GRASS]

    def test_bodymass_above_adult(self):
        with pytest.raises(RuntimeError):
            get_digestive_limit_illius_gordon_1992(
                100.0, DigestionType.RUMINANT, 120.0, Digestibility(0.5))

    def test_invalid_masses(self):
        with pytest.raises(ValueError):
            get_digestive_limit_illius_gordon_1992(
                0.0, DigestionType.RUMINANT, 10.0, Digestibility(0.5))
        with pytest.raises(ValueError):
            get_digestive_limit_illius_gordon_1992(
                100.0, DigestionType.RUMINANT, 0.0, Digestibility(0.5))


class TestDiet:
    def test_pure_grazer(self):
        assert compose_diet(DietComposer.PURE_GRAZER) == {GRASS: 1.0}


# ═══════════════════════════════════════════════════════════════════════
# FORAGE DEMANDS
# ═══════════════════════════════════════════════════════════════════════

class TestGetForageDemands:
    def test_not_initialized(self, hft):
        solver = GetForageDemands(hft, 50.0)
        assert not solver.is_day_initialized(0)
        with pytest.raises(RuntimeError):
            solver(10.0)

    def test_day_out_of_range(self, hft):
        solver = GetForageDemands(hft, 50.0)
        with pytest.raises(ValueError):
            solver.init_today(365, _forage(), ForageValues(5.0), 50.0)

    def test_invalid_bodymass_adult(self, hft):
        with pytest.raises(ValueError):
            GetForageDemands(hft, 0.0)

    def test_small_needs_met_fully(self, hft):
        forage = _forage()
        solver = _solver(hft, forage)
        demand = solver(1.0)
        assert demand[GRASS] == pytest.approx(1.0 / _energy_content(forage)[GRASS])

    def test_demand_never_exceeds_intake_limit(self, hft):
        solver = _solver(hft, _forage())
        demand = solver(1e4)
        max_intake = solver.get_max_intake()
        assert max_intake is not None
        assert demand <= max_intake
        assert demand[GRASS] == pytest.approx(max_intake[GRASS])

    def test_functional_response_reduces_intake(self, hft):
        dense = _solver(hft, _forage(mass=200_000.0)).get_max_intake()
        sparse = _solver(hft, _forage(mass=5_000.0)).get_max_intake()
        assert sparse[GRASS] < dense[GRASS]

    def test_memoized_within_day(self, hft):
        solver = _solver(hft, _forage())
        first = solver(1.0)
        second = solver(500.0)
        assert second == first

    def test_recomputed_next_day(self, hft):
        forage = _forage()
        solver = _solver(hft, forage)
        first = solver(1.0)
        solver.init_today(1, forage, _energy_content(forage), 50.0)
        assert solver.is_day_initialized(1)
        assert solver(2.0)[GRASS] == pytest.approx(2.0 * first[GRASS])

    def test_add_eaten_within_limit(self, hft):
        solver = _solver(hft, _forage())
        demand = solver(1e4)
        solver.add_eaten(demand)
        assert solver.eaten_today == demand

    def test_add_eaten_beyond_limit_raises(self, hft):
        solver = _solver(hft, _forage())
        too_much = solver.get_max_intake() * 2.0
        with pytest.raises(RuntimeError, match="exceeds"):
            solver.add_eaten(too_much)

    def test_zero_digestibility_zero_demand(self, hft):
        forage = _forage(digestibility=0.0)
        solver = _solver(hft, forage)
        assert solver(10.0) == 0.0

    def test_no_limits(self, make_hft):
        hft = make_hft(digestive_limit=DigestiveLimit.NONE, foraging_limits=frozenset())
        forage = _forage()
        solver = _solver(hft, forage)
        assert solver.get_max_intake() is None
        demand = solver(1e4)
        assert demand[GRASS] == pytest.approx(1e4 / _energy_content(forage)[GRASS])

    def test_fixed_fraction(self, make_hft):
        hft = make_hft(digestive_limit=DigestiveLimit.FIXED_FRACTION,
                       digestive_limit_fixed=0.02, foraging_limits=frozenset())
        solver = _solver(hft, _forage(), bodymass=40.0)
        assert solver(1e4)[GRASS] == pytest.approx(0.8)

    def test_allometric_with_functional_response(self, make_hft):
        hft = make_hft(
            digestive_limit=DigestiveLimit.ALLOMETRIC,
            foraging_limits=frozenset({ForagingLimit.GENERAL_FUNCTIONAL_RESPONSE}),
            half_max_intake_density=200.0,
        )
        # 200 gDM/m² = half saturation
        solver = _solver(hft, _forage(mass=200_000.0), bodymass=50.0)
        expected = hft.digestive_limit_allometry.calc(50.0) * 0.5
        assert solver.get_max_intake()[GRASS] == pytest.approx(expected)
