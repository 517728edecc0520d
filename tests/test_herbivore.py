"""Tests for herbivore_dynamics.herbivore — cohorts and individuals."""

import pytest

from herbivore_dynamics.forage import ForageValues, HabitatEnvironment
from herbivore_dynamics.herbivore import HerbivoreCohort, HerbivoreIndividual
from herbivore_dynamics.mortality import StarvationIlliusOConnor2000
from herbivore_dynamics.types import (
    DAYS_PER_YEAR,
    ExpenditureComponent,
    ForageType,
    MortalityFactor,
    ReproductionModel,
    Sex,
)

GRASS = ForageType.GRASS


class FixedDraw:
    """Stand-in random generator returning a fixed number."""

    def __init__(self, value=None):
        self.value = value
        self.calls = 0

    def random(self):
        self.calls += 1
        if self.value is None:
            raise AssertionError("random number drawn unexpectedly")
        return self.value


def _adult_cohort(hft, density=10.0, body_condition=0.5, sex=Sex.FEMALE, years=5):
    return HerbivoreCohort(hft, sex, density, age_days=years * DAYS_PER_YEAR,
                           body_condition=body_condition)


# ═══════════════════════════════════════════════════════════════════════
# CONSTRUCTION
# ═══════════════════════════════════════════════════════════════════════

class TestConstruction:
    def test_birth_exact_values(self, make_hft):
        hft = make_hft(bodyfat_birth=0.2, bodymass_birth=10.0)
        individual = HerbivoreIndividual(hft, Sex.FEMALE, 1.0, FixedDraw())
        assert individual.get_fatmass() == 2.0
        assert individual.get_bodymass() == 10.0
        assert individual.age_days == 0

    def test_birth_cohort(self, make_hft):
        hft = make_hft(bodyfat_birth=0.2, bodymass_birth=10.0)
        cohort = HerbivoreCohort(hft, Sex.MALE, 3.0)
        assert cohort.get_fatmass() == 2.0
        assert cohort.get_bodymass() == 10.0
        assert cohort.get_ind_per_km2() == 3.0

    def test_establishment(self, hft):
        cohort = _adult_cohort(hft, body_condition=0.5)
        assert cohort.get_body_condition() == pytest.approx(0.5)
        assert cohort.get_bodymass() == pytest.approx(
            hft.bodymass_female * (1.0 - hft.bodyfat_max)
            + 0.5 * hft.bodymass_female * hft.bodyfat_max)

    def test_establishment_needs_positive_age(self, hft):
        with pytest.raises(ValueError, match="age"):
            HerbivoreCohort(hft, Sex.FEMALE, 1.0, age_days=0, body_condition=0.5)
        with pytest.raises(ValueError, match="age"):
            HerbivoreCohort(hft, Sex.FEMALE, 1.0, age_days=-5, body_condition=0.5)

    def test_establishment_needs_body_condition(self, hft):
        with pytest.raises(ValueError, match="body condition"):
            HerbivoreCohort(hft, Sex.FEMALE, 1.0, age_days=100)

    @pytest.mark.parametrize("bc", [-0.1, 1.1])
    def test_establishment_body_condition_range(self, hft, bc):
        with pytest.raises(ValueError, match="body condition"):
            HerbivoreCohort(hft, Sex.FEMALE, 1.0, age_days=100, body_condition=bc)

    def test_negative_density(self, hft):
        with pytest.raises(ValueError):
            HerbivoreCohort(hft, Sex.FEMALE, -1.0)

    def test_individual_invalid_area(self, hft):
        with pytest.raises(ValueError):
            HerbivoreIndividual(hft, Sex.FEMALE, 0.0, FixedDraw())

    def test_sex_specific_adult_mass(self, hft):
        male = _adult_cohort(hft, sex=Sex.MALE, body_condition=1.0)
        female = _adult_cohort(hft, sex=Sex.FEMALE, body_condition=1.0)
        assert male.get_bodymass() == pytest.approx(hft.bodymass_male)
        assert female.get_bodymass() == pytest.approx(hft.bodymass_female)

    def test_today_before_first_day(self, hft):
        with pytest.raises(RuntimeError):
            HerbivoreCohort(hft, Sex.FEMALE, 1.0).get_today()


# ═══════════════════════════════════════════════════════════════════════
# DAILY STEP
# ═══════════════════════════════════════════════════════════════════════

class TestSimulateDay:
    def test_age_increments(self, hft, environment):
        cohort = HerbivoreCohort(hft, Sex.FEMALE, 5.0)
        cohort.simulate_day(0, environment)
        cohort.simulate_day(1, environment)
        assert cohort.age_days == 2
        assert cohort.get_today() == 1

    def test_day_out_of_range(self, hft, environment):
        cohort = HerbivoreCohort(hft, Sex.FEMALE, 5.0)
        with pytest.raises(ValueError):
            cohort.simulate_day(365, environment)
        with pytest.raises(ValueError):
            cohort.simulate_day(-1, environment)

    def test_same_day_twice(self, hft, environment):
        cohort = HerbivoreCohort(hft, Sex.FEMALE, 5.0)
        cohort.simulate_day(3, environment)
        with pytest.raises(RuntimeError, match="already"):
            cohort.simulate_day(3, environment)

    def test_lifespan_kills_cohort(self, make_hft, environment):
        hft = make_hft(mortality_factors=frozenset(
            {MortalityFactor.BACKGROUND, MortalityFactor.LIFESPAN}))
        cohort = HerbivoreCohort(hft, Sex.FEMALE, 10.0,
                                 age_days=hft.lifespan * DAYS_PER_YEAR + 1,
                                 body_condition=1.0)
        cohort.simulate_day(0, environment)
        assert cohort.get_ind_per_km2() == 0.0
        assert cohort.is_dead()
        output = cohort.get_todays_output()
        assert output.mortality[MortalityFactor.LIFESPAN] == 1.0

    def test_dead_cannot_simulate(self, make_hft, environment):
        hft = make_hft(mortality_factors=frozenset({MortalityFactor.LIFESPAN}))
        cohort = HerbivoreCohort(hft, Sex.FEMALE, 10.0,
                                 age_days=hft.lifespan * DAYS_PER_YEAR,
                                 body_condition=1.0)
        cohort.simulate_day(0, environment)
        with pytest.raises(RuntimeError, match="dead"):
            cohort.simulate_day(1, environment)

    def test_fat_burned_without_food(self, hft, environment):
        cohort = _adult_cohort(hft, body_condition=0.5)
        fat_before = cohort.get_fatmass()
        cohort.simulate_day(0, environment)
        cohort.simulate_day(1, environment)  # catabolizes yesterday's needs
        assert cohort.get_fatmass() < fat_before

    def test_juvenile_grows(self, hft, environment):
        cohort = HerbivoreCohort(hft, Sex.FEMALE, 5.0)
        lean_before = cohort.get_lean_bodymass()
        for day in range(30):
            cohort.simulate_day(day, environment)
        assert cohort.get_lean_bodymass() > lean_before

    def test_expenditure_recorded(self, hft, environment):
        cohort = _adult_cohort(hft)
        cohort.simulate_day(0, environment)
        assert cohort.get_todays_output().expenditure > 0.0
        assert cohort.energy_budget.get_energy_needs() == pytest.approx(
            cohort.get_todays_output().expenditure)

    def test_cold_costs_more_with_thermoregulation(self, make_hft):
        hft = make_hft(expenditure_components=frozenset({
            ExpenditureComponent.TAYLOR_1981, ExpenditureComponent.THERMOREGULATION}))
        warm = _adult_cohort(hft)
        cold = _adult_cohort(hft)
        warm.simulate_day(0, HabitatEnvironment(air_temperature=20.0))
        cold.simulate_day(0, HabitatEnvironment(air_temperature=-40.0))
        assert cold.get_todays_output().expenditure > warm.get_todays_output().expenditure

    @pytest.mark.parametrize("shift", [True, False])
    def test_starvation_shifts_body_condition(self, make_hft, environment, shift):
        hft = make_hft(
            mortality_factors=frozenset({MortalityFactor.STARVATION_ILLIUS_OCONNOR_2000}),
            shift_body_condition_for_starvation=shift,
        )
        cohort = _adult_cohort(hft, density=10.0, body_condition=0.05)
        bc_before = cohort.get_body_condition()
        mortality, shifted = StarvationIlliusOConnor2000(
            hft.bodyfat_deviation, True)(bc_before)
        cohort.simulate_day(0, environment)

        assert cohort.get_ind_per_km2() == pytest.approx(10.0 * (1.0 - mortality))
        if shift:
            assert shifted > bc_before
            assert cohort.get_body_condition() == pytest.approx(shifted)
        else:
            assert cohort.get_body_condition() == pytest.approx(bc_before)

    def test_starvation_no_shift_for_juveniles(self, make_hft, environment):
        hft = make_hft(
            mortality_factors=frozenset({MortalityFactor.STARVATION_ILLIUS_OCONNOR_2000}))
        cohort = HerbivoreCohort(hft, Sex.FEMALE, 10.0, age_days=100, body_condition=0.05)
        bc_before = cohort.get_body_condition()
        cohort.simulate_day(0, environment)
        assert cohort.get_ind_per_km2() == 10.0
        assert cohort.get_body_condition() == pytest.approx(bc_before, rel=0.01)

    def test_output_records_state(self, hft, environment):
        cohort = _adult_cohort(hft, density=8.0)
        cohort.simulate_day(0, environment)
        output = cohort.get_todays_output()
        assert output.inddens == 8.0
        assert output.age_years == pytest.approx(cohort.get_age_years())
        assert output.massdens == pytest.approx(8.0 * cohort.get_bodymass(), rel=0.01)


class TestReproduction:
    def _hft(self, make_hft):
        return make_hft(reproduction_model=ReproductionModel.CONST_MAX,
                        breeding_season_start=0, breeding_season_length=10,
                        reproduction_max=1.0, mortality_factors=frozenset())

    def test_mature_female_reproduces(self, make_hft, environment):
        cohort = _adult_cohort(self._hft(make_hft), density=10.0, years=3)
        offspring = cohort.simulate_day(0, environment)
        assert offspring == pytest.approx(10.0 * 1.0 / 10)
        assert cohort.get_todays_output().offspring == pytest.approx(offspring)

    def test_males_do_not_reproduce(self, make_hft, environment):
        cohort = _adult_cohort(self._hft(make_hft), sex=Sex.MALE, years=3)
        assert cohort.simulate_day(0, environment) == 0.0

    def test_immature_female(self, make_hft, environment):
        cohort = _adult_cohort(self._hft(make_hft), years=1)
        assert cohort.simulate_day(0, environment) == 0.0

    def test_outside_season(self, make_hft, environment):
        cohort = _adult_cohort(self._hft(make_hft), years=3)
        assert cohort.simulate_day(50, environment) == 0.0


# ═══════════════════════════════════════════════════════════════════════
# FORAGING
# ═══════════════════════════════════════════════════════════════════════

class TestForaging:
    def test_demand_before_simulate_day(self, hft, available_forage):
        cohort = _adult_cohort(hft)
        with pytest.raises(RuntimeError):
            cohort.get_forage_demands(available_forage)

    def test_dead_zero_demand(self, make_hft, environment, available_forage):
        hft = make_hft(mortality_factors=frozenset({MortalityFactor.LIFESPAN}))
        cohort = HerbivoreCohort(hft, Sex.FEMALE, 10.0,
                                 age_days=hft.lifespan * DAYS_PER_YEAR,
                                 body_condition=1.0)
        cohort.simulate_day(0, environment)
        assert cohort.get_forage_demands(available_forage) == 0.0

    def test_demand_scaled_by_density(self, hft, environment, available_forage):
        small = _adult_cohort(hft, density=1.0)
        large = _adult_cohort(hft, density=4.0)
        small.simulate_day(0, environment)
        large.simulate_day(0, environment)
        d_small = small.get_forage_demands(available_forage)
        d_large = large.get_forage_demands(available_forage)
        assert d_large[GRASS] == pytest.approx(4.0 * d_small[GRASS])

    def test_demand_within_intake_limit(self, hft, environment, available_forage):
        cohort = _adult_cohort(hft, density=2.0, body_condition=0.0)
        cohort.simulate_day(0, environment)
        demand = cohort.get_forage_demands(available_forage)
        max_intake = cohort.forage_demands.get_max_intake()
        per_ind = demand[GRASS] / cohort.get_ind_per_km2()
        assert per_ind <= max_intake[GRASS] * (1.0 + 1e-9)

    def test_memoized_after_eating(self, hft, environment, available_forage):
        cohort = _adult_cohort(hft)
        cohort.simulate_day(0, environment)
        demand = cohort.get_forage_demands(available_forage)
        cohort.eat(demand, available_forage.get_digestibility())
        assert cohort.get_forage_demands(available_forage) == demand

    def test_eating_builds_fat(self, hft, environment, available_forage):
        cohort = _adult_cohort(hft, body_condition=0.5)
        cohort.simulate_day(0, environment)
        fat_before = cohort.get_fatmass()
        demand = cohort.get_forage_demands(available_forage)
        cohort.eat(demand, available_forage.get_digestibility())
        assert cohort.get_fatmass() > fat_before
        output = cohort.get_todays_output()
        assert output.eaten_forage_per_ind[GRASS] == pytest.approx(
            demand[GRASS] / cohort.get_ind_per_km2())
        assert output.energy_intake_per_ind[GRASS] > 0.0

    def test_zero_density_fed_raises(self, hft, environment):
        cohort = HerbivoreCohort(hft, Sex.FEMALE, 0.0)
        with pytest.raises(RuntimeError, match="no individuals"):
            cohort.eat(ForageValues(1.0), ForageValues(0.5))

    def test_zero_density_zero_forage_ok(self, hft):
        cohort = HerbivoreCohort(hft, Sex.FEMALE, 0.0)
        cohort.eat(ForageValues(0.0), ForageValues(0.5))

    def test_eat_without_demand_raises(self, hft, environment):
        cohort = _adult_cohort(hft)
        cohort.simulate_day(0, environment)
        with pytest.raises(RuntimeError, match="get_forage_demands"):
            cohort.eat(ForageValues(1.0), ForageValues(0.5))

    def test_nitrogen_passes_through(self, hft, environment, available_forage):
        cohort = _adult_cohort(hft)
        cohort.simulate_day(0, environment)
        demand = cohort.get_forage_demands(available_forage)
        cohort.eat(demand, available_forage.get_digestibility(), demand * 0.01)
        assert cohort.take_nitrogen_excreta() == 0.0
        cohort.simulate_day(1, environment)
        excreta = cohort.take_nitrogen_excreta()
        assert 0.0 < excreta < demand[GRASS] * 0.01
        assert cohort.take_nitrogen_excreta() == 0.0


# ═══════════════════════════════════════════════════════════════════════
# MORTALITY APPLICATION
# ═══════════════════════════════════════════════════════════════════════

class TestApplyMortality:
    def test_cohort_proportional(self, hft):
        cohort = HerbivoreCohort(hft, Sex.FEMALE, 10.0)
        cohort.apply_mortality(0.25)
        assert cohort.get_ind_per_km2() == pytest.approx(7.5)

    def test_cohort_never_negative(self, hft):
        cohort = HerbivoreCohort(hft, Sex.FEMALE, 10.0)
        cohort.apply_mortality(1.0)
        assert cohort.get_ind_per_km2() == 0.0

    @pytest.mark.parametrize("p", [-0.1, 1.1])
    def test_invalid_probability(self, hft, p):
        with pytest.raises(ValueError):
            HerbivoreCohort(hft, Sex.FEMALE, 10.0).apply_mortality(p)
        with pytest.raises(ValueError):
            HerbivoreIndividual(hft, Sex.FEMALE, 1.0, FixedDraw()).apply_mortality(p)

    def test_individual_zero_probability_no_draw(self, hft):
        rng = FixedDraw()
        individual = HerbivoreIndividual(hft, Sex.FEMALE, 1.0, rng)
        individual.apply_mortality(0.0)
        assert not individual.is_dead()
        assert rng.calls == 0

    def test_individual_certain_death_no_draw(self, hft):
        rng = FixedDraw()
        individual = HerbivoreIndividual(hft, Sex.FEMALE, 1.0, rng)
        individual.apply_mortality(1.0)
        assert individual.is_dead()
        assert individual.get_ind_per_km2() == 0.0
        assert rng.calls == 0

    def test_individual_draw(self, hft):
        survivor = HerbivoreIndividual(hft, Sex.FEMALE, 1.0, FixedDraw(0.7))
        victim = HerbivoreIndividual(hft, Sex.FEMALE, 1.0, FixedDraw(0.3))
        survivor.apply_mortality(0.5)
        victim.apply_mortality(0.5)
        assert not survivor.is_dead()
        assert victim.is_dead()

    def test_individual_density(self, hft):
        individual = HerbivoreIndividual(hft, Sex.FEMALE, 4.0, FixedDraw())
        assert individual.get_ind_per_km2() == pytest.approx(0.25)


# ═══════════════════════════════════════════════════════════════════════
# MERGING
# ═══════════════════════════════════════════════════════════════════════

class TestCohortMerge:
    def test_density_and_fat(self, hft):
        a = _adult_cohort(hft, density=10.0, body_condition=0.2)
        b = _adult_cohort(hft, density=30.0, body_condition=0.6)
        fat_a, fat_b = a.get_fatmass(), b.get_fatmass()
        a.merge(b)
        assert a.get_ind_per_km2() == pytest.approx(40.0)
        assert b.get_ind_per_km2() == 0.0
        assert a.get_fatmass() == pytest.approx((10.0 * fat_a + 30.0 * fat_b) / 40.0)

    def test_different_age(self, hft):
        a = _adult_cohort(hft, years=3)
        b = _adult_cohort(hft, years=4)
        with pytest.raises(ValueError, match="age"):
            a.merge(b)

    def test_different_sex(self, hft):
        a = _adult_cohort(hft, sex=Sex.FEMALE)
        b = _adult_cohort(hft, sex=Sex.MALE)
        with pytest.raises(ValueError, match="sex"):
            a.merge(b)

    def test_different_hft(self, hft, make_hft):
        a = _adult_cohort(hft)
        b = _adult_cohort(make_hft(name='other'))
        with pytest.raises(ValueError, match="HFT"):
            a.merge(b)

    def test_merge_zero_densities(self, hft):
        a = _adult_cohort(hft, density=0.0)
        b = _adult_cohort(hft, density=0.0)
        a.merge(b)
        assert a.get_ind_per_km2() == 0.0

    def test_merge_takes_nitrogen(self, hft):
        a = _adult_cohort(hft)
        b = _adult_cohort(hft)
        b.nitrogen.ingest(2.0)
        a.merge(b)
        assert a.nitrogen.bound == pytest.approx(2.0)
        assert b.nitrogen.bound == 0.0
