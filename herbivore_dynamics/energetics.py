"""Energy budget and daily energy expenditure of a herbivore.

Contents:
  - FatmassEnergyBudget: fat reserve bookkeeping (anabolism/catabolism)
  - Expenditure components: allometric, Taylor et al. (1981),
    Zhu et al. (2018) and thermoregulation
  - Whole-body thermal conductance models

Units: mass in kg, energy in MJ, temperature in °C. All expenditure
functions return MJ/ind/day.

References:
  - Blaxter (1989) Energy metabolism in animals and man.
  - Taylor, Turner & Young (1981) Genetic control of equilibrium maintenance
    efficiency in cattle. Animal Production 33.
  - Bradley & Deavers (1980) A re-examination of the relationship between
    thermal conductance and body weight in mammals. Comp. Biochem. Physiol.
  - Cuyler & Øritsland (2004) Rain more important than windchill for
    insulation loss in Svalbard reindeer fur. Rangifer 24.
  - Zhu et al. (2018) Temperature and body mass jointly drive field
    metabolic rates of wild mammals.
"""

from __future__ import annotations

import math
from typing import FrozenSet

from herbivore_dynamics.config import Allometry
from herbivore_dynamics.types import ConductanceModel, ExpenditureComponent, FurSeason
from herbivore_dynamics.utils import average


# ═══════════════════════════════════════════════════════════════════════
# CONSTANTS
# ═══════════════════════════════════════════════════════════════════════

FACTOR_ANABOLISM = 54.6    # MJ needed to build 1 kg of body fat
FACTOR_CATABOLISM = 39.3   # MJ released by burning 1 kg of body fat

WATT_TO_MJ_PER_DAY = 0.0864   # 1 W = 86400 J/day

# Tolerance for rounding drift in fat mass comparisons (kg).
_FAT_TOLERANCE = 1e-9


# ═══════════════════════════════════════════════════════════════════════
# ENERGY BUDGET
# ═══════════════════════════════════════════════════════════════════════

class FatmassEnergyBudget:
    """Fat reserves and unmet energy needs of one herbivore.

    Invariant: 0 <= fatmass <= max_fatmass after every operation.

    Args:
        initial_fatmass: Fat mass at creation (kg/ind).
        max_fatmass: Ceiling of fat mass (kg/ind), must be > 0.

    Raises:
        ValueError: If max_fatmass <= 0 or initial_fatmass is outside
            [0, max_fatmass].
    """

    def __init__(self, initial_fatmass: float, max_fatmass: float):
        if max_fatmass <= 0.0:
            raise ValueError(
                f"FatmassEnergyBudget: max_fatmass must be > 0, got {max_fatmass}"
            )
        if initial_fatmass < 0.0:
            raise ValueError(
                f"FatmassEnergyBudget: initial_fatmass must be >= 0, "
                f"got {initial_fatmass}"
            )
        if initial_fatmass > max_fatmass + _FAT_TOLERANCE:
            raise ValueError(
                f"FatmassEnergyBudget: initial_fatmass ({initial_fatmass}) "
                f"exceeds max_fatmass ({max_fatmass})"
            )
        self.fatmass = min(initial_fatmass, max_fatmass)
        self.max_fatmass = max_fatmass
        self.energy_needs = 0.0
        self.max_fatmass_gain = 0.0    # kg/day; 0 means unlimited
        self.gained_today = 0.0        # kg anabolized since last set_max_fatmass()

    # ── queries ───────────────────────────────────────────────────────

    def get_fatmass(self) -> float:
        return self.fatmass

    def get_max_fatmass(self) -> float:
        return self.max_fatmass

    def get_energy_needs(self) -> float:
        return self.energy_needs

    def get_body_condition(self) -> float:
        """Fat mass relative to its current maximum, in [0, 1]."""
        return self.fatmass / self.max_fatmass

    def get_max_anabolism_per_day(self) -> float:
        """Energy (MJ) that could still be stored as fat today."""
        room = self.max_fatmass - self.fatmass
        if self.max_fatmass_gain > 0.0:
            room = min(room, self.max_fatmass_gain - self.gained_today)
        return max(0.0, room) * FACTOR_ANABOLISM

    # ── mutation ──────────────────────────────────────────────────────

    def add_energy_needs(self, energy: float) -> None:
        """Register additional energy expenditure (MJ/ind)."""
        if energy < 0.0:
            raise ValueError(
                f"add_energy_needs(): energy must be >= 0, got {energy}"
            )
        self.energy_needs += energy

    def catabolize_fat(self) -> None:
        """Pay all unmet energy needs by burning fat.

        Fat mass cannot drop below zero; any remaining deficit is dropped
        and shows up as low body condition, not as an error.
        """
        if self.energy_needs == 0.0:
            return
        burned = self.energy_needs / FACTOR_CATABOLISM
        self.fatmass = max(0.0, self.fatmass - burned)
        self.energy_needs = 0.0

    def metabolize_energy(self, energy: float) -> None:
        """Use ingested net energy (MJ/ind).

        Energy first covers the accumulated needs; the surplus is stored
        as fat up to today's anabolism limit. Energy beyond that limit is
        lost.

        Raises:
            ValueError: If energy is negative.
        """
        if energy < 0.0:
            raise ValueError(
                f"metabolize_energy(): energy must be >= 0, got {energy}"
            )
        if energy <= self.energy_needs:
            self.energy_needs -= energy
            return
        surplus = energy - self.energy_needs
        self.energy_needs = 0.0
        gain = min(surplus, self.get_max_anabolism_per_day()) / FACTOR_ANABOLISM
        self.fatmass = min(self.max_fatmass, self.fatmass + gain)
        self.gained_today += gain

    def set_max_fatmass(self, max_fatmass: float, max_gain: float) -> None:
        """Update the fat ceiling for today's body size.

        Starts a new day for the daily-gain limit. Fat mass above the new
        ceiling is cut down to it.

        Args:
            max_fatmass: New ceiling (kg/ind), > 0.
            max_gain: Maximum fat gain per day (kg/ind/day); 0 = no limit.

        Raises:
            ValueError: If max_fatmass <= 0 or max_gain < 0.
        """
        if max_fatmass <= 0.0:
            raise ValueError(
                f"set_max_fatmass(): max_fatmass must be > 0, got {max_fatmass}"
            )
        if max_gain < 0.0:
            raise ValueError(
                f"set_max_fatmass(): max_gain must be >= 0, got {max_gain}"
            )
        self.max_fatmass = max_fatmass
        self.max_fatmass_gain = max_gain
        self.gained_today = 0.0
        self.fatmass = min(self.fatmass, max_fatmass)

    def force_body_condition(self, body_condition: float) -> None:
        """Overwrite fat mass as body_condition * max_fatmass.

        Raises:
            ValueError: If body_condition is outside [0, 1].
        """
        if not 0.0 <= body_condition <= 1.0:
            raise ValueError(
                f"force_body_condition(): body condition must be in [0, 1], "
                f"got {body_condition}"
            )
        self.fatmass = body_condition * self.max_fatmass

    def merge(self, other: 'FatmassEnergyBudget', this_weight: float,
              other_weight: float) -> None:
        """Weighted average with another budget (cohort consolidation)."""
        self.fatmass = average(self.fatmass, other.fatmass,
                               this_weight, other_weight)
        self.max_fatmass = average(self.max_fatmass, other.max_fatmass,
                                   this_weight, other_weight)
        self.energy_needs = average(self.energy_needs, other.energy_needs,
                                    this_weight, other_weight)
        self.gained_today = average(self.gained_today, other.gained_today,
                                    this_weight, other_weight)
        self.fatmass = min(self.fatmass, self.max_fatmass)

    def __repr__(self) -> str:
        return (f"FatmassEnergyBudget(fatmass={self.fatmass:.4g}, "
                f"max_fatmass={self.max_fatmass:.4g}, "
                f"energy_needs={self.energy_needs:.4g})")


# ═══════════════════════════════════════════════════════════════════════
# EXPENDITURE COMPONENTS
# ═══════════════════════════════════════════════════════════════════════

def get_expenditure_taylor_1981(bodymass: float, bodymass_adult: float) -> float:
    """Activity-inclusive maintenance after Taylor et al. (1981).

    E = 0.4 * M * M_adult^-0.27  [MJ/day]
    """
    if bodymass <= 0.0 or bodymass_adult <= 0.0:
        raise ValueError("get_expenditure_taylor_1981(): body masses must be > 0")
    return 0.4 * bodymass * bodymass_adult ** -0.27


# Field metabolic rate regression coefficients:
# ln(FMR [kJ/day]) = a + b * ln(M [g]) + c * T_air [°C]
_ZHU_2018_INTERCEPT = 1.36
_ZHU_2018_MASS_SLOPE = 0.70
_ZHU_2018_TEMPERATURE_SLOPE = -0.0094


def get_expenditure_zhu_et_al_2018(bodymass: float, air_temperature: float) -> float:
    """Temperature-dependent field metabolic rate after Zhu et al. (2018).

    Returns:
        Expenditure in MJ/day.
    """
    if bodymass <= 0.0:
        raise ValueError("get_expenditure_zhu_et_al_2018(): bodymass must be > 0")
    log_kj = (_ZHU_2018_INTERCEPT
              + _ZHU_2018_MASS_SLOPE * math.log(bodymass * 1000.0)
              + _ZHU_2018_TEMPERATURE_SLOPE * air_temperature)
    return math.exp(log_kj) / 1000.0


def get_thermoregulatory_expenditure(
    thermoneutral_rate: float,
    conductance: float,
    core_temperature: float,
    air_temperature: float,
) -> float:
    """Extra heat production needed below the lower critical temperature.

    The lower critical temperature (LCT) is where passive heat from the
    thermoneutral metabolism just balances the heat loss:
        LCT = T_core - thermoneutral_rate / conductance
    Below it, the missing heat is conductance * (LCT - T_air).

    Args:
        thermoneutral_rate: Sum of other expenditure (MJ/ind/day), >= 0.
        conductance: Whole-body conductance (MJ/ind/day/°C), > 0.
        core_temperature: Body core temperature (°C).
        air_temperature: Ambient temperature (°C).

    Returns:
        Thermoregulatory expenditure in MJ/ind/day, >= 0.
    """
    if thermoneutral_rate < 0.0:
        raise ValueError(
            f"thermoneutral_rate must be >= 0, got {thermoneutral_rate}"
        )
    if conductance <= 0.0:
        raise ValueError(f"conductance must be > 0, got {conductance}")
    lower_critical_temp = core_temperature - thermoneutral_rate / conductance
    return conductance * max(0.0, lower_critical_temp - air_temperature)


# ═══════════════════════════════════════════════════════════════════════
# CONDUCTANCE
# ═══════════════════════════════════════════════════════════════════════

def get_conductance_bradley_deavers_1980(bodymass: float) -> float:
    """Whole-body conductance C = 0.224 * M^0.574 W/°C, as MJ/day/°C."""
    if bodymass <= 0.0:
        raise ValueError("bodymass must be > 0")
    return 0.224 * bodymass ** 0.574 * WATT_TO_MJ_PER_DAY


# Fur conductivity per body surface area [W/m²/°C].
_FUR_CONDUCTANCE = {
    FurSeason.SUMMER: 2.16,
    FurSeason.WINTER: 0.63,
}


def get_conductance_cuyler_oeritsland_2004(bodymass: float,
                                           season: FurSeason) -> float:
    """Reindeer fur conductance scaled to body surface.

    Surface area is estimated as 0.09 * M^0.66 m².

    Returns:
        Conductance in MJ/day/°C.
    """
    if bodymass <= 0.0:
        raise ValueError("bodymass must be > 0")
    surface = 0.09 * bodymass ** 0.66
    return _FUR_CONDUCTANCE[season] * surface * WATT_TO_MJ_PER_DAY


def get_conductance(model: ConductanceModel, bodymass: float) -> float:
    """Dispatch to the selected conductance model (winter fur).

    Raises:
        RuntimeError: If the model is not implemented.
    """
    if model == ConductanceModel.BRADLEY_DEAVERS_1980:
        return get_conductance_bradley_deavers_1980(bodymass)
    if model == ConductanceModel.CUYLER_OERITSLAND_2004:
        return get_conductance_cuyler_oeritsland_2004(bodymass, FurSeason.WINTER)
    raise RuntimeError(f"Conductance model not implemented: {model}")


def get_todays_expenditure(
    components: FrozenSet[ExpenditureComponent],
    bodymass: float,
    bodymass_adult: float,
    air_temperature: float,
    allometry: Allometry,
    conductance_model: ConductanceModel,
    core_temperature: float,
) -> float:
    """Sum of all selected expenditure components [MJ/ind/day].

    Thermoregulation is evaluated last, with the sum of all other
    components as thermoneutral rate.

    Raises:
        RuntimeError: If a component is not implemented.
    """
    result = 0.0
    add_thermoregulation = False
    for component in sorted(components, key=lambda c: c.value):
        if component == ExpenditureComponent.ALLOMETRIC:
            result += allometry.calc(bodymass)
        elif component == ExpenditureComponent.TAYLOR_1981:
            result += get_expenditure_taylor_1981(bodymass, bodymass_adult)
        elif component == ExpenditureComponent.ZHU_2018:
            result += get_expenditure_zhu_et_al_2018(bodymass, air_temperature)
        elif component == ExpenditureComponent.THERMOREGULATION:
            add_thermoregulation = True
        else:
            raise RuntimeError(f"Expenditure component not implemented: {component}")

    if add_thermoregulation:
        result += get_thermoregulatory_expenditure(
            result,
            get_conductance(conductance_model, bodymass),
            core_temperature,
            air_temperature,
        )
    return max(0.0, result)
