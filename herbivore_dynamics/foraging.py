"""Forage demand of one herbivore under physiological and foraging limits.

Contents:
  - Digestive limits: allometric, fixed fraction, Illius & Gordon (1992)
  - HalfMaxIntake: Holling Type II functional response
  - Diet composition (pure grazer)
  - GetForageDemands: per-individual daily demand, initialized once a day

All masses are dry matter. Per-individual quantities are kgDM/ind/day;
forage availability is kgDM/km².

References:
  - Illius & Gordon (1992) Modelling the nutritional ecology of ungulate
    herbivores. Oecologia 89.
  - Illius & Gordon (1999) Scaling up from functional response to numerical
    response in vertebrate herbivores.
  - Illius & O'Connor (2000) Resource heterogeneity and ungulate population
    dynamics. Oikos 89.
  - Shipley et al. (1999) Predicting bite size selection of mammalian
    herbivores. Functional Ecology 13.
"""

from __future__ import annotations

import math
from typing import Dict, Optional

from herbivore_dynamics.config import Hft
from herbivore_dynamics.forage import ForageValues, HabitatForage
from herbivore_dynamics.types import (
    DAYS_PER_YEAR,
    DietComposer,
    DigestionType,
    DigestiveLimit,
    ForageType,
    ForagingLimit,
)


# Relative tolerance when checking eaten forage against the intake limit.
_INTAKE_TOLERANCE = 1e-6


# ═══════════════════════════════════════════════════════════════════════
# DIGESTIVE LIMITS
# ═══════════════════════════════════════════════════════════════════════

# Regression parameters (i, j, k) for grass, by digestion type.
_ILLIUS_GORDON_PARAMS = {
    DigestionType.HINDGUT: (0.108, 3.284, 0.080),
    DigestionType.RUMINANT: (0.034, 3.565, 0.077),
}


def get_digestive_limit_illius_gordon_1992(
    bodymass_adult: float,
    digestion_type: DigestionType,
    bodymass: float,
    digestibility: ForageValues,
) -> ForageValues:
    """Maximum daily energy intake constrained by gut passage rate.

    I = i * e^(j*d) * M_ad^(k*e^d + 0.73) * (M/M_ad)^0.75   [MJ/day]

    Args:
        bodymass_adult: Body mass at physical maturity (kg).
        digestion_type: Ruminant or hindgut fermenter.
        bodymass: Current body mass (kg/ind), <= bodymass_adult.
        digestibility: Proportional digestibility per forage type.

    Returns:
        Maximum energy intake per forage type (MJ/ind/day).

    Raises:
        ValueError: If a body mass is not positive.
        RuntimeError: If bodymass exceeds bodymass_adult or the digestion
            type is not implemented.
    """
    if bodymass_adult <= 0.0:
        raise ValueError(f"bodymass_adult must be > 0, got {bodymass_adult}")
    if bodymass <= 0.0:
        raise ValueError(f"bodymass must be > 0, got {bodymass}")
    if bodymass > bodymass_adult * (1.0 + 1e-9):
        raise RuntimeError(
            f"bodymass ({bodymass}) exceeds bodymass_adult ({bodymass_adult})"
        )
    if digestion_type not in _ILLIUS_GORDON_PARAMS:
        raise RuntimeError(f"Digestion type not implemented: {digestion_type}")
    i, j, k = _ILLIUS_GORDON_PARAMS[digestion_type]

    gut_scaling = (bodymass / bodymass_adult) ** 0.75
    result = ForageValues(0.0)
    for ft, d in digestibility:
        if ft != ForageType.GRASS:
            raise RuntimeError(f"Forage type not implemented: {ft}")
        energy = (i * math.exp(j * d)
                  * bodymass_adult ** (k * math.exp(d) + 0.73)
                  * gut_scaling)
        result.set(ft, energy)
    return result


def get_digestive_limit_allometric(hft: Hft, bodymass_adult: float,
                                   bodymass: float) -> float:
    """Allometric gut capacity (kgDM/ind/day), scaled down for juveniles."""
    adult_limit = hft.digestive_limit_allometry.calc(bodymass_adult)
    return adult_limit * (bodymass / bodymass_adult) ** 0.75


def get_digestive_limit_fixed_fraction(hft: Hft, bodymass: float) -> float:
    """Intake as a fixed fraction of current body mass (kgDM/ind/day)."""
    return hft.digestive_limit_fixed * bodymass


# ═══════════════════════════════════════════════════════════════════════
# FUNCTIONAL RESPONSE
# ═══════════════════════════════════════════════════════════════════════

class HalfMaxIntake:
    """Hyperbolically saturating (Holling Type II) intake rate.

        I = I_max * V / (V_half + V)

    Units of density and intake are free but must be used consistently.

    Raises:
        ValueError: If half_max_density or max_intake is not positive.
    """

    def __init__(self, half_max_density: float, max_intake: float):
        if not half_max_density > 0.0:
            raise ValueError(
                f"HalfMaxIntake: half_max_density must be > 0, "
                f"got {half_max_density}"
            )
        if not max_intake > 0.0:
            raise ValueError(
                f"HalfMaxIntake: max_intake must be > 0, got {max_intake}"
            )
        self.half_max_density = half_max_density
        self.max_intake = max_intake

    def get_intake_rate(self, density: float) -> float:
        if density < 0.0:
            raise ValueError(f"HalfMaxIntake: density must be >= 0, got {density}")
        return self.max_intake * density / (self.half_max_density + density)


def kg_per_km2_to_g_per_m2(value: float) -> float:
    return value / 1000.0


# ═══════════════════════════════════════════════════════════════════════
# DIET COMPOSITION
# ═══════════════════════════════════════════════════════════════════════

def compose_diet(composer: DietComposer) -> Dict[ForageType, float]:
    """Fraction of energy needs to be covered by each forage type.

    Raises:
        RuntimeError: If the composer is not implemented.
    """
    if composer == DietComposer.PURE_GRAZER:
        return {ForageType.GRASS: 1.0}
    raise RuntimeError(f"Diet composer not implemented: {composer}")


# ═══════════════════════════════════════════════════════════════════════
# FORAGE DEMANDS
# ═══════════════════════════════════════════════════════════════════════

class GetForageDemands:
    """Daily forage demand of one herbivore individual.

    Call `init_today()` once per day with the available forage, then query
    the demand by calling the object with the energy needs. The demand is
    computed on the first query of a day and returned unchanged by every
    further query on the same day.

    Args:
        hft: Herbivore functional type.
        bodymass_adult: Sex-specific adult body mass (kg).
    """

    def __init__(self, hft: Hft, bodymass_adult: float):
        if bodymass_adult <= 0.0:
            raise ValueError(
                f"GetForageDemands: bodymass_adult must be > 0, got {bodymass_adult}"
            )
        self.hft = hft
        self.bodymass_adult = bodymass_adult
        self.today: Optional[int] = None
        self.available_forage: Optional[HabitatForage] = None
        self.energy_content = ForageValues(0.0)
        self.bodymass = 0.0
        self.max_intake: Optional[ForageValues] = None   # None = unlimited
        self.eaten_today = ForageValues(0.0)
        self._demand_today: Optional[ForageValues] = None

    def is_day_initialized(self, day: int) -> bool:
        return self.today is not None and self.today == day

    def init_today(self, day: int, available_forage: HabitatForage,
                   energy_content: ForageValues, bodymass: float) -> None:
        """Prepare the solver for a new day.

        Raises:
            ValueError: If day is outside [0, 365) or bodymass <= 0.
        """
        if not 0 <= day < DAYS_PER_YEAR:
            raise ValueError(f"init_today(): day out of range: {day}")
        if bodymass <= 0.0:
            raise ValueError(f"init_today(): bodymass must be > 0, got {bodymass}")
        self.today = day
        self.available_forage = available_forage
        self.energy_content = ForageValues(energy_content)
        self.bodymass = bodymass
        self.eaten_today = ForageValues(0.0)
        self._demand_today = None
        self.max_intake = self._get_max_intake()

    def add_eaten(self, eaten: ForageValues) -> None:
        """Register forage eaten today (kgDM/ind).

        Raises:
            RuntimeError: If the day is not initialized or the intake
                limit is exceeded.
        """
        if self.today is None:
            raise RuntimeError("add_eaten(): init_today() has not been called")
        self.eaten_today = self.eaten_today + eaten
        if self.max_intake is not None:
            for ft, value in self.eaten_today:
                limit = self.max_intake[ft]
                if value > limit * (1.0 + _INTAKE_TOLERANCE) + 1e-12:
                    raise RuntimeError(
                        f"add_eaten(): eaten {ft.name.lower()} ({value} kg/ind) "
                        f"exceeds the maximum intake ({limit} kg/ind)"
                    )

    def __call__(self, energy_needs: float) -> ForageValues:
        """Forage demand per individual (kgDM/ind) for today.

        Args:
            energy_needs: Energy (MJ/ind) for expenditure and fat gain;
                only used on the first query of the day.

        Raises:
            RuntimeError: If the day is not initialized.
            ValueError: If energy_needs is negative.
        """
        if self.today is None:
            raise RuntimeError("GetForageDemands: init_today() has not been called")
        if energy_needs < 0.0:
            raise ValueError(f"energy_needs must be >= 0, got {energy_needs}")
        if self._demand_today is None:
            self._demand_today = self._compute_demand(energy_needs)
        return ForageValues(self._demand_today)

    def get_max_intake(self) -> Optional[ForageValues]:
        """Today's intake limit per forage type (kgDM/ind), None if unlimited."""
        return None if self.max_intake is None else ForageValues(self.max_intake)

    # ── internals ─────────────────────────────────────────────────────

    def _compute_demand(self, energy_needs: float) -> ForageValues:
        diet = compose_diet(self.hft.diet_composer)
        energy_by_type = ForageValues({ft: frac * energy_needs
                                       for ft, frac in diet.items()})
        demand = energy_by_type.divide_safely(self.energy_content, 0.0)
        if self.max_intake is not None:
            demand = demand.min(self.max_intake)
        return demand

    def _get_digestive_limit(self) -> Optional[ForageValues]:
        limit = self.hft.digestive_limit
        if limit == DigestiveLimit.NONE:
            return None
        if limit == DigestiveLimit.ALLOMETRIC:
            return ForageValues(get_digestive_limit_allometric(
                self.hft, self.bodymass_adult, self.bodymass))
        if limit == DigestiveLimit.FIXED_FRACTION:
            return ForageValues(get_digestive_limit_fixed_fraction(
                self.hft, self.bodymass))
        if limit == DigestiveLimit.ILLIUS_GORDON_1992:
            energy = get_digestive_limit_illius_gordon_1992(
                self.bodymass_adult,
                self.hft.digestion_type,
                min(self.bodymass, self.bodymass_adult),
                self.available_forage.get_digestibility(),
            )
            return energy.divide_safely(self.energy_content, 0.0)
        raise RuntimeError(f"Digestive limit not implemented: {limit}")

    def _get_max_intake(self) -> Optional[ForageValues]:
        max_intake = self._get_digestive_limit()
        if not self.hft.foraging_limits:
            return max_intake

        sward_density = self.available_forage.get_sward_density()
        for foraging_limit in sorted(self.hft.foraging_limits, key=lambda f: f.value):
            if foraging_limit not in (ForagingLimit.ILLIUS_OCONNOR_2000,
                                      ForagingLimit.GENERAL_FUNCTIONAL_RESPONSE):
                raise RuntimeError(f"Foraging limit not implemented: {foraging_limit}")
            if max_intake is None:
                raise RuntimeError(
                    f"Foraging limit {foraging_limit.value} needs a digestive limit"
                )
            limited = ForageValues(0.0)
            for ft, upper in max_intake:
                if upper <= 0.0:
                    continue
                response = HalfMaxIntake(self.hft.half_max_intake_density, upper)
                limited.set(ft, response.get_intake_rate(
                    kg_per_km2_to_g_per_m2(sward_density[ft])))
            max_intake = limited
        return max_intake
