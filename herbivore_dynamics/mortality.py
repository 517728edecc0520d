"""Daily mortality of herbivores.

Each selected MortalityFactor yields an independent daily death
probability. Causes are mutually exclusive, so the probabilities are
summed and clamped to [0, 1].

Factors:
  - BACKGROUND: constant annual rate, separate rate in the first year
  - LIFESPAN: certain death once the maximum age is reached
  - STARVATION_THRESHOLD: certain death below a minimum body fat
  - STARVATION_ILLIUS_OCONNOR_2000: share of a normally distributed
    population whose body condition falls below zero

References:
  - Illius & O'Connor (2000) Resource heterogeneity and ungulate population
    dynamics. Oikos 89.
"""

from __future__ import annotations

import functools
import math
from dataclasses import dataclass, field
from typing import Dict, Optional

from scipy.special import ndtr

from herbivore_dynamics.config import Hft
from herbivore_dynamics.types import DAYS_PER_YEAR, MortalityFactor

_SQRT_2PI = math.sqrt(2.0 * math.pi)


# ═══════════════════════════════════════════════════════════════════════
# SINGLE FACTORS
# ═══════════════════════════════════════════════════════════════════════

def annual_to_daily(annual_mortality: float) -> float:
    """Daily probability giving the annual probability over 365 days."""
    if not 0.0 <= annual_mortality <= 1.0:
        raise ValueError(
            f"annual mortality must be in [0, 1], got {annual_mortality}"
        )
    return 1.0 - (1.0 - annual_mortality) ** (1.0 / DAYS_PER_YEAR)


def get_background_mortality(hft: Hft, age_days: int) -> float:
    """Daily background mortality; juvenile rate in the first year."""
    if age_days < 0:
        raise ValueError(f"age_days must be >= 0, got {age_days}")
    if age_days < DAYS_PER_YEAR:
        return annual_to_daily(hft.mortality_juvenile)
    return annual_to_daily(hft.mortality)


def get_lifespan_mortality(hft: Hft, age_days: int) -> float:
    """1.0 once the lifespan (years) is reached, else 0.0."""
    if age_days < 0:
        raise ValueError(f"age_days must be >= 0, got {age_days}")
    return 1.0 if age_days >= hft.lifespan * DAYS_PER_YEAR else 0.0


def get_starvation_threshold_mortality(bodyfat: float,
                                       min_bodyfat: float = 0.005) -> float:
    """1.0 if body fat (fat mass / body mass) is below the threshold."""
    if not 0.0 <= bodyfat <= 1.0:
        raise ValueError(f"bodyfat must be in [0, 1], got {bodyfat}")
    return 1.0 if bodyfat < min_bodyfat else 0.0


class StarvationIlliusOConnor2000:
    """Starvation of the lean tail of a cohort.

    Body condition of individuals is assumed normally distributed around
    the mean with standard deviation `fat_standard_deviation`. The daily
    mortality is the share of the distribution below zero:

        p = Φ(-bc / sd)

    With `shift_body_condition`, the dead tail is removed from the
    distribution and the mean of the survivors is returned as the new body
    condition (mean of the normal distribution truncated at zero):

        bc' = bc + sd * φ(bc/sd) / Φ(bc/sd)

    Args:
        fat_standard_deviation: SD of body condition in [0, 1]. With 0,
            mortality is 1.0 for bc <= 0 and 0.0 otherwise.
        shift_body_condition: Whether to return a shifted body condition.
    """

    def __init__(self, fat_standard_deviation: float, shift_body_condition: bool = True):
        if not 0.0 <= fat_standard_deviation <= 1.0:
            raise ValueError(
                f"fat_standard_deviation must be in [0, 1], "
                f"got {fat_standard_deviation}"
            )
        self.fat_standard_deviation = fat_standard_deviation
        self.shift_body_condition = shift_body_condition

    def __call__(self, body_condition: float):
        """Return (daily mortality, new body condition or None)."""
        if not 0.0 <= body_condition <= 1.0:
            raise ValueError(
                f"body_condition must be in [0, 1], got {body_condition}"
            )
        sd = self.fat_standard_deviation
        if sd == 0.0:
            return (1.0 if body_condition <= 0.0 else 0.0), None

        z = body_condition / sd
        mortality = float(ndtr(-z))
        new_body_condition = None
        if self.shift_body_condition and 0.0 < mortality < 1.0:
            survivors_cdf = float(ndtr(z))
            density = math.exp(-0.5 * z * z) / _SQRT_2PI
            shifted = body_condition + sd * density / survivors_cdf
            new_body_condition = min(1.0, shifted)
        return mortality, new_body_condition


# ═══════════════════════════════════════════════════════════════════════
# COMBINED
# ═══════════════════════════════════════════════════════════════════════

@functools.lru_cache(maxsize=None)
def _get_starvation_model(sd: float, shift: bool) -> StarvationIlliusOConnor2000:
    """Shared, stateless model instance per parameter combination."""
    return StarvationIlliusOConnor2000(sd, shift)


@dataclass
class MortalityResult:
    """Today's mortality of one herbivore."""
    total: float = 0.0
    by_factor: Dict[MortalityFactor, float] = field(default_factory=dict)
    new_body_condition: Optional[float] = None


def get_mortality(hft: Hft, age_days: int, bodyfat: float,
                  body_condition: float) -> MortalityResult:
    """Evaluate all mortality factors selected in the HFT.

    Juveniles (first year) get zero inter-individual deviation in the
    Illius & O'Connor model.

    Raises:
        RuntimeError: If a factor is not implemented.
    """
    result = MortalityResult()
    for factor in sorted(hft.mortality_factors, key=lambda f: f.value):
        if factor == MortalityFactor.BACKGROUND:
            p = get_background_mortality(hft, age_days)
        elif factor == MortalityFactor.LIFESPAN:
            p = get_lifespan_mortality(hft, age_days)
        elif factor == MortalityFactor.STARVATION_THRESHOLD:
            p = get_starvation_threshold_mortality(
                bodyfat, hft.bodyfat_starvation_threshold)
        elif factor == MortalityFactor.STARVATION_ILLIUS_OCONNOR_2000:
            sd = 0.0 if age_days < DAYS_PER_YEAR else hft.bodyfat_deviation
            starvation = _get_starvation_model(
                sd, hft.shift_body_condition_for_starvation)
            p, result.new_body_condition = starvation(body_condition)
        else:
            raise RuntimeError(f"Mortality factor not implemented: {factor}")
        if math.isnan(p):
            raise RuntimeError(f"Mortality factor {factor.value} returned NaN")
        result.by_factor[factor] = p
    result.total = min(1.0, max(0.0, sum(result.by_factor.values())))
    return result
