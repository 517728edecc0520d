"""Reproduction models: daily offspring per female.

All models deliver offspring only within a breeding season. The body
condition passed in is meant to be the average over the gestation period,
not today's value.

Models:
  - ReproductionConstMax: annual maximum spread evenly over the season
  - ReproductionLinear: ConstMax scaled by body condition
  - ReprIlliusOconnor2000: logistic function of body condition, delivered
    in a logistic pulse over the season

References:
  - Illius & O'Connor (2000) Resource heterogeneity and ungulate population
    dynamics. Oikos 89.
"""

from __future__ import annotations

import functools
import math

from herbivore_dynamics.config import Hft
from herbivore_dynamics.types import DAYS_PER_YEAR, ReproductionModel


def _check_day(day: int) -> None:
    if not 0 <= day < DAYS_PER_YEAR:
        raise ValueError(f"day must be in [0, {DAYS_PER_YEAR}), got {day}")


def _check_body_condition(body_condition: float) -> None:
    if not 0.0 <= body_condition <= 1.0:
        raise ValueError(
            f"body_condition must be in [0, 1], got {body_condition}"
        )


class BreedingSeason:
    """Recurring period of the year during which offspring are born.

    The season may wrap across the end of the year.

    Args:
        start: First day of the season (0 = January 1st), in [0, 364].
        length: Number of days, in [1, 365].
    """

    def __init__(self, start: int, length: int):
        if not 0 <= start < DAYS_PER_YEAR:
            raise ValueError(
                f"BreedingSeason: start must be in [0, {DAYS_PER_YEAR}), got {start}"
            )
        if not 1 <= length <= DAYS_PER_YEAR:
            raise ValueError(
                f"BreedingSeason: length must be in [1, {DAYS_PER_YEAR}], got {length}"
            )
        self.start = start
        self.length = length

    def get_day_in_season(self, day: int) -> int:
        """Days since season start (0-based), wrapping at year end."""
        _check_day(day)
        return (day - self.start) % DAYS_PER_YEAR

    def is_in_season(self, day: int) -> bool:
        return self.get_day_in_season(day) < self.length

    def annual_to_daily_rate(self, annual: float) -> float:
        """Spread an annual rate evenly over the season."""
        return annual / self.length


class ReproductionConstMax:
    """Constant daily rate within the season; sums to annual_increase."""

    def __init__(self, breeding_season: BreedingSeason, annual_increase: float):
        if annual_increase < 0.0:
            raise ValueError(
                f"annual_increase must be >= 0, got {annual_increase}"
            )
        self.breeding_season = breeding_season
        self.annual_increase = annual_increase

    def get_offspring_density(self, day: int) -> float:
        if not self.breeding_season.is_in_season(day):
            return 0.0
        return self.breeding_season.annual_to_daily_rate(self.annual_increase)


class ReproductionLinear(ReproductionConstMax):
    """Constant rate scaled linearly with body condition."""

    def get_offspring_density(self, day: int, body_condition: float) -> float:
        _check_body_condition(body_condition)
        return super().get_offspring_density(day) * body_condition


class ReprIlliusOconnor2000:
    """Logistic body-condition model by Illius & O'Connor (2000).

    Annual offspring per female:
        k = annual_increase / (1 + exp(-15 * (bc - 0.3)))

    The annual amount is distributed within the season by the increments
    of a normalized logistic curve over the season length, so the season
    as a whole delivers exactly k. A season of one day delivers k at once.
    """

    # Steepness of the within-season pulse.
    PULSE_STEEPNESS = 10.0

    def __init__(self, breeding_season: BreedingSeason, annual_increase: float):
        if annual_increase < 0.0:
            raise ValueError(
                f"annual_increase must be >= 0, got {annual_increase}"
            )
        self.breeding_season = breeding_season
        self.annual_increase = annual_increase
        # Share of the annual offspring for every day of the season.
        self._fractions = [self._cumulative(i + 1.0) - self._cumulative(float(i))
                           for i in range(breeding_season.length)]

    def _logistic(self, x: float) -> float:
        length = self.breeding_season.length
        return 1.0 / (1.0 + math.exp(
            -self.PULSE_STEEPNESS * (x - length / 2.0) / length))

    def _cumulative(self, x: float) -> float:
        lo = self._logistic(0.0)
        hi = self._logistic(float(self.breeding_season.length))
        return (self._logistic(x) - lo) / (hi - lo)

    def get_season_fraction(self, day: int) -> float:
        """Share of the annual offspring born on this day."""
        i = self.breeding_season.get_day_in_season(day)
        if i >= self.breeding_season.length:
            return 0.0
        return self._fractions[i]

    def get_offspring_density(self, day: int, body_condition: float) -> float:
        _check_day(day)
        _check_body_condition(body_condition)
        fraction = self.get_season_fraction(day)
        if fraction == 0.0:
            return 0.0
        annual = self.annual_increase / (1.0 + math.exp(-15.0 * (body_condition - 0.3)))
        return annual * fraction


@functools.lru_cache(maxsize=None)
def _get_model(model: ReproductionModel, start: int, length: int, annual_increase: float):
    """Shared model instance per parameter combination (models are stateless)."""
    season = BreedingSeason(start, length)
    if model == ReproductionModel.ILLIUS_OCONNOR_2000:
        return ReprIlliusOconnor2000(season, annual_increase)
    if model == ReproductionModel.CONST_MAX:
        return ReproductionConstMax(season, annual_increase)
    if model == ReproductionModel.LINEAR:
        return ReproductionLinear(season, annual_increase)
    raise RuntimeError(f"Reproduction model not implemented: {model}")


def get_offspring_proportion(hft: Hft, day: int, body_condition: float) -> float:
    """Offspring per mature female today, according to the HFT's model.

    Raises:
        RuntimeError: If the reproduction model is not implemented.
    """
    model = hft.reproduction_model
    if model == ReproductionModel.NONE:
        return 0.0

    repr_model = _get_model(model, hft.breeding_season_start,
                            hft.breeding_season_length, hft.reproduction_max)
    if model == ReproductionModel.CONST_MAX:
        return repr_model.get_offspring_density(day)
    return repr_model.get_offspring_density(day, body_condition)
