"""Per-forage-type values and the habitat's forage/environment snapshot.

ForageValues is a small NumPy-backed vector with one float per ForageType.
The same class carries masses (kgDM/km²), energies (MJ), energy contents
(MJ/kgDM) and digestibilities (fraction); the aliases below only document
intent at call sites.

Division rule: ``divide_safely`` returns a fixed value (default 0.0) for every
forage type whose divisor is zero instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional, Tuple, Union

import numpy as np

from herbivore_dynamics.types import FORAGE_TYPES, ForageType


# Tolerance for rounding drift when subtracting forage masses.
_NEGATIVE_TOLERANCE = 1e-9

Number = Union[int, float]


class ForageValues:
    """Vector of non-negative values, one per forage type.

    Args:
        values: Scalar (broadcast to all forage types), sequence ordered by
            ForageType, or dict {ForageType: value}.
        upper: Optional inclusive upper bound (1.0 for digestibility).

    Raises:
        ValueError: If a value is negative, NaN, infinite, or above ``upper``.
    """

    __slots__ = ('_values', 'upper')

    def __init__(self, values=0.0, upper: Optional[float] = None):
        self.upper = upper
        if isinstance(values, ForageValues):
            arr = values._values.copy()
        elif isinstance(values, dict):
            arr = np.zeros(len(FORAGE_TYPES), dtype=np.float64)
            for ft, v in values.items():
                arr[ForageType(ft)] = v
        elif np.isscalar(values):
            arr = np.full(len(FORAGE_TYPES), float(values), dtype=np.float64)
        else:
            arr = np.asarray(values, dtype=np.float64).copy()
            if arr.shape != (len(FORAGE_TYPES),):
                raise ValueError(
                    f"ForageValues needs {len(FORAGE_TYPES)} entries, "
                    f"got shape {arr.shape}"
                )
        self._values = self._check(arr)

    def _check(self, arr: np.ndarray) -> np.ndarray:
        if not np.all(np.isfinite(arr)):
            raise ValueError(f"ForageValues must be finite, got {arr}")
        if np.any(arr < 0.0):
            raise ValueError(f"ForageValues must be >= 0, got {arr}")
        if self.upper is not None and np.any(arr > self.upper):
            raise ValueError(
                f"ForageValues must be <= {self.upper}, got {arr}"
            )
        return arr

    def _new(self, arr: np.ndarray) -> 'ForageValues':
        result = ForageValues.__new__(ForageValues)
        result.upper = None
        result._values = result._check(arr)
        return result

    @staticmethod
    def _operand(other) -> np.ndarray:
        if isinstance(other, ForageValues):
            return other._values
        return np.float64(other)

    # ── element access ────────────────────────────────────────────────

    def __getitem__(self, forage_type: ForageType) -> float:
        return float(self._values[ForageType(forage_type)])

    def set(self, forage_type: ForageType, value: float) -> None:
        arr = self._values.copy()
        arr[ForageType(forage_type)] = value
        self._values = self._check(arr)

    def __iter__(self) -> Iterator[Tuple[ForageType, float]]:
        for ft in FORAGE_TYPES:
            yield ft, float(self._values[ft])

    def to_array(self) -> np.ndarray:
        return self._values.copy()

    def to_dict(self) -> dict:
        return {ft.name.lower(): float(self._values[ft]) for ft in FORAGE_TYPES}

    # ── arithmetic ────────────────────────────────────────────────────

    def __add__(self, other) -> 'ForageValues':
        return self._new(self._values + self._operand(other))

    __radd__ = __add__

    def __sub__(self, other) -> 'ForageValues':
        arr = self._values - self._operand(other)
        if np.any(arr < -_NEGATIVE_TOLERANCE * np.maximum(1.0, self._values)):
            raise ValueError(
                f"Subtraction yields negative forage values: {arr}"
            )
        return self._new(np.maximum(arr, 0.0))

    def __mul__(self, other) -> 'ForageValues':
        return self._new(self._values * self._operand(other))

    __rmul__ = __mul__

    def __truediv__(self, other) -> 'ForageValues':
        divisor = self._operand(other)
        if np.any(divisor == 0.0):
            raise ZeroDivisionError(
                "ForageValues division by zero; use divide_safely()"
            )
        return self._new(self._values / divisor)

    def divide_safely(self, other, na_value: float = 0.0) -> 'ForageValues':
        """Element-wise division that yields ``na_value`` for zero divisors."""
        divisor = np.broadcast_to(self._operand(other), self._values.shape)
        arr = np.full_like(self._values, float(na_value))
        nonzero = divisor != 0.0
        arr[nonzero] = self._values[nonzero] / divisor[nonzero]
        return self._new(arr)

    def min(self, other) -> 'ForageValues':
        """Element-wise minimum (returns a new vector)."""
        return self._new(np.minimum(self._values, self._operand(other)))

    def sum(self) -> float:
        return float(self._values.sum())

    # ── comparison ────────────────────────────────────────────────────

    def __eq__(self, other) -> bool:
        if isinstance(other, ForageValues):
            return bool(np.array_equal(self._values, other._values))
        if np.isscalar(other):
            return bool(np.all(self._values == other))
        return NotImplemented

    def __le__(self, other) -> bool:
        return bool(np.all(self._values <= self._operand(other)))

    def __ge__(self, other) -> bool:
        return bool(np.all(self._values >= self._operand(other)))

    __hash__ = None  # mutable through set()

    def __repr__(self) -> str:
        inner = ', '.join(f"{ft.name.lower()}={v:g}" for ft, v in self)
        return f"ForageValues({inner})"


# Aliases documenting what a vector holds.
ForageMass = ForageValues            # kgDM/km² or kgDM/ind
ForageEnergy = ForageValues          # MJ/ind
ForageEnergyContent = ForageValues   # MJ/kgDM


def Digestibility(values=0.0) -> ForageValues:
    """Proportional digestibility per forage type, each in [0, 1]."""
    return ForageValues(values, upper=1.0)


# ═══════════════════════════════════════════════════════════════════════
# HABITAT SNAPSHOTS
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class GrassForage:
    """Grass available to herbivores in one habitat.

    mass: dry matter (kgDM/km²), excluding any ungrazable reserve.
    digestibility: proportional digestibility [0, 1].
    nitrogen_mass: nitrogen in the grass (kgN/km²).
    fpc: foliar percentage cover [0, 1]; the sward density is mass/fpc.
    """
    mass: float = 0.0
    digestibility: float = 0.0
    nitrogen_mass: float = 0.0
    fpc: float = 0.0

    def __post_init__(self):
        if self.mass < 0.0:
            raise ValueError(f"GrassForage.mass must be >= 0, got {self.mass}")
        if not 0.0 <= self.digestibility <= 1.0:
            raise ValueError(
                f"GrassForage.digestibility must be in [0, 1], "
                f"got {self.digestibility}"
            )
        if self.nitrogen_mass < 0.0 or self.nitrogen_mass > self.mass:
            raise ValueError(
                f"GrassForage.nitrogen_mass must be in [0, mass], "
                f"got {self.nitrogen_mass}"
            )
        if not 0.0 <= self.fpc <= 1.0:
            raise ValueError(f"GrassForage.fpc must be in [0, 1], got {self.fpc}")
        if self.mass > 0.0 and self.fpc == 0.0:
            raise ValueError("GrassForage.fpc must be > 0 if mass > 0")

    def get_sward_density(self) -> float:
        """Dry matter density where grass grows (kgDM/km²)."""
        if self.fpc == 0.0:
            return 0.0
        return self.mass / self.fpc


@dataclass
class HabitatForage:
    """All forage in a habitat, one record per forage type."""
    grass: GrassForage = field(default_factory=GrassForage)

    def _by_type(self) -> dict:
        return {ForageType.GRASS: self.grass}

    def get_mass(self) -> ForageValues:
        return ForageValues({ft: f.mass for ft, f in self._by_type().items()})

    def get_digestibility(self) -> ForageValues:
        return Digestibility(
            {ft: f.digestibility for ft, f in self._by_type().items()}
        )

    def get_nitrogen_mass(self) -> ForageValues:
        return ForageValues(
            {ft: f.nitrogen_mass for ft, f in self._by_type().items()}
        )

    def get_sward_density(self) -> ForageValues:
        return ForageValues(
            {ft: f.get_sward_density() for ft, f in self._by_type().items()}
        )

    def get_total(self) -> float:
        return self.get_mass().sum()


@dataclass(frozen=True)
class HabitatEnvironment:
    """Abiotic conditions of a habitat on one day.

    air_temperature: °C.
    snow_depth: cm (>= 0).
    """
    air_temperature: float = 20.0
    snow_depth: float = 0.0

    def __post_init__(self):
        if self.snow_depth < 0.0:
            raise ValueError(
                f"HabitatEnvironment.snow_depth must be >= 0, got {self.snow_depth}"
            )
