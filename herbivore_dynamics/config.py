"""Configuration system for herbivore_dynamics.

Two kinds of settings:
  - Hft: one Herbivore Functional Type (species/ecotype). Immutable and
    shared by reference by every herbivore of that type.
  - Parameters: global settings (forage distribution, herbivore
    representation, establishment interval, habitat area, dead threshold).

YAML layout (all keys optional):

    parameters:
      herbivore_type: cohort
      dead_herbivore_threshold: 0.1
    hfts:
      - name: grazer
        digestion_type: ruminant
        mortality_factors: [background, lifespan, starvation_threshold]
        expenditure_allometry: {coefficient: 0.4, exponent: 0.75}

Layers are merged base → override → dict overrides, then validated.
Validation raises ValueError on the first violated constraint and warns
(UserWarning) about settings that are legal but suspicious.
"""

from __future__ import annotations

import copy
import dataclasses
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union

import yaml

from herbivore_dynamics.types import (
    DAYS_PER_YEAR,
    ConductanceModel,
    DietComposer,
    DigestionType,
    DigestiveLimit,
    ExpenditureComponent,
    ForageDistributionAlgorithm,
    ForagingLimit,
    HerbivoreType,
    MortalityFactor,
    NetEnergyModel,
    ReproductionModel,
)


# ═══════════════════════════════════════════════════════════════════════
# CONFIGURATION DATACLASSES
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Allometry:
    """Power law y = coefficient * M^exponent."""
    coefficient: float = 1.0
    exponent: float = 1.0

    def calc(self, bodymass: float) -> float:
        return self.coefficient * bodymass ** self.exponent


@dataclass(frozen=True)
class Hft:
    """Herbivore Functional Type.

    Units: body masses in kg, ages in years unless named *_days, densities
    in ind/km², energy in MJ, fractions in [0, 1].
    """
    name: str = 'grazer'

    # Body mass and fat
    bodyfat_birth: float = 0.1             # fat mass / body mass at birth
    bodyfat_deviation: float = 0.125       # SD of body condition among individuals
    bodyfat_max: float = 0.3               # max fat mass / body mass
    bodyfat_max_daily_gain: float = 0.0    # max daily fat gain / body mass (0 = no limit)
    bodyfat_starvation_threshold: float = 0.005  # body fat below which starvation kills
    bodymass_birth: float = 5.0
    bodymass_female: float = 50.0
    bodymass_male: float = 70.0

    # Digestion and foraging
    digestion_type: DigestionType = DigestionType.RUMINANT
    net_energy_model: NetEnergyModel = NetEnergyModel.DEFAULT
    digestive_limit: DigestiveLimit = DigestiveLimit.ILLIUS_GORDON_1992
    digestive_limit_allometry: Allometry = field(
        default_factory=lambda: Allometry(coefficient=0.05, exponent=0.76)
    )
    digestive_limit_fixed: float = 0.05    # kgDM/day per kg body mass
    foraging_limits: FrozenSet[ForagingLimit] = frozenset(
        {ForagingLimit.ILLIUS_OCONNOR_2000}
    )
    half_max_intake_density: float = 20.0  # gDM/m² (Type II half saturation)
    diet_composer: DietComposer = DietComposer.PURE_GRAZER

    # Energy expenditure
    expenditure_components: FrozenSet[ExpenditureComponent] = frozenset(
        {ExpenditureComponent.TAYLOR_1981}
    )
    expenditure_allometry: Allometry = field(
        default_factory=lambda: Allometry(coefficient=0.4, exponent=0.75)
    )
    conductance: ConductanceModel = ConductanceModel.BRADLEY_DEAVERS_1980
    core_temperature: float = 38.0         # °C

    # Mortality
    mortality_factors: FrozenSet[MortalityFactor] = frozenset({
        MortalityFactor.BACKGROUND,
        MortalityFactor.LIFESPAN,
        MortalityFactor.STARVATION_THRESHOLD,
    })
    mortality: float = 0.05                # annual background mortality of adults
    mortality_juvenile: float = 0.3        # annual background mortality in 1st year
    lifespan: int = 16                     # years
    shift_body_condition_for_starvation: bool = True

    # Reproduction
    reproduction_model: ReproductionModel = ReproductionModel.ILLIUS_OCONNOR_2000
    reproduction_max: float = 0.7          # max offspring per female per year
    breeding_season_start: int = 121       # day of year (0 = Jan 1st)
    breeding_season_length: int = 60       # days
    gestation_months: int = 9
    maturity_age_sex: float = 2.0          # age of first reproduction (years)
    maturity_age_phys_female: float = 3.0  # age of full adult body mass
    maturity_age_phys_male: float = 3.0

    # Establishment
    establishment_density: float = 10.0    # ind/km²
    establishment_age_range: Tuple[int, int] = (1, 5)


@dataclass(frozen=True)
class Parameters:
    """Global simulation parameters."""
    forage_distribution: ForageDistributionAlgorithm = ForageDistributionAlgorithm.EQUALLY
    herbivore_type: HerbivoreType = HerbivoreType.COHORT
    herbivore_establish_interval: int = 365   # days (0 = no re-establishment)
    habitat_area_km2: float = 100.0           # only for HerbivoreType.INDIVIDUAL
    dead_herbivore_threshold: float = 1e-4    # ind/km²; cohorts at or below are removed
    one_hft_per_habitat: bool = False
    seed: int = 42


@dataclass
class SimulationConfig:
    """Complete configuration: global parameters plus the list of HFTs.

    Load from YAML via `load_config()`.
    """
    params: Parameters = field(default_factory=Parameters)
    hfts: List[Hft] = field(default_factory=lambda: [Hft()])


# ═══════════════════════════════════════════════════════════════════════
# VALIDATION
# ═══════════════════════════════════════════════════════════════════════

def _check_fraction(name: str, value: float, allow_one: bool = True) -> None:
    upper_ok = value <= 1.0 if allow_one else value < 1.0
    if not (value >= 0.0 and upper_ok):
        bound = "[0, 1]" if allow_one else "[0, 1)"
        raise ValueError(f"hft.{name} must be in {bound}, got {value}")


def _check_positive(name: str, value: float) -> None:
    if not value > 0.0:
        raise ValueError(f"hft.{name} must be > 0, got {value}")


def validate_hft(hft: Hft, params: Optional[Parameters] = None) -> None:
    """Validate one HFT. Raises ValueError on failure.

    Args:
        hft: The HFT to check.
        params: Global parameters; needed to check settings that only make
            sense for one herbivore representation.
    """
    if not hft.name:
        raise ValueError("hft.name must not be empty")

    # Body mass and fat
    _check_fraction('bodyfat_birth', hft.bodyfat_birth)
    _check_fraction('bodyfat_max', hft.bodyfat_max, allow_one=False)
    _check_fraction('bodyfat_max_daily_gain', hft.bodyfat_max_daily_gain)
    _check_fraction('bodyfat_deviation', hft.bodyfat_deviation)
    _check_fraction('bodyfat_starvation_threshold', hft.bodyfat_starvation_threshold)
    if hft.bodyfat_birth > hft.bodyfat_max:
        raise ValueError(
            f"hft.bodyfat_birth ({hft.bodyfat_birth}) must not exceed "
            f"bodyfat_max ({hft.bodyfat_max})"
        )
    _check_positive('bodymass_birth', hft.bodymass_birth)
    _check_positive('bodymass_female', hft.bodymass_female)
    _check_positive('bodymass_male', hft.bodymass_male)
    if hft.bodymass_birth >= min(hft.bodymass_female, hft.bodymass_male):
        raise ValueError(
            "hft.bodymass_birth must be smaller than adult body masses"
        )

    # Digestion and foraging
    if hft.digestive_limit == DigestiveLimit.ALLOMETRIC:
        _check_positive('digestive_limit_allometry.coefficient',
                        hft.digestive_limit_allometry.coefficient)
    if hft.digestive_limit == DigestiveLimit.FIXED_FRACTION:
        _check_positive('digestive_limit_fixed', hft.digestive_limit_fixed)
    if (ForagingLimit.GENERAL_FUNCTIONAL_RESPONSE in hft.foraging_limits
            and ForagingLimit.ILLIUS_OCONNOR_2000 in hft.foraging_limits):
        raise ValueError(
            "hft.foraging_limits: 'general_functional_response' and "
            "'illius_oconnor_2000' are mutually exclusive"
        )
    if (ForagingLimit.ILLIUS_OCONNOR_2000 in hft.foraging_limits
            and hft.digestive_limit != DigestiveLimit.ILLIUS_GORDON_1992):
        raise ValueError(
            "hft.foraging_limits 'illius_oconnor_2000' requires "
            "digestive_limit 'illius_gordon_1992'"
        )
    if (ForagingLimit.GENERAL_FUNCTIONAL_RESPONSE in hft.foraging_limits
            and hft.digestive_limit == DigestiveLimit.NONE):
        raise ValueError(
            "hft.foraging_limits 'general_functional_response' requires "
            "a digestive_limit other than 'none'"
        )
    if hft.foraging_limits:
        _check_positive('half_max_intake_density', hft.half_max_intake_density)

    # Expenditure
    if not hft.expenditure_components:
        raise ValueError("hft.expenditure_components must not be empty")
    if hft.expenditure_components == frozenset({ExpenditureComponent.THERMOREGULATION}):
        raise ValueError(
            "hft.expenditure_components: 'thermoregulation' needs at least "
            "one other component providing the thermoneutral rate"
        )
    if ExpenditureComponent.ALLOMETRIC in hft.expenditure_components:
        _check_positive('expenditure_allometry.coefficient',
                        hft.expenditure_allometry.coefficient)
    if ExpenditureComponent.THERMOREGULATION in hft.expenditure_components:
        _check_positive('core_temperature', hft.core_temperature)

    # Mortality
    _check_fraction('mortality', hft.mortality, allow_one=False)
    _check_fraction('mortality_juvenile', hft.mortality_juvenile, allow_one=False)
    if MortalityFactor.LIFESPAN in hft.mortality_factors and hft.lifespan < 1:
        raise ValueError(f"hft.lifespan must be >= 1, got {hft.lifespan}")

    # Reproduction
    if hft.reproduction_model != ReproductionModel.NONE:
        if not 0 <= hft.breeding_season_start < DAYS_PER_YEAR:
            raise ValueError(
                f"hft.breeding_season_start must be in [0, {DAYS_PER_YEAR}), "
                f"got {hft.breeding_season_start}"
            )
        if not 1 <= hft.breeding_season_length <= DAYS_PER_YEAR:
            raise ValueError(
                f"hft.breeding_season_length must be in [1, {DAYS_PER_YEAR}], "
                f"got {hft.breeding_season_length}"
            )
        if hft.reproduction_max <= 0.0:
            raise ValueError(
                f"hft.reproduction_max must be > 0, got {hft.reproduction_max}"
            )
    if hft.gestation_months < 1:
        raise ValueError(
            f"hft.gestation_months must be >= 1, got {hft.gestation_months}"
        )
    if hft.maturity_age_sex < 0.0:
        raise ValueError("hft.maturity_age_sex must be >= 0")
    _check_positive('maturity_age_phys_female', hft.maturity_age_phys_female)
    _check_positive('maturity_age_phys_male', hft.maturity_age_phys_male)

    # Establishment
    _check_positive('establishment_density', hft.establishment_density)
    lo, hi = hft.establishment_age_range
    if lo < 0 or lo > hi:
        raise ValueError(
            f"hft.establishment_age_range must be (min, max) with "
            f"0 <= min <= max, got {hft.establishment_age_range}"
        )
    if MortalityFactor.LIFESPAN in hft.mortality_factors and hi >= hft.lifespan:
        raise ValueError(
            f"hft.establishment_age_range ({hft.establishment_age_range}) "
            f"must end before lifespan ({hft.lifespan})"
        )

    # Suspicious but legal
    if MortalityFactor.LIFESPAN in hft.mortality_factors:
        if hft.lifespan < max(hft.maturity_age_phys_female, hft.maturity_age_phys_male):
            warnings.warn(
                f"hft '{hft.name}': lifespan ({hft.lifespan}) is shorter than "
                f"the age of physical maturity",
                UserWarning,
                stacklevel=2,
            )
    if params is not None and params.herbivore_type == HerbivoreType.INDIVIDUAL:
        if hft.establishment_density * params.habitat_area_km2 < 2.0:
            warnings.warn(
                f"hft '{hft.name}': establishment_density × habitat_area_km2 "
                f"yields fewer than two individuals",
                UserWarning,
                stacklevel=2,
            )


def validate_params(params: Parameters) -> None:
    """Validate global parameters. Raises ValueError on failure."""
    if params.herbivore_establish_interval < 0:
        raise ValueError(
            f"params.herbivore_establish_interval must be >= 0, "
            f"got {params.herbivore_establish_interval}"
        )
    if params.herbivore_type == HerbivoreType.INDIVIDUAL and params.habitat_area_km2 <= 0.0:
        raise ValueError(
            f"params.habitat_area_km2 must be > 0, got {params.habitat_area_km2}"
        )
    if params.dead_herbivore_threshold < 0.0:
        raise ValueError(
            f"params.dead_herbivore_threshold must be >= 0, "
            f"got {params.dead_herbivore_threshold}"
        )
    if params.seed < 0:
        raise ValueError("params.seed must be non-negative")


def validate_config(config: SimulationConfig) -> None:
    """Validate global parameters, every HFT, and unique HFT names."""
    validate_params(config.params)
    names = [hft.name for hft in config.hfts]
    duplicates = {n for n in names if names.count(n) > 1}
    if duplicates:
        raise ValueError(f"HFT names must be unique, duplicates: {sorted(duplicates)}")
    for hft in config.hfts:
        validate_hft(hft, config.params)


# ═══════════════════════════════════════════════════════════════════════
# YAML LOADING & MERGING
# ═══════════════════════════════════════════════════════════════════════

def deep_merge(base: Dict, override: Dict) -> Dict:
    """Recursively merge override into base. Modifies base in place.

    - Dict values are merged recursively
    - Non-dict values (including lists) are replaced
    - Keys in override but not base are added
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


_HFT_ENUM_FIELDS = {
    'digestion_type': DigestionType,
    'net_energy_model': NetEnergyModel,
    'digestive_limit': DigestiveLimit,
    'diet_composer': DietComposer,
    'conductance': ConductanceModel,
    'reproduction_model': ReproductionModel,
}

_HFT_SET_FIELDS = {
    'foraging_limits': ForagingLimit,
    'expenditure_components': ExpenditureComponent,
    'mortality_factors': MortalityFactor,
}

_PARAMS_ENUM_FIELDS = {
    'forage_distribution': ForageDistributionAlgorithm,
    'herbivore_type': HerbivoreType,
}


def _to_enum(enum_cls, value, key: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        valid = sorted(m.value for m in enum_cls)
        raise ValueError(
            f"{key} must be one of {valid}, got '{value}'"
        ) from None


def _filter_fields(cls, data: Dict, section: str) -> Dict:
    """Keep known keys; warn about the unknown ones."""
    valid_fields = {f.name for f in dataclasses.fields(cls)}
    unknown = set(data) - valid_fields
    if unknown:
        warnings.warn(
            f"Ignoring unknown {section} keys: {sorted(unknown)}",
            UserWarning,
            stacklevel=3,
        )
    return {k: v for k, v in data.items() if k in valid_fields}


def hft_from_dict(data: Dict) -> Hft:
    """Convert a YAML mapping to an Hft, coercing strings to enum members."""
    kwargs = _filter_fields(Hft, data, 'hft')
    for key, enum_cls in _HFT_ENUM_FIELDS.items():
        if key in kwargs:
            kwargs[key] = _to_enum(enum_cls, kwargs[key], f"hft.{key}")
    for key, enum_cls in _HFT_SET_FIELDS.items():
        if key in kwargs:
            kwargs[key] = frozenset(
                _to_enum(enum_cls, v, f"hft.{key}") for v in (kwargs[key] or [])
            )
    for key in ('digestive_limit_allometry', 'expenditure_allometry'):
        if key in kwargs and isinstance(kwargs[key], dict):
            kwargs[key] = Allometry(**kwargs[key])
    if 'establishment_age_range' in kwargs:
        kwargs['establishment_age_range'] = tuple(kwargs['establishment_age_range'])
    return Hft(**kwargs)


def params_from_dict(data: Dict) -> Parameters:
    """Convert a YAML mapping to Parameters."""
    kwargs = _filter_fields(Parameters, data, 'parameters')
    for key, enum_cls in _PARAMS_ENUM_FIELDS.items():
        if key in kwargs:
            kwargs[key] = _to_enum(enum_cls, kwargs[key], f"params.{key}")
    return Parameters(**kwargs)


def _yaml_to_config(data: Dict) -> SimulationConfig:
    params = params_from_dict(data.get('parameters') or {})
    hft_dicts = data.get('hfts')
    if hft_dicts is None:
        hfts = [Hft()]
    else:
        hfts = [hft_from_dict(d) for d in hft_dicts]
    return SimulationConfig(params=params, hfts=hfts)


def load_config(
    base_path: Union[str, Path],
    override_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> SimulationConfig:
    """Load, merge and validate a YAML configuration.

    Merge order: base → override file → dict overrides.

    Raises:
        FileNotFoundError: If base_path doesn't exist.
        ValueError: If validation fails.
    """
    base_path = Path(base_path)
    if not base_path.exists():
        raise FileNotFoundError(f"Config file not found: {base_path}")

    with open(base_path) as f:
        config_dict = yaml.safe_load(f) or {}

    if override_path is not None:
        override_path = Path(override_path)
        if not override_path.exists():
            raise FileNotFoundError(f"Override file not found: {override_path}")
        with open(override_path) as f:
            deep_merge(config_dict, yaml.safe_load(f) or {})

    if overrides is not None:
        deep_merge(config_dict, copy.deepcopy(overrides))

    config = _yaml_to_config(config_dict)
    validate_config(config)
    return config


def default_config() -> SimulationConfig:
    """Return a SimulationConfig with all default values."""
    config = SimulationConfig()
    validate_config(config)
    return config
