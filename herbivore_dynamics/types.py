"""Core enumerations and constants for herbivore_dynamics.

This module is the SINGLE SOURCE OF TRUTH for:
  - Sex and forage type enumerations
  - Strategy selectors (net energy, digestive limit, foraging limit,
    diet composition, expenditure, conductance, mortality, reproduction)
  - Global selectors (herbivore representation, forage distribution)
  - Calendar constants

Every strategy set is closed: configuration strings are converted to these
members when loading and anything else is rejected. Code that dispatches on
a selector raises RuntimeError if it meets a member it does not implement.
"""

from enum import Enum, IntEnum


# ═══════════════════════════════════════════════════════════════════════
# CALENDAR
# ═══════════════════════════════════════════════════════════════════════

DAYS_PER_YEAR = 365
DAYS_PER_MONTH = 30   # used for the gestation window


# ═══════════════════════════════════════════════════════════════════════
# BIOLOGY
# ═══════════════════════════════════════════════════════════════════════

class Sex(IntEnum):
    """Sex of a herbivore cohort or individual."""
    FEMALE = 0
    MALE   = 1


class ForageType(IntEnum):
    """Categories of edible biomass.

    The integer value is the index into every ForageValues vector.
    """
    GRASS = 0


FORAGE_TYPES = tuple(ForageType)


class DigestionType(Enum):
    """Digestive physiology of an HFT."""
    RUMINANT = 'ruminant'
    HINDGUT  = 'hindgut'


# ═══════════════════════════════════════════════════════════════════════
# STRATEGY SELECTORS (per HFT)
# ═══════════════════════════════════════════════════════════════════════

class NetEnergyModel(Enum):
    """Conversion from digestibility to net energy content."""
    DEFAULT = 'default'


class DigestiveLimit(Enum):
    """Physiological upper bound of daily forage intake."""
    NONE               = 'none'
    ALLOMETRIC         = 'allometric'
    FIXED_FRACTION     = 'fixed_fraction'
    ILLIUS_GORDON_1992 = 'illius_gordon_1992'


class ForagingLimit(Enum):
    """Additional intake constraints from the foraging environment."""
    ILLIUS_OCONNOR_2000         = 'illius_oconnor_2000'
    GENERAL_FUNCTIONAL_RESPONSE = 'general_functional_response'


class DietComposer(Enum):
    """Policy for splitting energy needs among forage types."""
    PURE_GRAZER = 'pure_grazer'


class ExpenditureComponent(Enum):
    """Additive components of daily energy expenditure."""
    ALLOMETRIC       = 'allometric'
    TAYLOR_1981      = 'taylor_1981'
    ZHU_2018         = 'zhu_2018'
    THERMOREGULATION = 'thermoregulation'


class ConductanceModel(Enum):
    """Whole-body thermal conductance models."""
    BRADLEY_DEAVERS_1980   = 'bradley_deavers_1980'
    CUYLER_OERITSLAND_2004 = 'cuyler_oeritsland_2004'


class FurSeason(Enum):
    SUMMER = 'summer'
    WINTER = 'winter'


class MortalityFactor(Enum):
    """Independent, mutually exclusive causes of death."""
    BACKGROUND                     = 'background'
    LIFESPAN                       = 'lifespan'
    STARVATION_ILLIUS_OCONNOR_2000 = 'starvation_illius_oconnor_2000'
    STARVATION_THRESHOLD           = 'starvation_threshold'


class ReproductionModel(Enum):
    """Daily offspring production models."""
    NONE                = 'none'
    CONST_MAX           = 'const_max'
    LINEAR              = 'linear'
    ILLIUS_OCONNOR_2000 = 'illius_oconnor_2000'


# ═══════════════════════════════════════════════════════════════════════
# GLOBAL SELECTORS
# ═══════════════════════════════════════════════════════════════════════

class HerbivoreType(Enum):
    """How herbivores are represented in a population."""
    COHORT     = 'cohort'
    INDIVIDUAL = 'individual'


class ForageDistributionAlgorithm(Enum):
    """How available forage is shared among competing herbivores."""
    EQUALLY = 'equally'
