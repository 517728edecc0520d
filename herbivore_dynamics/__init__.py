"""herbivore_dynamics: Bioenergetic and demographic simulation of herbivores.

Daily simulation of herbivore populations competing for forage, for use
inside a host vegetation model:
  - Fat-mass energy budget with anabolism and catabolism
  - Forage demand under digestive and functional-response limits
  - Mortality (background, lifespan, starvation) and seasonal reproduction
  - Cohort or individual representation, cohort merging
  - Proportional forage distribution among competitors
"""

__version__ = "0.1.0"
