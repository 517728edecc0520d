"""Nitrogen passing through a herbivore's gut.

Ingested nitrogen is bound in the digestive tract and released as
excreta according to the mean retention time of the digesta. Amounts are
kept per area (kgN/km²) so that nitrogen stays with a cohort even when
its density declines.

References:
  - Clauss et al. (2007) A case of non-scaling in mammalian physiology?
    Body size, digestive capacity, food intake, and ingesta passage in
    mammalian herbivores. Comp. Biochem. Physiol. A 148.
"""

from __future__ import annotations


def get_retention_time(bodymass: float) -> float:
    """Mean retention time of digesta in hours: 32.8 * M^0.07."""
    if bodymass <= 0.0:
        raise ValueError(f"bodymass must be > 0, got {bodymass}")
    return 32.8 * bodymass ** 0.07


class NitrogenInHerbivore:
    """Nitrogen bound in the gut and waiting excreta (kgN/km²)."""

    def __init__(self):
        self.bound = 0.0
        self.excreta = 0.0

    def ingest(self, eaten_nitrogen: float) -> None:
        if eaten_nitrogen < 0.0:
            raise ValueError(
                f"ingest(): eaten nitrogen must be >= 0, got {eaten_nitrogen}"
            )
        self.bound += eaten_nitrogen

    def digest_today(self, retention_time: float) -> None:
        """Move one day's share of bound nitrogen to the excreta.

        Args:
            retention_time: Mean retention time (hours), > 0.
        """
        if retention_time <= 0.0:
            raise ValueError(
                f"digest_today(): retention time must be > 0, got {retention_time}"
            )
        moved = self.bound * min(1.0, 24.0 / retention_time)
        self.bound -= moved
        self.excreta += moved

    def get_excreta(self) -> float:
        return self.excreta

    def reset_excreta(self) -> float:
        """Return and clear the excreta."""
        excreta = self.excreta
        self.excreta = 0.0
        return excreta

    def reset_total(self) -> float:
        """Return and clear all nitrogen (used when the herbivore is gone)."""
        total = self.bound + self.excreta
        self.bound = 0.0
        self.excreta = 0.0
        return total

    def merge(self, other: 'NitrogenInHerbivore') -> None:
        """Take over all nitrogen of another herbivore."""
        self.bound += other.bound
        self.excreta += other.excreta
        other.bound = 0.0
        other.excreta = 0.0
