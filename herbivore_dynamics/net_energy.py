"""Net energy content of forage from its digestibility.

Default model (grass):
    ME = d * 15.0                       [MJ/kgDM]
    NE = ME * (0.019 * ME + 0.503) * e  [MJ/kgDM]

d is proportional digestibility; e is the digestion efficiency relative to
ruminants (1.0 for ruminants, 0.93 for hindgut fermenters).

References:
  - Illius & Gordon (1992) Modelling the nutritional ecology of ungulate
    herbivores. Oecologia 89.
"""

from __future__ import annotations

from herbivore_dynamics.forage import ForageValues
from herbivore_dynamics.types import DigestionType, ForageType, NetEnergyModel


ME_COEFFICIENT = {
    ForageType.GRASS: 15.0,   # MJ/kgDM metabolizable energy per unit digestibility
}

DIGESTION_EFFICIENCY = {
    DigestionType.RUMINANT: 1.0,
    DigestionType.HINDGUT: 0.93,
}


def get_net_energy_content_default(digestibility: ForageValues,
                                   digestion_type: DigestionType) -> ForageValues:
    """Net energy content per forage type (MJ/kgDM).

    Raises:
        ValueError: If a digestibility is outside [0, 1].
        RuntimeError: If the digestion type or a forage type has no
            coefficient.
    """
    if digestion_type not in DIGESTION_EFFICIENCY:
        raise RuntimeError(f"Digestion type not implemented: {digestion_type}")
    efficiency = DIGESTION_EFFICIENCY[digestion_type]

    result = ForageValues(0.0)
    for ft, d in digestibility:
        if not 0.0 <= d <= 1.0:
            raise ValueError(f"Digestibility out of range [0, 1]: {d}")
        if ft not in ME_COEFFICIENT:
            raise RuntimeError(f"Forage type not implemented: {ft}")
        me = d * ME_COEFFICIENT[ft]
        result.set(ft, me * (0.019 * me + 0.503) * efficiency)
    return result


def get_net_energy_content(model: NetEnergyModel, digestibility: ForageValues,
                           digestion_type: DigestionType) -> ForageValues:
    """Dispatch to the selected net energy model.

    Raises:
        RuntimeError: If the model is not implemented.
    """
    if model == NetEnergyModel.DEFAULT:
        return get_net_energy_content_default(digestibility, digestion_type)
    raise RuntimeError(f"Net energy model not implemented: {model}")
