"""
Normalisation des unités vers une quantité de base.

volume -> ml, mass -> g, count -> unité.
Fonction pure, aucun cas d'erreur : une entrée invalide retombe sur un défaut sûr.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from venue_stock.app.db.models.core_types import BaseUnit
from venue_stock.services.numbers import finite_or_none

# label (lowercase) -> (base, facteur)
UNIT_FACTORS: dict[str, tuple[BaseUnit, float]] = {
    "ml": (BaseUnit.volume, 1),
    "cl": (BaseUnit.volume, 10),
    "dl": (BaseUnit.volume, 100),
    "l": (BaseUnit.volume, 1000),
    "lt": (BaseUnit.volume, 1000),
    "liter": (BaseUnit.volume, 1000),
    "litre": (BaseUnit.volume, 1000),
    "g": (BaseUnit.mass, 1),
    "gram": (BaseUnit.mass, 1),
    "kg": (BaseUnit.mass, 1000),
    "kilogram": (BaseUnit.mass, 1000),
    "each": (BaseUnit.count, 1),
    "ea": (BaseUnit.count, 1),
    "unit": (BaseUnit.count, 1),
    "count": (BaseUnit.count, 1),
}


@dataclass(frozen=True)
class NormalizedQuantity:
    quantity: float
    base_unit: BaseUnit


def to_base_unit(unit: str | None) -> BaseUnit:
    label = str(unit or "").strip().lower()
    base, _ = UNIT_FACTORS.get(label, (BaseUnit.count, 1))
    return base


def normalize_quantity(quantity: Any, unit: str | None) -> NormalizedQuantity:
    label = str(unit or "").strip().lower()
    base, factor = UNIT_FACTORS.get(label, (BaseUnit.count, 1))

    value = finite_or_none(quantity)
    if value is None or value < 0:
        return NormalizedQuantity(quantity=0.0, base_unit=base)

    return NormalizedQuantity(quantity=value * factor, base_unit=base)
