from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from venue_stock.services.numbers import finite_or_none


@dataclass
class SupplierPriceOption:
    supplier_id: str
    price: Any
    supplier_name: str | None = None
    is_contract: bool = False


def choose_cheapest(options: Sequence[SupplierPriceOption] | None) -> SupplierPriceOption | None:
    """
    Option la moins chère.

    Ordre total : prix croissant, puis contrat avant non-contrat.
    sorted() est stable -> à égalité complète l'ordre d'entrée est conservé.
    Les prix non finis sont exclus sans faire échouer la sélection.
    """
    priced = []
    for option in options or []:
        if isinstance(option.price, str) and not option.price.strip():
            continue
        price = finite_or_none(option.price)
        if price is None:
            continue
        priced.append((price, option))

    if not priced:
        return None

    priced.sort(key=lambda pair: (pair[0], 0 if pair[1].is_contract is True else 1))
    return priced[0][1]
