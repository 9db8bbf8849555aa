"""
Variance service.

Calcul pur (aucun accès DB) :
    theoretical_on_hand = last_count + received - sold
    delta_vs_par        = theoretical_on_hand - (par or 0)
    value_impact        = |delta_vs_par| * (unit_cost or 0)

Règle NaN : toute valeur non numérique (None, "abc", nan, inf) est traitée
comme 0, elle ne contamine jamais les totaux.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from venue_stock.services.numbers import finite_or


@dataclass
class InventoryItemData:
    id: str
    name: str
    department_id: str | None = None
    unit_cost: Any = None
    par: Any = None  # None = par inconnu


@dataclass
class VarianceRow:
    item_id: str
    name: str
    theoretical_on_hand: float
    delta_vs_par: float
    value_impact: float


@dataclass
class VarianceReport:
    venue_id: str | None
    department_id: str | None
    shortages: list[VarianceRow] = field(default_factory=list)
    excesses: list[VarianceRow] = field(default_factory=list)
    total_shortage_value: float = 0.0
    total_excess_value: float = 0.0


def theoretical_on_hand(
    item_id: str,
    last_counts: Mapping[str, Any],
    received: Mapping[str, Any] | None = None,
    sold: Mapping[str, Any] | None = None,
) -> float:
    received = received or {}
    sold = sold or {}
    return (
        finite_or(last_counts.get(item_id))
        + finite_or(received.get(item_id))
        - finite_or(sold.get(item_id))
    )


def filter_department(items: Iterable[InventoryItemData], department_id: str | None) -> list[InventoryItemData]:
    wanted = (department_id or "").strip()
    if not wanted:
        return list(items)
    return [it for it in items if (it.department_id or "").strip() == wanted]


def compute_variance(
    items: Iterable[InventoryItemData],
    last_counts: Mapping[str, Any],
    received: Mapping[str, Any] | None = None,
    sold: Mapping[str, Any] | None = None,
    department_id: str | None = None,
    *,
    venue_id: str | None = None,
) -> VarianceReport:
    """
    Construit le rapport shortages / excesses.

    - filtre département appliqué AVANT calcul (les items exclus ne comptent jamais)
    - delta == 0 -> ligne omise des deux listes
    - totaux = sommes exactes (pas d'arrondi)
    """
    report = VarianceReport(venue_id=venue_id, department_id=(department_id or "").strip() or None)

    for item in filter_department(items, department_id):
        on_hand = theoretical_on_hand(item.id, last_counts, received, sold)
        delta = on_hand - finite_or(item.par)
        row = VarianceRow(
            item_id=item.id,
            name=item.name,
            theoretical_on_hand=on_hand,
            delta_vs_par=delta,
            value_impact=abs(delta) * finite_or(item.unit_cost),
        )
        if delta < 0:
            report.shortages.append(row)
        elif delta > 0:
            report.excesses.append(row)

    report.total_shortage_value = sum(r.value_impact for r in report.shortages)
    report.total_excess_value = sum(r.value_impact for r in report.excesses)
    return report
