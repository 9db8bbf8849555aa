"""
Suggestion service.

Deux niveaux :
- compute_suggestion(ctx)       : quantité suggérée pour UN item (par / pack / MOQ)
- build_suggested_lines(...)    : lignes suggérées par fournisseur pour tout le catalogue

Aucun accès DB ici : le catalogue est injecté par l'appelant
(voir venue_stock.services.catalog).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from venue_stock.app.db.models.models_v1 import UNASSIGNED_KEY
from venue_stock.services.numbers import finite_or_none, positive_int_or_none
from venue_stock.services.supplier_selector import SupplierPriceOption, choose_cheapest
from venue_stock.services.variance import InventoryItemData, filter_department


@dataclass
class SuggestionContext:
    par: Any = None
    on_hand: Any = None
    pack_size: Any = None
    moq: Any = None
    avg_daily_sales: Any = None
    lead_time_days: Any = None
    round_to_pack: bool = False


@dataclass
class AppliedRules:
    pack: bool = False
    moq: bool = False
    lead_time: bool = False
    par_used: bool = False


@dataclass
class SuggestionResult:
    base_deficit: float
    suggested_qty: float
    est_days_to_sell: int | None
    applied: AppliedRules
    notes: list[str] = field(default_factory=list)


def compute_suggestion(ctx: SuggestionContext) -> SuggestionResult:
    notes: list[str] = []

    par = finite_or_none(ctx.par)
    on_hand = finite_or_none(ctx.on_hand)
    if on_hand is None:
        on_hand = 0.0
    pack = positive_int_or_none(ctx.pack_size)
    moq = positive_int_or_none(ctx.moq)

    avg = finite_or_none(ctx.avg_daily_sales)
    if avg is not None and avg < 0:
        avg = None
    lead = positive_int_or_none(ctx.lead_time_days)

    base_deficit = max(par - on_hand, 0) if par is not None else 0
    qty = base_deficit

    # Pas de par + rien en stock : au moins un pack / le MOQ
    if par is None and on_hand <= 0:
        if pack:
            qty = max(qty, pack)
            notes.append("no par -> pack")
        if moq:
            qty = max(qty, moq)
            notes.append("no par -> MOQ")

    pack_applied = False
    if ctx.round_to_pack and pack and qty > 0:
        qty = math.ceil(qty / pack) * pack
        pack_applied = True

    moq_applied = False
    if moq and 0 < qty < moq:
        qty = moq
        moq_applied = True

    est_days_to_sell: int | None = None
    if avg is None:
        notes.append("no avg sales")
    elif avg == 0:
        notes.append("avg sales 0")
    else:
        est_days_to_sell = math.ceil(qty / avg)

    if lead is None:
        notes.append("no lead time")

    return SuggestionResult(
        base_deficit=base_deficit,
        suggested_qty=qty,
        est_days_to_sell=est_days_to_sell,
        applied=AppliedRules(
            pack=pack_applied,
            moq=moq_applied,
            lead_time=lead is not None,
            par_used=par is not None,
        ),
        notes=notes,
    )


# ---------- catalogue -> lignes par fournisseur ----------
@dataclass
class CatalogItem(InventoryItemData):
    pack_size: Any = None
    moq: Any = None
    avg_daily_sales: Any = None
    supplier_id: str | None = None
    supplier_name: str | None = None


@dataclass
class SupplierInfo:
    id: str
    name: str
    lead_time_days: int | None = None


@dataclass
class SuggestedLine:
    product_id: str
    product_name: str
    qty: float
    supplier_id: str | None = None
    supplier_name: str | None = None
    unit_cost: float | None = None
    pack_size: int | None = None
    needs_par: bool = False
    needs_supplier: bool = False
    reason: str | None = None
    department_id: str | None = None


def _reason(needs_par: bool, needs_supplier: bool) -> str | None:
    if needs_par and needs_supplier:
        return "both"
    if needs_par:
        return "no_par"
    if needs_supplier:
        return "no_supplier"
    return None


def build_suggested_lines(
    items: Iterable[CatalogItem],
    on_hand: Mapping[str, Any],
    price_options: Mapping[str, Sequence[SupplierPriceOption]] | None = None,
    suppliers: Mapping[str, SupplierInfo] | None = None,
    *,
    round_to_pack: bool = True,
    department_id: str | None = None,
) -> dict[str, list[SuggestedLine]]:
    """
    Regroupe les suggestions par clé fournisseur.

    Fournisseur retenu : le moins cher parmi price_options[item], sinon le
    fournisseur par défaut de l'item, sinon UNASSIGNED_KEY (needs_supplier).
    Les lignes à quantité nulle sont écartées.
    """
    price_options = price_options or {}
    suppliers = suppliers or {}
    buckets: dict[str, list[SuggestedLine]] = {}

    for item in filter_department(items, department_id):
        cheapest = choose_cheapest(price_options.get(item.id, []))

        supplier_id = cheapest.supplier_id if cheapest else item.supplier_id
        supplier = suppliers.get(supplier_id) if supplier_id else None
        supplier_name = None
        if cheapest and cheapest.supplier_name:
            supplier_name = cheapest.supplier_name
        elif supplier:
            supplier_name = supplier.name
        elif supplier_id:
            supplier_name = item.supplier_name

        result = compute_suggestion(
            SuggestionContext(
                par=item.par,
                on_hand=on_hand.get(item.id),
                pack_size=item.pack_size,
                moq=item.moq,
                avg_daily_sales=item.avg_daily_sales,
                lead_time_days=supplier.lead_time_days if supplier else None,
                round_to_pack=round_to_pack,
            )
        )
        if result.suggested_qty <= 0:
            continue

        unit_cost = finite_or_none(cheapest.price) if cheapest else None
        if unit_cost is None:
            unit_cost = finite_or_none(item.unit_cost)

        needs_par = not result.applied.par_used
        needs_supplier = not supplier_id
        line = SuggestedLine(
            product_id=item.id,
            product_name=item.name,
            qty=result.suggested_qty,
            supplier_id=supplier_id or None,
            supplier_name=supplier_name,
            unit_cost=unit_cost,
            pack_size=positive_int_or_none(item.pack_size),
            needs_par=needs_par,
            needs_supplier=needs_supplier,
            reason=_reason(needs_par, needs_supplier),
            department_id=item.department_id,
        )
        buckets.setdefault(supplier_id or UNASSIGNED_KEY, []).append(line)

    return buckets
