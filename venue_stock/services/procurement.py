"""
Procurement service.

Ce module orchestre les flux d'achat (variance, suggestions, drafts)
mais ne contient AUCUNE logique de calcul.

Calculs : venue_stock.services.variance / suggestions / supplier_selector
Écritures : venue_stock.services.materializer (via OrderStore)
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from venue_stock.app.core import config
from venue_stock.services.catalog import (
    load_items,
    load_price_options,
    load_stock_take,
    load_suppliers,
)
from venue_stock.services.errors import ValidationError
from venue_stock.services.materializer import MaterializeResult, materialize_drafts
from venue_stock.services.order_store import SqlAlchemyOrderStore
from venue_stock.services.retry import RetryPolicy
from venue_stock.services.suggestions import SuggestedLine, build_suggested_lines
from venue_stock.services.variance import VarianceReport, compute_variance, theoretical_on_hand


def _require_venue(venue_id: str | None) -> str:
    if not venue_id or not str(venue_id).strip():
        raise ValidationError("venue_id is required")
    return str(venue_id).strip()


def variance_for_venue(db: Session, venue_id: str, department_id: str | None = None) -> VarianceReport:
    venue_id = _require_venue(venue_id)
    items = load_items(db, venue_id)
    maps = load_stock_take(db, venue_id)
    return compute_variance(
        items,
        maps.last_counts,
        maps.received,
        maps.sold,
        department_id,
        venue_id=venue_id,
    )


def suggestions_for_venue(
    db: Session,
    venue_id: str,
    department_id: str | None = None,
    round_to_pack: bool | None = None,
) -> dict[str, list[SuggestedLine]]:
    venue_id = _require_venue(venue_id)
    items = load_items(db, venue_id, department_id)
    maps = load_stock_take(db, venue_id)
    on_hand = {
        it.id: theoretical_on_hand(it.id, maps.last_counts, maps.received, maps.sold)
        for it in items
    }
    return build_suggested_lines(
        items,
        on_hand,
        load_price_options(db, venue_id),
        load_suppliers(db, venue_id),
        round_to_pack=config.SUGGEST_ROUND_TO_PACK if round_to_pack is None else round_to_pack,
        department_id=department_id,
    )


def materialize_for_venue(
    db: Session,
    venue_id: str,
    buckets: dict[str, list[SuggestedLine]] | None = None,
    *,
    created_by: str | None = None,
    department_id: str | None = None,
    retry_policy: RetryPolicy | None = None,
) -> MaterializeResult:
    """Buckets absents -> calculés depuis le catalogue."""
    venue_id = _require_venue(venue_id)
    if buckets is None:
        buckets = suggestions_for_venue(db, venue_id, department_id)
    return materialize_drafts(
        SqlAlchemyOrderStore(db),
        venue_id,
        buckets,
        created_by=created_by,
        retry_policy=retry_policy,
    )


__all__ = [
    "variance_for_venue",
    "suggestions_for_venue",
    "materialize_for_venue",
]
