"""
Order materializer.

Transforme les lignes suggérées (groupées par clé fournisseur) en draft orders.

Invariant : au plus UN draft ouvert par (venue, supplier_key).
- acquisition du lock + création order + lignes = une seule transaction (store)
- lock déjà tenu -> "guarded", pas une erreur
- échec sur un fournisseur -> "failed" pour cette clé, les autres continuent
- le lock est relâché quand le DERNIER draft de la clé disparaît
  (suppression ou sortie de l'état draft), en best-effort
- un lock sans draft vivant est considéré périmé et nettoyé à l'acquisition,
  dans la transaction de création (jamais par un check-then-delete ici)
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Mapping, Sequence

from venue_stock.app.db.models.core_types import OrderStatus
from venue_stock.app.db.models.models_v1 import UNASSIGNED_KEY
from venue_stock.services.errors import (
    InvalidTransitionError,
    LockHeldError,
    OrderNotFoundError,
    StoreError,
    ValidationError,
)
from venue_stock.services.numbers import finite_or_none
from venue_stock.services.order_store import DraftLine, DraftOrderData, OrderStore
from venue_stock.services.retry import RetryPolicy, with_retry
from venue_stock.services.suggestions import SuggestedLine

logger = logging.getLogger(__name__)

UNASSIGNED_ALIASES = {
    "unassigned",
    "__no_supplier__",
    "no_supplier",
    "none",
    "null",
    "undefined",
    "",
    UNASSIGNED_KEY,
}

# état courant -> états autorisés
ALLOWED_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.draft: {OrderStatus.submitted, OrderStatus.cancelled},
    OrderStatus.submitted: {OrderStatus.received},
    OrderStatus.received: set(),
    OrderStatus.cancelled: set(),
}


@dataclass
class MaterializeResult:
    created: dict[str, int] = field(default_factory=dict)
    guarded: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    skipped_empty: list[str] = field(default_factory=list)


def normalize_supplier_key(key: str | None) -> str:
    text = str(key).strip() if key is not None else ""
    return UNASSIGNED_KEY if text.lower() in UNASSIGNED_ALIASES or text == UNASSIGNED_KEY else text


def _require(value: str | None, name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{name} is required")
    return str(value).strip()


def merge_lines(lines: Sequence[SuggestedLine]) -> list[DraftLine]:
    """
    Fusionne par product_id (quantités additionnées).
    Lignes sans product_id ou à quantité <= 0 ignorées.
    qty entière, plancher 1 ; unit_cost absent -> 0.
    """
    merged: dict[str, DraftLine] = {}
    for ln in lines:
        qty = finite_or_none(ln.qty)
        if not ln.product_id or qty is None or qty <= 0:
            continue
        whole = max(1, int(math.floor(qty + 0.5)))
        if ln.product_id in merged:
            merged[ln.product_id].qty += whole
            continue
        unit_cost = finite_or_none(ln.unit_cost)
        merged[ln.product_id] = DraftLine(
            product_id=ln.product_id,
            qty=whole,
            unit_cost=unit_cost if unit_cost is not None and unit_cost >= 0 else 0.0,
            product_name=ln.product_name,
            pack_size=ln.pack_size,
            needs_par=bool(ln.needs_par),
            needs_supplier=bool(ln.needs_supplier),
            reason=ln.reason,
            department_id=ln.department_id,
        )
    return list(merged.values())


def materialize_drafts(
    store: OrderStore,
    venue_id: str,
    buckets: Mapping[str, Sequence[SuggestedLine]],
    *,
    created_by: str | None = None,
    retry_policy: RetryPolicy | None = None,
) -> MaterializeResult:
    venue_id = _require(venue_id, "venue_id")
    result = MaterializeResult()

    # Plusieurs alias "unassigned" -> une seule clé
    grouped: dict[str, list[SuggestedLine]] = {}
    for raw_key, lines in (buckets or {}).items():
        grouped.setdefault(normalize_supplier_key(raw_key), []).extend(lines or [])

    for supplier_key, lines in grouped.items():
        draft_lines = merge_lines(lines)
        if not draft_lines:
            result.skipped_empty.append(supplier_key)
            continue

        is_unassigned = supplier_key == UNASSIGNED_KEY
        supplier_name = next((ln.supplier_name for ln in lines if ln.supplier_name), None)
        draft = DraftOrderData(
            venue_id=venue_id,
            supplier_key=supplier_key,
            supplier_id=None if is_unassigned else supplier_key,
            supplier_name=supplier_name,
            created_by=created_by,
            needs_supplier_review=is_unassigned or any(ln.needs_supplier for ln in draft_lines),
            lines=draft_lines,
        )

        try:
            order_id = with_retry(lambda: store.create_draft_with_lock(draft), retry_policy)
        except LockHeldError:
            logger.info("draft guarded venue=%s supplier_key=%s (open draft exists)", venue_id, supplier_key)
            result.guarded.append(supplier_key)
            continue
        except StoreError as exc:
            logger.error("draft creation failed venue=%s supplier_key=%s: %s", venue_id, supplier_key, exc)
            result.failed[supplier_key] = str(exc)
            continue

        logger.info(
            "draft created venue=%s supplier_key=%s order_id=%s lines=%s",
            venue_id,
            supplier_key,
            order_id,
            len(draft_lines),
        )
        result.created[supplier_key] = order_id

    return result


def release_lock_if_last(store: OrderStore, venue_id: str, supplier_key: str) -> bool:
    """
    Relâche le lock si plus aucun draft n'existe pour la clé
    (test + suppression atomiques côté store).
    Best-effort : un échec est loggé, jamais propagé (auto-réparé à la
    prochaine acquisition).
    """
    try:
        return store.release_lock(venue_id, supplier_key)
    except StoreError as exc:
        logger.warning("lock release failed venue=%s supplier_key=%s: %s", venue_id, supplier_key, exc)
        return False


def delete_draft(
    store: OrderStore,
    venue_id: str,
    order_id: int,
    *,
    retry_policy: RetryPolicy | None = None,
) -> bool:
    """
    Supprime un draft (order + lignes, atomique).
    Retourne True si le lock du fournisseur a été relâché.
    Order inconnu -> no-op (False).
    """
    venue_id = _require(venue_id, "venue_id")

    ref = with_retry(lambda: store.get_order(venue_id, order_id), retry_policy)
    if ref is None:
        return False
    if ref.status != OrderStatus.draft:
        raise InvalidTransitionError(f"Only draft orders can be deleted (status={ref.status.value})")

    with_retry(lambda: store.delete_order(venue_id, order_id), retry_policy)
    logger.info("draft deleted venue=%s order_id=%s supplier_key=%s", venue_id, order_id, ref.supplier_key)
    return release_lock_if_last(store, venue_id, ref.supplier_key)


def transition_order(
    store: OrderStore,
    venue_id: str,
    order_id: int,
    target: OrderStatus,
    *,
    retry_policy: RetryPolicy | None = None,
) -> OrderStatus:
    venue_id = _require(venue_id, "venue_id")

    ref = with_retry(lambda: store.get_order(venue_id, order_id), retry_policy)
    if ref is None:
        raise OrderNotFoundError(f"Order {order_id} not found")
    if target not in ALLOWED_TRANSITIONS[ref.status]:
        raise InvalidTransitionError(f"Cannot move order from {ref.status.value} to {target.value}")

    with_retry(lambda: store.set_status(venue_id, order_id, target), retry_policy)

    # Seuls les drafts comptent pour le lock
    if ref.status == OrderStatus.draft:
        release_lock_if_last(store, venue_id, ref.supplier_key)
    return target


def submit_order(store: OrderStore, venue_id: str, order_id: int, **kwargs) -> OrderStatus:
    return transition_order(store, venue_id, order_id, OrderStatus.submitted, **kwargs)


def cancel_order(store: OrderStore, venue_id: str, order_id: int, **kwargs) -> OrderStatus:
    return transition_order(store, venue_id, order_id, OrderStatus.cancelled, **kwargs)


def receive_order(store: OrderStore, venue_id: str, order_id: int, **kwargs) -> OrderStatus:
    return transition_order(store, venue_id, order_id, OrderStatus.received, **kwargs)
