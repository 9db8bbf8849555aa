"""
Order store.

Primitives transactionnelles utilisées par le materializer :
- create_draft_with_lock : lock + order + lignes, tout ou rien
- delete_order           : order + lignes, tout ou rien
- release_lock           : suppression CONDITIONNELLE (aucun draft ouvert)
- count_open_drafts / lock_exists
- set_status             : transitions draft -> submitted -> received / cancelled

Le lock (order_locks, PK venue_id + supplier_key) est la primitive
"create only if absent" : deux créations concurrentes pour la même clé
-> une seule passe, l'autre prend une IntegrityError -> LockHeldError.

Un lock n'est jamais supprimé tant qu'un draft existe pour sa clé :
le test "aucun draft ouvert" et le DELETE sont un seul statement.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Protocol

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from venue_stock.app.db.models.core_types import OrderStatus
from venue_stock.app.db.models.models_v1 import Order, OrderLine, OrderLock
from venue_stock.services.errors import LockHeldError, StoreError, TransientStoreError

logger = logging.getLogger(__name__)


@dataclass
class DraftLine:
    product_id: str
    qty: int
    unit_cost: float = 0.0
    product_name: str | None = None
    pack_size: int | None = None
    needs_par: bool = False
    needs_supplier: bool = False
    reason: str | None = None
    department_id: str | None = None


@dataclass
class DraftOrderData:
    venue_id: str
    supplier_key: str
    supplier_id: str | None
    supplier_name: str | None = None
    created_by: str | None = None
    needs_supplier_review: bool = False
    source: str = "suggestions"
    lines: list[DraftLine] = field(default_factory=list)


@dataclass
class OrderRef:
    id: int
    venue_id: str
    supplier_key: str
    status: OrderStatus


class OrderStore(Protocol):
    # refuse (LockHeldError) si un draft est ouvert, lock présent ou non ;
    # un lock sans draft (périmé) est nettoyé dans la même transaction
    def create_draft_with_lock(self, draft: DraftOrderData) -> int: ...

    def get_order(self, venue_id: str, order_id: int) -> OrderRef | None: ...

    def delete_order(self, venue_id: str, order_id: int) -> OrderRef | None: ...

    def set_status(self, venue_id: str, order_id: int, status: OrderStatus) -> None: ...

    def count_open_drafts(self, venue_id: str, supplier_key: str) -> int: ...

    def lock_exists(self, venue_id: str, supplier_key: str) -> bool: ...

    # no-op (False) tant qu'un draft est ouvert pour la clé
    def release_lock(self, venue_id: str, supplier_key: str) -> bool: ...


def _is_transient(exc: SQLAlchemyError) -> bool:
    if isinstance(exc, (OperationalError, PoolTimeoutError)):
        return True
    return isinstance(exc, DBAPIError) and bool(exc.connection_invalidated)


def _open_drafts_exist(venue_id: str, supplier_key: str):
    return (
        select(Order.id)
        .where(Order.venue_id == venue_id)
        .where(Order.supplier_key == supplier_key)
        .where(Order.status == OrderStatus.draft)
        .exists()
    )


def _release_if_idle(venue_id: str, supplier_key: str):
    return (
        delete(OrderLock)
        .where(OrderLock.venue_id == venue_id)
        .where(OrderLock.supplier_key == supplier_key)
        .where(~_open_drafts_exist(venue_id, supplier_key))
    )


class SqlAlchemyOrderStore:
    """
    Implémentation SQLAlchemy (une transaction par opération d'écriture).

    Les lignes order_locks sont manipulées en Core (insert / update / delete)
    pour ne jamais laisser d'instance OrderLock périmée dans la session.
    """

    def __init__(self, db: Session):
        self.db = db

    # ---------- helpers ----------
    def _fail(self, exc: SQLAlchemyError) -> StoreError:
        self.db.rollback()
        if _is_transient(exc):
            return TransientStoreError(str(exc))
        return StoreError(str(exc))

    def _to_ref(self, order: Order) -> OrderRef:
        return OrderRef(
            id=int(order.id),
            venue_id=order.venue_id,
            supplier_key=order.supplier_key,
            status=order.status,
        )

    def _get(self, venue_id: str, order_id: int) -> Order | None:
        order = self.db.get(Order, order_id)
        if not order or order.venue_id != venue_id:
            return None
        return order

    def _lock_held(self, draft: DraftOrderData) -> LockHeldError:
        self.db.rollback()
        return LockHeldError(draft.venue_id, draft.supplier_key)

    # ---------- writes ----------
    def create_draft_with_lock(self, draft: DraftOrderData) -> int:
        venue_id, supplier_key = draft.venue_id, draft.supplier_key
        try:
            # Draft ouvert -> refus, même si la ligne de lock a disparu
            if self.db.execute(select(_open_drafts_exist(venue_id, supplier_key))).scalar():
                raise self._lock_held(draft)

            healed = self.db.execute(_release_if_idle(venue_id, supplier_key)).rowcount
            if healed:
                logger.info("stale lock removed venue=%s supplier_key=%s", venue_id, supplier_key)

            # Concurrence : deux créations passent le test ci-dessus -> la PK tranche
            try:
                self.db.execute(
                    insert(OrderLock).values(
                        venue_id=venue_id,
                        supplier_key=supplier_key,
                        created_at=datetime.now(timezone.utc),
                    )
                )
            except IntegrityError:
                raise self._lock_held(draft)

            total = sum(Decimal(str(ln.unit_cost)) * ln.qty for ln in draft.lines)
            order = Order(
                venue_id=venue_id,
                supplier_id=draft.supplier_id,
                supplier_key=supplier_key,
                supplier_name=draft.supplier_name,
                status=OrderStatus.draft,
                source=draft.source,
                needs_supplier_review=draft.needs_supplier_review,
                lines_count=len(draft.lines),
                total=total,
                created_at=datetime.now(timezone.utc),
                created_by=draft.created_by,
            )
            self.db.add(order)
            self.db.flush()  # get order.id

            for ln in draft.lines:
                self.db.add(
                    OrderLine(
                        order_id=order.id,
                        product_id=ln.product_id,
                        product_name=ln.product_name,
                        qty=ln.qty,
                        unit_cost=Decimal(str(ln.unit_cost)),
                        pack_size=ln.pack_size,
                        needs_par=ln.needs_par,
                        needs_supplier=ln.needs_supplier,
                        reason=ln.reason,
                        department_id=ln.department_id,
                    )
                )
            order_id = int(order.id)
            self.db.execute(
                update(OrderLock)
                .where(OrderLock.venue_id == venue_id)
                .where(OrderLock.supplier_key == supplier_key)
                .values(order_id=order_id)
            )

            self.db.commit()
            return order_id
        except SQLAlchemyError as exc:
            raise self._fail(exc) from exc

    def delete_order(self, venue_id: str, order_id: int) -> OrderRef | None:
        try:
            order = self._get(venue_id, order_id)
            if not order:
                return None
            ref = self._to_ref(order)
            self.db.delete(order)  # cascade -> lignes
            self.db.commit()
            return ref
        except SQLAlchemyError as exc:
            raise self._fail(exc) from exc

    def set_status(self, venue_id: str, order_id: int, status: OrderStatus) -> None:
        try:
            order = self._get(venue_id, order_id)
            if not order:
                return
            order.status = status
            now = datetime.now(timezone.utc)
            if status == OrderStatus.submitted:
                order.submitted_at = now
            elif status == OrderStatus.received:
                order.received_at = now
            self.db.commit()
        except SQLAlchemyError as exc:
            raise self._fail(exc) from exc

    def release_lock(self, venue_id: str, supplier_key: str) -> bool:
        try:
            res = self.db.execute(_release_if_idle(venue_id, supplier_key))
            self.db.commit()
            return bool(res.rowcount)
        except SQLAlchemyError as exc:
            raise self._fail(exc) from exc

    # ---------- reads ----------
    def get_order(self, venue_id: str, order_id: int) -> OrderRef | None:
        try:
            order = self._get(venue_id, order_id)
            return self._to_ref(order) if order else None
        except SQLAlchemyError as exc:
            raise self._fail(exc) from exc

    def count_open_drafts(self, venue_id: str, supplier_key: str) -> int:
        try:
            return int(
                self.db.execute(
                    select(func.count(Order.id))
                    .where(Order.venue_id == venue_id)
                    .where(Order.supplier_key == supplier_key)
                    .where(Order.status == OrderStatus.draft)
                ).scalar_one()
            )
        except SQLAlchemyError as exc:
            raise self._fail(exc) from exc

    def lock_exists(self, venue_id: str, supplier_key: str) -> bool:
        try:
            row = self.db.execute(
                select(OrderLock.venue_id)
                .where(OrderLock.venue_id == venue_id)
                .where(OrderLock.supplier_key == supplier_key)
            ).first()
            return row is not None
        except SQLAlchemyError as exc:
            raise self._fail(exc) from exc
