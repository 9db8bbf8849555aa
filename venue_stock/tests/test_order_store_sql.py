from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, OperationalError

from venue_stock.app.db.models.core_types import MovementType, OrderStatus
from venue_stock.app.db.models.models_v1 import (
    InventoryItem,
    Order,
    OrderLine,
    OrderLock,
    StockCount,
    StockMovement,
    Supplier,
    SupplierPrice,
    Venue,
    UNASSIGNED_KEY,
)
from venue_stock.app.db.seed import run_seed
from venue_stock.services import materializer
from venue_stock.services.catalog import load_price_options, load_stock_take
from venue_stock.services.errors import LockHeldError, StoreError, TransientStoreError
from venue_stock.services.order_store import DraftLine, DraftOrderData, SqlAlchemyOrderStore
from venue_stock.services.procurement import (
    materialize_for_venue,
    suggestions_for_venue,
    variance_for_venue,
)
from venue_stock.services.suggestions import SuggestedLine


@pytest.fixture
def venue(db_session):
    db_session.add(Venue(id="v1", name="Main Bar", active=True))
    db_session.commit()
    return "v1"


def _draft(venue_id, key="s1", lines=None):
    return DraftOrderData(
        venue_id=venue_id,
        supplier_key=key,
        supplier_id=None if key == UNASSIGNED_KEY else key,
        supplier_name="BevCo",
        lines=lines or [DraftLine(product_id="vodka", qty=12, unit_cost=24), DraftLine(product_id="lime", qty=3, unit_cost=0.5)],
    )


# ---------- store ----------
def test_create_draft_writes_order_lines_and_lock(db_session, venue):
    store = SqlAlchemyOrderStore(db_session)

    order_id = store.create_draft_with_lock(_draft(venue))

    order = db_session.get(Order, order_id)
    assert order.status == OrderStatus.draft
    assert order.supplier_key == "s1"
    assert order.lines_count == 2
    assert float(order.total) == pytest.approx(289.5)
    assert {ln.product_id for ln in order.lines} == {"vodka", "lime"}

    lock = db_session.get(OrderLock, (venue, "s1"))
    assert lock is not None
    assert lock.order_id == order_id


def test_second_draft_for_same_key_is_refused(db_session, venue):
    store = SqlAlchemyOrderStore(db_session)
    store.create_draft_with_lock(_draft(venue))

    with pytest.raises(LockHeldError):
        store.create_draft_with_lock(_draft(venue))

    assert store.count_open_drafts(venue, "s1") == 1
    # une autre clé reste libre
    assert store.create_draft_with_lock(_draft(venue, key=UNASSIGNED_KEY)) > 0


def test_delete_removes_lines_and_materializer_releases_lock(db_session, venue):
    store = SqlAlchemyOrderStore(db_session)
    order_id = store.create_draft_with_lock(_draft(venue))

    assert materializer.delete_draft(store, venue, order_id) is True

    assert db_session.get(Order, order_id) is None
    assert db_session.execute(select(OrderLine).where(OrderLine.order_id == order_id)).first() is None
    assert not store.lock_exists(venue, "s1")
    assert store.release_lock(venue, "s1") is False


def test_submit_sets_timestamp_and_releases_lock(db_session, venue):
    store = SqlAlchemyOrderStore(db_session)
    order_id = store.create_draft_with_lock(_draft(venue))

    materializer.submit_order(store, venue, order_id)

    order = db_session.get(Order, order_id)
    assert order.status == OrderStatus.submitted
    assert order.submitted_at is not None
    assert not store.lock_exists(venue, "s1")


def test_stale_lock_is_healed_on_materialize(db_session, venue):
    db_session.add(OrderLock(venue_id=venue, supplier_key="s1", order_id=None))
    db_session.commit()

    res = materializer.materialize_drafts(
        SqlAlchemyOrderStore(db_session),
        venue,
        {"s1": [SuggestedLine(product_id="vodka", product_name="Vodka", qty=6)]},
    )

    assert list(res.created) == ["s1"]


def test_operational_errors_are_transient(db_session, monkeypatch):
    store = SqlAlchemyOrderStore(db_session)

    def boom(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("server closed the connection"))

    monkeypatch.setattr(db_session, "execute", boom)

    with pytest.raises(TransientStoreError):
        store.count_open_drafts("v1", "s1")


def test_other_db_errors_are_not_transient(db_session, monkeypatch):
    store = SqlAlchemyOrderStore(db_session)

    def boom(*args, **kwargs):
        raise IntegrityError("DELETE", {}, Exception("constraint"))

    monkeypatch.setattr(db_session, "execute", boom)

    with pytest.raises(StoreError) as exc_info:
        store.release_lock("v1", "s1")
    assert not isinstance(exc_info.value, TransientStoreError)


def test_release_lock_keeps_lock_of_open_draft(db_session, venue):
    store = SqlAlchemyOrderStore(db_session)
    store.create_draft_with_lock(_draft(venue))

    assert store.release_lock(venue, "s1") is False
    assert store.lock_exists(venue, "s1")


def test_open_draft_without_lock_row_is_refused(db_session, venue):
    store = SqlAlchemyOrderStore(db_session)
    store.create_draft_with_lock(_draft(venue))
    db_session.execute(delete(OrderLock))
    db_session.commit()

    with pytest.raises(LockHeldError):
        store.create_draft_with_lock(_draft(venue))
    assert store.count_open_drafts(venue, "s1") == 1


def test_default_timestamps_are_timezone_aware(db_session):
    run_seed(db_session)
    count = StockCount(item_id="vodka", venue_id="demo", qty=1)
    db_session.add(count)
    db_session.flush()

    assert count.counted_at.tzinfo is not None


# ---------- deux clients, deux sessions ----------
@pytest.fixture
def two_clients(file_session_factory):
    """Deux stores sur deux connexions distinctes à la même base."""
    first, second = file_session_factory(), file_session_factory()
    first.add(Venue(id="v1", name="Main Bar", active=True))
    first.commit()
    try:
        yield SqlAlchemyOrderStore(first), SqlAlchemyOrderStore(second)
    finally:
        first.close()
        second.close()


def test_two_sessions_open_at_most_one_draft(two_clients):
    a, b = two_clients
    buckets = {"s1": [SuggestedLine(product_id="vodka", product_name="Vodka", qty=6)]}

    first = materializer.materialize_drafts(a, "v1", buckets)
    second = materializer.materialize_drafts(b, "v1", buckets)

    assert list(first.created) == ["s1"]
    assert second.guarded == ["s1"]
    with pytest.raises(LockHeldError):
        b.create_draft_with_lock(_draft("v1"))
    assert a.count_open_drafts("v1", "s1") == 1


def test_late_release_does_not_drop_lock_of_new_draft(two_clients):
    """
    GIVEN A supprime son draft mais n'a pas encore relâché le lock
    WHEN B recrée un draft (lock périmé nettoyé), puis A relâche
    THEN le lock du nouveau draft survit et un 3e draft est refusé
    """
    a, b = two_clients
    first_id = a.create_draft_with_lock(_draft("v1"))

    a.delete_order("v1", first_id)
    b.create_draft_with_lock(_draft("v1"))
    released = materializer.release_lock_if_last(a, "v1", "s1")

    assert released is False
    assert b.lock_exists("v1", "s1")
    with pytest.raises(LockHeldError):
        a.create_draft_with_lock(_draft("v1"))
    assert a.count_open_drafts("v1", "s1") == 1


def test_stale_lock_healed_by_other_session(two_clients):
    a, b = two_clients
    a.db.add(OrderLock(venue_id="v1", supplier_key="s1", order_id=None))
    a.db.commit()

    order_id = b.create_draft_with_lock(_draft("v1"))

    assert order_id > 0
    assert a.lock_exists("v1", "s1")
    with pytest.raises(LockHeldError):
        a.create_draft_with_lock(_draft("v1"))


# ---------- catalog / procurement ----------
def test_stock_take_only_counts_movements_after_last_count(db_session):
    run_seed(db_session)
    counted = datetime(2026, 1, 10, tzinfo=timezone.utc)
    db_session.add(StockCount(item_id="vodka", venue_id="demo", qty=5, counted_at=counted))
    db_session.add_all(
        [
            StockMovement(venue_id="demo", item_id="vodka", movement_type=MovementType.sale, quantity=9, happened_at=counted - timedelta(days=1)),
            StockMovement(venue_id="demo", item_id="vodka", movement_type=MovementType.sale, quantity=2, happened_at=counted + timedelta(hours=1)),
            StockMovement(venue_id="demo", item_id="vodka", movement_type=MovementType.receipt, quantity=6, happened_at=counted + timedelta(hours=2)),
            StockMovement(venue_id="demo", item_id="gin", movement_type=MovementType.receipt, quantity=4, happened_at=counted),
        ]
    )
    db_session.commit()

    maps = load_stock_take(db_session, "demo")

    assert maps.last_counts == {"vodka": 5}
    assert maps.sold == {"vodka": 2}
    # gin jamais compté -> tous ses mouvements comptent
    assert maps.received == {"vodka": 6, "gin": 4}


def test_price_options_are_venue_scoped(db_session):
    run_seed(db_session)

    options = load_price_options(db_session, "demo")

    assert sorted(o.supplier_id for o in options["vodka"]) == ["bevco", "liquorland"]
    assert load_price_options(db_session, "elsewhere") == {}


def test_variance_for_seeded_venue(db_session):
    run_seed(db_session)
    db_session.add_all(
        [
            StockCount(item_id="vodka", venue_id="demo", qty=4),
            StockCount(item_id="gin", venue_id="demo", qty=10),
            StockCount(item_id="lemons", venue_id="demo", qty=40),
        ]
    )
    db_session.commit()

    report = variance_for_venue(db_session, "demo", "bar")

    assert [r.item_id for r in report.shortages] == ["vodka"]
    assert [r.item_id for r in report.excesses] == ["gin"]
    assert report.total_shortage_value == 150
    assert report.total_excess_value == 60


def test_suggestions_use_contract_tie_break_and_pack_rounding(db_session):
    run_seed(db_session)
    db_session.add(StockCount(item_id="vodka", venue_id="demo", qty=3))
    db_session.add(StockCount(item_id="gin", venue_id="demo", qty=8))
    db_session.add(StockCount(item_id="lemons", venue_id="demo", qty=35))
    db_session.commit()

    buckets = suggestions_for_venue(db_session, "demo", round_to_pack=True)

    assert set(buckets) == {"bevco"}
    by_id = {ln.product_id: ln for ln in buckets["bevco"]}
    # vodka : 24$ chez les deux, contrat BevCo -> BevCo ; 7 -> 12 (pack 6)
    assert by_id["vodka"].qty == 12
    assert by_id["vodka"].unit_cost == 24
    # lemons : déficit 5 < MOQ 20
    assert by_id["lemons"].qty == 20
    assert "gin" not in by_id


def test_materialize_for_venue_end_to_end(db_session):
    run_seed(db_session)

    first = materialize_for_venue(db_session, "demo", created_by="manager")
    second = materialize_for_venue(db_session, "demo")

    assert set(first.created) == {"bevco", "liquorland"}
    assert sorted(second.guarded) == ["bevco", "liquorland"]
    assert second.created == {}

    orders = db_session.execute(select(Order).where(Order.venue_id == "demo")).scalars().all()
    assert len(orders) == 2
    assert all(o.created_by == "manager" for o in orders)


def test_seed_is_idempotent(db_session):
    run_seed(db_session)
    run_seed(db_session)

    assert len(db_session.execute(select(Supplier)).scalars().all()) == 2
    assert len(db_session.execute(select(InventoryItem)).scalars().all()) == 3
    assert len(db_session.execute(select(SupplierPrice)).scalars().all()) == 3
