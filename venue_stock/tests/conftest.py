import threading

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from venue_stock.app.api.deps import get_db
from venue_stock.app.db.base import Base
from venue_stock.app.db.models import models_v1  # noqa: F401  (tables)
from venue_stock.app.db.models.core_types import OrderStatus
from venue_stock.app.main import app
from venue_stock.services.errors import LockHeldError, StoreError
from venue_stock.services.order_store import OrderRef
from venue_stock.services.retry import RetryPolicy


@pytest.fixture(scope="function")
def engine():
    """
    Base SQLite en mémoire, isolée par test.
    StaticPool : une seule connexion partagée -> le schéma survit entre sessions.
    """
    eng = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    try:
        yield eng
    finally:
        Base.metadata.drop_all(bind=eng)
        eng.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture(scope="function")
def file_session_factory(tmp_path):
    """
    Base SQLite sur fichier : une connexion par session,
    pour simuler deux clients qui se partagent la même base.
    """
    eng = create_engine(f"sqlite+pysqlite:///{tmp_path / 'venue_stock.db'}")
    Base.metadata.create_all(bind=eng)
    try:
        yield sessionmaker(bind=eng, autoflush=False, autocommit=False)
    finally:
        Base.metadata.drop_all(bind=eng)
        eng.dispose()


@pytest.fixture(scope="function")
def db_session(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(session_factory):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def no_wait_policy():
    return RetryPolicy(attempts=3, base_delay=0, max_delay=0)


class InMemoryOrderStore:
    """
    Store en mémoire thread-safe, mêmes règles que le store SQL :
    - create_draft_with_lock refuse si un draft est ouvert (lock présent ou non)
      et nettoie un lock périmé, le tout sous mutex
    - release_lock ne supprime rien tant qu'un draft est ouvert
    """

    def __init__(self):
        self._mutex = threading.Lock()
        self.orders: dict[int, dict] = {}
        self.locks: set[tuple[str, str]] = set()
        self.next_id = 1
        self.max_open_drafts: dict[tuple[str, str], int] = {}
        self.fail_release = False
        self.healed = 0

    def _open(self, venue_id, supplier_key):
        return sum(
            1
            for o in self.orders.values()
            if o["venue_id"] == venue_id and o["supplier_key"] == supplier_key and o["status"] == OrderStatus.draft
        )

    def create_draft_with_lock(self, draft):
        with self._mutex:
            key = (draft.venue_id, draft.supplier_key)
            if self._open(*key) > 0:
                raise LockHeldError(draft.venue_id, draft.supplier_key)
            if key in self.locks:
                self.healed += 1
            self.locks.add(key)
            order_id = self.next_id
            self.next_id += 1
            self.orders[order_id] = {
                "venue_id": draft.venue_id,
                "supplier_key": draft.supplier_key,
                "status": OrderStatus.draft,
                "lines": list(draft.lines),
                "draft": draft,
            }
            opened = self._open(*key)
            self.max_open_drafts[key] = max(self.max_open_drafts.get(key, 0), opened)
            return order_id

    def get_order(self, venue_id, order_id):
        with self._mutex:
            o = self.orders.get(order_id)
            if not o or o["venue_id"] != venue_id:
                return None
            return OrderRef(id=order_id, venue_id=venue_id, supplier_key=o["supplier_key"], status=o["status"])

    def delete_order(self, venue_id, order_id):
        ref = self.get_order(venue_id, order_id)
        if ref:
            with self._mutex:
                del self.orders[order_id]
        return ref

    def set_status(self, venue_id, order_id, status):
        with self._mutex:
            o = self.orders.get(order_id)
            if o and o["venue_id"] == venue_id:
                o["status"] = status

    def count_open_drafts(self, venue_id, supplier_key):
        with self._mutex:
            return self._open(venue_id, supplier_key)

    def lock_exists(self, venue_id, supplier_key):
        with self._mutex:
            return (venue_id, supplier_key) in self.locks

    def release_lock(self, venue_id, supplier_key):
        if self.fail_release:
            raise StoreError("lock delete failed")
        with self._mutex:
            if self._open(venue_id, supplier_key) > 0:
                return False
            if (venue_id, supplier_key) in self.locks:
                self.locks.discard((venue_id, supplier_key))
                return True
            return False


@pytest.fixture
def memory_store():
    return InMemoryOrderStore()
