from __future__ import annotations

from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from venue_stock.app.db.session import SessionLocal
from venue_stock.services.order_store import SqlAlchemyOrderStore


def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_order_store(db: Session = Depends(get_db)) -> SqlAlchemyOrderStore:
    # même session que la requête : lock + order dans la même transaction
    return SqlAlchemyOrderStore(db)
