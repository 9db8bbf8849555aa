from __future__ import annotations

from sqlalchemy.orm import Session

from venue_stock.app.db.session import SessionLocal
from venue_stock.app.db.models.models_v1 import InventoryItem, Supplier, SupplierPrice, Venue

DEMO_VENUE_ID = "demo"


def run_seed(db: Session | None = None) -> None:
    own_session = db is None
    db = db or SessionLocal()
    try:
        # 1) Venue "demo"
        if not db.get(Venue, DEMO_VENUE_ID):
            db.add(Venue(id=DEMO_VENUE_ID, name="Demo Bar", active=True))
            db.flush()

        # 2) Fournisseurs
        for sid, name, lead in (("bevco", "BevCo", 2), ("liquorland", "Liquorland", 3)):
            if not db.get(Supplier, sid):
                db.add(Supplier(id=sid, venue_id=DEMO_VENUE_ID, name=name, lead_time_days=lead))
        db.flush()

        # 3) Items bar (par / pack / MOQ)
        items = (
            ("vodka", "Vodka 700ml", "bar", 25, 10, 6, None),
            ("gin", "Gin 700ml", "bar", 30, 8, 6, None),
            ("lemons", "Lemons", "kitchen", 0.5, 40, None, 20),
        )
        for iid, name, dept, cost, par, pack, moq in items:
            if not db.get(InventoryItem, iid):
                db.add(
                    InventoryItem(
                        id=iid,
                        venue_id=DEMO_VENUE_ID,
                        name=name,
                        department_id=dept,
                        unit_cost=cost,
                        par=par,
                        pack_size=pack,
                        moq=moq,
                        supplier_id="bevco",
                    )
                )
        db.flush()

        # 4) Prix concurrents : contrat BevCo à égalité de prix sur la vodka
        prices = (
            ("vodka", "bevco", 24, True),
            ("vodka", "liquorland", 24, False),
            ("gin", "liquorland", 28.5, False),
        )
        for iid, sid, price, contract in prices:
            if not db.get(SupplierPrice, (iid, sid)):
                db.add(SupplierPrice(item_id=iid, supplier_id=sid, price=price, is_contract=contract))

        db.commit()
        print(f"SEED OK: venue={DEMO_VENUE_ID}")
    finally:
        if own_session:
            db.close()


if __name__ == "__main__":
    run_seed()
