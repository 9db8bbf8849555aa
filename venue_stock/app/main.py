from fastapi import FastAPI

from venue_stock.app.api.v1.router import router as v1_router
from venue_stock.app.core.logging import setup_logging

setup_logging()

app = FastAPI(title="Venue Stock Replenishment", version="0.1.0")
app.include_router(v1_router, prefix="/v1")
