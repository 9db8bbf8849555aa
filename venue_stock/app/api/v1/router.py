from fastapi import APIRouter

from venue_stock.app.api.v1.endpoints.health import router as health_router
from venue_stock.app.api.v1.endpoints.venues import router as venues_router
from venue_stock.app.api.v1.endpoints.items import router as items_router
from venue_stock.app.api.v1.endpoints.suppliers import router as suppliers_router
from venue_stock.app.api.v1.endpoints.stock import router as stock_router
from venue_stock.app.api.v1.endpoints.variance import router as variance_router
from venue_stock.app.api.v1.endpoints.suggestions import router as suggestions_router
from venue_stock.app.api.v1.endpoints.orders import router as orders_router
from venue_stock.app.api.v1.endpoints.units import router as units_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(venues_router, tags=["venues"])
router.include_router(items_router, tags=["items"])
router.include_router(suppliers_router, tags=["suppliers"])
router.include_router(stock_router, tags=["stock"])
router.include_router(variance_router, tags=["variance"])
router.include_router(suggestions_router, tags=["suggestions"])
router.include_router(orders_router, tags=["orders"])
router.include_router(units_router, tags=["units"])
