from fastapi import APIRouter

from stockledger.app.api.v1.endpoints.health import router as health_router
from stockledger.app.api.v1.endpoints.parts import router as parts_router
from stockledger.app.api.v1.endpoints.suppliers import router as suppliers_router
from stockledger.app.api.v1.endpoints.stock_movements import router as stock_movements_router
from stockledger.app.api.v1.endpoints.replenishment_orders import router as replenishment_orders_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(parts_router, tags=["parts"])
router.include_router(suppliers_router, tags=["suppliers"])
router.include_router(stock_movements_router, tags=["stock_movements"])
router.include_router(replenishment_orders_router, tags=["replenishment_orders"])
