"""V1 API router — aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from prefuel.presentation.api.v1.endpoints.admin import router as admin_router
from prefuel.presentation.api.v1.endpoints.attendance import router as attendance_router
from prefuel.presentation.api.v1.endpoints.auth import router as auth_router
from prefuel.presentation.api.v1.endpoints.entities import entity_routers
from prefuel.presentation.api.v1.endpoints.health import router as health_router
from prefuel.presentation.api.v1.endpoints.live import router as live_router
from prefuel.presentation.api.v1.endpoints.purchase_orders import router as purchase_orders_router
from prefuel.presentation.api.v1.endpoints.quotes import router as quotes_router
from prefuel.presentation.api.v1.endpoints.stats import router as stats_router

router = APIRouter(prefix="/v1")
router.include_router(health_router)
router.include_router(auth_router)
router.include_router(live_router)
# Action routes go before the generic collection routes of the same prefix.
router.include_router(purchase_orders_router)
router.include_router(quotes_router)
for entity_router in entity_routers():
    router.include_router(entity_router)
router.include_router(attendance_router)
router.include_router(stats_router)
router.include_router(admin_router)
