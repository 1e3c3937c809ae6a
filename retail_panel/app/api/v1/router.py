from fastapi import APIRouter

from retail_panel.app.api.v1.endpoints.dashboard import router as dashboard_router
from retail_panel.app.api.v1.endpoints.products import router as products_router
from retail_panel.app.api.v1.endpoints.sales import router as sales_router
from retail_panel.app.api.v1.endpoints.sync import router as sync_router

router = APIRouter()
router.include_router(products_router, tags=["products"])
router.include_router(sales_router, tags=["sales"])
router.include_router(sync_router, tags=["sync"])
router.include_router(dashboard_router, tags=["dashboard"])
