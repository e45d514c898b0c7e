from fastapi import APIRouter

from backend.app.api.v1.endpoints.health import router as health_router
from backend.app.api.v1.endpoints.staff import router as staff_router
from backend.app.api.v1.endpoints.ingredients import router as ingredients_router
from backend.app.api.v1.endpoints.pullouts import router as pullouts_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(staff_router, tags=["staff"])
router.include_router(ingredients_router, tags=["ingredients"])
router.include_router(pullouts_router, tags=["pullouts"])
