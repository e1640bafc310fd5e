"""
Router principal API v1.

Agrège tous les routers des différents modules métier.

Usage dans main.py:
    from app.api.v1.router import api_router

    app = FastAPI(title="Clinica SaaS API")
    app.include_router(api_router)
"""
from fastapi import APIRouter

from app.api.v1.auth.routes import router as auth_router
from app.api.v1.business.routes import router as business_router
from app.api.v1.clinic.routes import router as clinic_router
from app.api.v1.platform.routes import router as platform_router


# =============================================================================
# ROUTER PRINCIPAL
# =============================================================================

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(auth_router)
api_router.include_router(clinic_router)
api_router.include_router(business_router)
api_router.include_router(platform_router)
