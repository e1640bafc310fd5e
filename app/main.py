"""
Clinica SaaS - Application principale FastAPI.

`create_app(database)` construit l'application autour d'un handle
Database injecté ; `app` est l'instance servie par uvicorn :

    uvicorn app.main:app --reload
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from app.api.v1.router import api_router
from app.core.config import settings
from app.core.exceptions import AppError, Conflict, Internal
from app.core.logging import setup_logging
from app.database.session import Database

logger = logging.getLogger(__name__)


# =============================================================================
# HANDLERS D'ERREURS
# =============================================================================

def _field_errors(exc: RequestValidationError) -> list:
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "header")]
        errors.append({"campo": ".".join(location) or None, "mensaje": error.get("msg")})
    return errors


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"❌ {exc.codigo} sur {request.method} {request.url.path} : {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder({
            "detail": "Datos inválidos",
            "codigo": "VALIDACION",
            "errores": _field_errors(exc),
        }),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning(f"⚠️ Contrainte violée sur {request.method} {request.url.path} : {exc.orig}")
    error = Conflict()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"❌ Erreur inattendue sur {request.method} {request.url.path}")
    error = Internal()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)


# =============================================================================
# APPLICATION
# =============================================================================

def create_app(database: Optional[Database] = None) -> FastAPI:
    """
    Construit l'application.

    Args:
        database: Handle injecté (tests) ; sinon construit depuis la configuration
    """
    setup_logging()
    database = database or Database.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info(f"🚀 Démarrage de {settings.APP_NAME} {settings.APP_VERSION} ({settings.ENVIRONMENT})")
        yield
        app.state.database.dispose()
        logger.info("👋 Arrêt de l'application")

    app = FastAPI(
        title=settings.APP_NAME,
        description="Gestion multi-tenant de cliniques : clients, citas, recetas et facturation plateforme",
        version=settings.APP_VERSION,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )
    app.state.database = database

    # Configuration CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(api_router)

    @app.get("/", tags=["System"])
    async def root():
        return {
            "app": settings.APP_NAME,
            "status": "running",
            "environment": settings.ENVIRONMENT,
        }

    @app.get("/health", tags=["System"])
    def health_check():
        """Endpoint de vérification de santé (inclut la base)."""
        database_ok = app.state.database.check_connection()
        return JSONResponse(
            status_code=status.HTTP_200_OK if database_ok else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "healthy" if database_ok else "unhealthy",
                "service": settings.APP_NAME,
                "version": settings.APP_VERSION,
                "database": "ok" if database_ok else "error",
            },
        )

    return app


app = create_app()
