"""
Entry point de la API

Predicciones de usuarios, evaluación por partido (solo admins) y las tres
tablas de clasificación (partido, semana, temporada) con su versión en vivo.
"""

import logging
import re
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, Response
from pymongo.errors import PyMongoError
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import get_settings
from app.database import Database, create_indexes

from app.controllers.admin_controller import router as admin_router
from app.controllers.predictions_controller import router as predictions_router
from app.controllers.leaderboard_controller import router as leaderboard_router
from app.controllers.health_controller import router as health_router

settings = get_settings()

logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logging.getLogger("app").setLevel(settings.log_level.upper())
logger = logging.getLogger(__name__)


# ============================================
# 📌 CORS
# ============================================

ALLOWED_ORIGINS = {origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()}
ALLOWED_ORIGIN_PATTERN = re.compile(settings.cors_origin_regex) if settings.cors_origin_regex else None

PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Methods": "GET, POST, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Authorization, Content-Type, Accept, Origin",
    "Access-Control-Max-Age": "86400",
}


def origin_allowed(origin: str) -> bool:
    if not origin:
        return False
    if origin in ALLOWED_ORIGINS:
        return True
    return bool(ALLOWED_ORIGIN_PATTERN and ALLOWED_ORIGIN_PATTERN.fullmatch(origin))


def cors_headers(origin: str) -> dict:
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Credentials": "true",
    }


class PreflightCORSMiddleware(BaseHTTPMiddleware):
    """
    Responde el preflight OPTIONS antes del routing.

    Si llegara al router, la validación de query params (ej: ?evaluate=)
    lo rechazaría con 400/422.
    """

    async def dispatch(self, request: Request, call_next):
        origin = request.headers.get("origin", "")
        allowed = origin_allowed(origin)

        if request.method == "OPTIONS":
            if not allowed:
                return Response(status_code=403, content="Origin not allowed")
            return Response(status_code=200, headers={**cors_headers(origin), **PREFLIGHT_HEADERS})

        response = await call_next(request)
        if allowed:
            response.headers.update(cors_headers(origin))
        return response


# ============================================
# 📌 APP
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    await Database.connect()
    if settings.app_env == "development":
        await create_indexes()
    yield
    await Database.disconnect()


app = FastAPI(
    title="Cricket Predictions API",
    description="Motor de puntuación y leaderboards de predicciones de cricket",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(PreflightCORSMiddleware)


@app.exception_handler(PyMongoError)
async def mongo_error_handler(request: Request, exc: PyMongoError):
    # Fallo de la base (red, timeout, bulk_write a medias): el cliente puede reintentar
    logger.exception(f"❌ MongoDB error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Database unavailable, retry the operation"}
    )


app.include_router(health_router)
app.include_router(predictions_router)
app.include_router(leaderboard_router)
app.include_router(admin_router)


@app.get("/")
async def root():
    return {
        "name": "Cricket Predictions API",
        "version": "1.0.0",
        "docs": "/docs",
        "live_mode": settings.leaderboard_live_mode,
    }
