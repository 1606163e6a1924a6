"""
FastAPI application entry point.

Configures logging, middleware, routes, and exception handlers.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from truk.core.config import settings
from truk.core.database import close_db, init_models
from truk.core.dependencies import close_redis
from truk.core.logging import configure_logging

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    configure_logging()
    logger.info("Starting Truk API in %s mode", settings.ENVIRONMENT)
    if settings.DB_CREATE_TABLES:
        await init_models()
    yield
    logger.info("Shutting down Truk API")
    await close_redis()
    await close_db()


app = FastAPI(
    title="Truk API",
    description="Community exchange platform: offers, events, housing and mutual aid",
    version=API_VERSION,
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
    openapi_url="/api/openapi.json" if settings.DEBUG else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    if settings.DEBUG:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": {
                    "code": "INTERNAL_SERVER_ERROR",
                    "message": str(exc),
                    "type": type(exc).__name__,
                }
            },
        )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": {
                "code": "INTERNAL_SERVER_ERROR",
                "message": "An unexpected error occurred",
            }
        },
    )


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    return {
        "status": "ok",
        "environment": settings.ENVIRONMENT,
        "version": API_VERSION,
    }


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    return {
        "message": "Truk API",
        "version": API_VERSION,
        "docs": "/api/docs" if settings.DEBUG else "disabled",
    }


from truk.routers import auth, credits, events, housing, mutual_aid, offers  # noqa: E402

app.include_router(auth.router, prefix="/api/v1/auth", tags=["Auth"])
app.include_router(credits.router, prefix="/api/v1/credits", tags=["Credits"])
app.include_router(offers.router, prefix="/api/v1/offers", tags=["Offers"])
app.include_router(events.router, prefix="/api/v1/events", tags=["Events"])
app.include_router(housing.router, prefix="/api/v1/housing", tags=["Housing"])
app.include_router(mutual_aid.router, prefix="/api/v1/mutual-aid", tags=["Mutual Aid"])
