"""
FastAPI application for the DineIn ordering backend.

Run with::

    uvicorn dinein.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from dinein import config
from dinein.api import (
    auth_router,
    food_items_router,
    orders_router,
    payments_router,
    restaurants_router,
    subscriptions_router,
    tables_router,
)
from dinein.errors import ApiError, error_body
from dinein.services.notifications import build_notifier
from dinein.services.payments import RazorpayGateway
from dinein.storage import SQLAlchemyStorage

logger = logging.getLogger(__name__)


def build_gateway():
    """Gateway client when credentials are configured, else online payments are disabled."""
    if config.GATEWAY_KEY_ID and config.GATEWAY_KEY_SECRET:
        return RazorpayGateway()
    logger.warning("GATEWAY_KEY_ID/GATEWAY_KEY_SECRET not set; online payments disabled")
    return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    if app.state.storage is None:
        app.state.storage = SQLAlchemyStorage()
    if app.state.gateway is None:
        app.state.gateway = build_gateway()
    try:
        yield
    finally:
        if isinstance(app.state.gateway, RazorpayGateway):
            await app.state.gateway.aclose()
        app.state.storage.close()


async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.errors))


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content=error_body(str(exc.detail)))


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content=error_body("Invalid request", errors))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=error_body("Internal Server Error"))


def create_app(storage=None, gateway=None, notifier=None) -> FastAPI:
    """
    Build the API with its collaborators on ``app.state``.

    Anything left as None is created from the environment at startup
    (storage, gateway) or right away (notifier).
    """
    app = FastAPI(title="DineIn Ordering Backend", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.storage = storage
    app.state.gateway = gateway
    app.state.notifier = notifier or build_notifier()

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(auth_router.router)
    app.include_router(restaurants_router.router)
    app.include_router(tables_router.router)
    app.include_router(food_items_router.router)
    app.include_router(orders_router.router)
    app.include_router(payments_router.router)
    app.include_router(subscriptions_router.router)

    @app.get("/health")
    async def health():
        return {"status": "ok", "environment": config.ENVIRONMENT}

    return app


config.configure_logging()
app = create_app()
