from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from draft_api.config import settings
from draft_api.routers.captains import router as captains_router
from draft_api.routers.drafts import router as drafts_router
from draft_api.routers.health import router as health_router
from draft_api.routers.picks import router as picks_router
from draft_api.routers.queue import router as queue_router

logger = logging.getLogger("draft_api")


async def _http_error(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Clients only ever look at "error"; keep Retry-After and friends.
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)


async def _validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        {"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
    )


async def _store_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Unhandled database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse({"error": "Internal server error"}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


def create_app() -> FastAPI:
    app = FastAPI(title="Captains Draft API")

    allow_origins = [o.strip() for o in settings.cors_allow_origins.split(",") if o.strip()]
    # In local dev the frontend may run on any port. Allow any localhost origin so CORS
    # doesn't surface as an opaque "Failed to fetch".
    app_env = settings.app_env.lower()
    allow_origin_regex = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$" if app_env == "dev" else None
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_origin_regex=allow_origin_regex,
        # Managers use Authorization bearer tokens and captains send their token in the body,
        # so credentials aren't needed.
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(SQLAlchemyError, _store_error)

    app.include_router(health_router, prefix=settings.api_prefix)
    app.include_router(drafts_router, prefix=settings.api_prefix)
    app.include_router(picks_router, prefix=settings.api_prefix)
    app.include_router(queue_router, prefix=settings.api_prefix)
    app.include_router(captains_router, prefix=settings.api_prefix)
    return app


app = create_app()
