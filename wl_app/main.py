# wl_app/main.py
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from wl_app.core.config import settings, logger
from wl_app.core.errors import StorageError
from wl_app.core.rate_limit import InMemoryRateLimitStore, RateLimitStore
from wl_app.core.security import AdminAllowList, AdminAuthError
from wl_app.db import base as db
from wl_app.storage.users import UserStorage
from wl_app.storage.waitlist import WaitlistStorage

import wl_app.api.admin as admin_api
import wl_app.api.health as health_api
import wl_app.api.waitlist as waitlist_api

_LOCATIONS = {"body", "query", "path", "header"}


def _field_name(loc) -> str:
    parts = [str(p) for p in loc if p not in _LOCATIONS]
    return ".".join(parts) or "body"


async def _validation_error(request: Request, exc: RequestValidationError):
    errors = [{"field": _field_name(e.get("loc", ())), "message": e.get("msg", "")} for e in exc.errors()]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Invalid input data", "errors": errors},
    )


async def _storage_error(request: Request, exc: StorageError):
    if exc.is_internal:
        logger.error(f"{request.method} {request.url.path} failed: {exc!r}")
        message = "Internal server error"
    else:
        message = exc.message
    return JSONResponse(status_code=exc.http_status, content={"message": message, "code": exc.code})


async def _admin_auth_error(request: Request, exc: AdminAuthError):
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"authenticated": False, "message": exc.message},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _http_error(request: Request, exc: StarletteHTTPException):
    content = exc.detail if isinstance(exc.detail, dict) else {"message": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


async def _unhandled_error(request: Request, exc: Exception):
    logger.exception(f"unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal server error"},
    )


def create_app(
    database_url: Optional[str] = None,
    rate_limit_store: Optional[RateLimitStore] = None,
    admin_allow_list: Optional[AdminAllowList] = None,
) -> FastAPI:
    engine = db.make_engine(database_url) if database_url else db.engine
    session_maker = db.make_session_maker(engine) if database_url else db.async_session

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await db.init_db(engine)
        logger.info(f"waitlist api started env={settings.env}")
        try:
            yield
        finally:
            await engine.dispose()

    app = FastAPI(title="Waitlist", lifespan=lifespan)

    app.state.waitlist_storage = WaitlistStorage(session_maker, settings.verification_token_hours)
    app.state.user_storage = UserStorage(session_maker)
    app.state.rate_limit_store = rate_limit_store or InMemoryRateLimitStore()
    app.state.admin_allow_list = admin_allow_list or AdminAllowList.from_settings()

    app.include_router(health_api.router)
    app.include_router(waitlist_api.router)
    app.include_router(admin_api.router)

    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(StorageError, _storage_error)
    app.add_exception_handler(AdminAuthError, _admin_auth_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(Exception, _unhandled_error)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    return app


app = create_app()
