"""
WedStay — wedding rental & services marketplace core.

App wiring only: logging, tables, scheduler, middleware, error handlers,
routers. Business logic lives in services/.
"""

import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException
from starlette.middleware.sessions import SessionMiddleware

from .config import APP_VERSION, settings
from .database import create_tables
from .logging_config import setup_logging
from .rate_limit import limiter
from .routers import admin, inquiries, orders, products, vendors
from .scheduler import configure_scheduler, scheduler
from .schemas.errors import ErrorResponse
from .schemas.responses import OkResponse


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    create_tables()
    logger.info(f"WedStay {APP_VERSION} starting")
    started = False
    if settings.scheduler_enabled and not settings.testing:
        configure_scheduler()
        scheduler.start()
        started = True
    yield
    if started:
        scheduler.shutdown(wait=False)


app = FastAPI(title="WedStay", version=APP_VERSION, lifespan=lifespan)
app.add_middleware(SessionMiddleware, secret_key=settings.secret_key, https_only=False)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# ── Middleware ────────────────────────────────────────────────────────


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = uuid.uuid4().hex[:8]
    with logger.contextualize(request_id=request_id):
        response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


# ── Error handlers ────────────────────────────────────────────────────


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    body = ErrorResponse(
        error=str(exc.detail), status_code=exc.status_code, kind=getattr(exc, "kind", "")
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(), headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    body = ErrorResponse(
        error="Validation failed",
        status_code=422,
        kind="validation_failed",
        detail=[
            {"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()
        ],
    )
    return JSONResponse(status_code=422, content=body.model_dump())


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    body = ErrorResponse(error="The store is temporarily unavailable, retry shortly", status_code=503)
    return JSONResponse(status_code=503, content=body.model_dump())


# ── Routes ────────────────────────────────────────────────────────────


@app.get("/health", response_model=OkResponse)
def health():
    return OkResponse()


app.include_router(vendors.router)
app.include_router(products.router)
app.include_router(inquiries.router)
app.include_router(orders.router)
app.include_router(admin.router)
