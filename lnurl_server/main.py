from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
import logging

from config import get_settings
from lnurl_server.database import create_tables
from lnurl_server.deps import _get_engine, _get_session_factory, _get_wallet
from lnurl_server.errors import LnurlError
from lnurl_server.routes import lnurl, users
from lnurl_server.schemas import HealthResponse
from lnurl_server.services.scheduler import SettlementScheduler

VERSION = "0.1.0"

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s"
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown"""
    settings = get_settings()
    logger.info("Starting LNURL zap server...")

    config_errors = settings.validate()
    for error in config_errors:
        logger.error(f"Configuration error: {error}")
    if config_errors:
        logger.warning("Application started with configuration problems - check logs above")

    create_tables(_get_engine())

    wallet = _get_wallet()
    scheduler = SettlementScheduler(settings, _get_session_factory(), wallet)
    scheduler.start()
    app.state.scheduler = scheduler

    logger.info(f"Serving lightning addresses for {settings.DOMAIN}")

    yield

    logger.info("Shutting down LNURL zap server...")
    scheduler.stop()
    await wallet.close()
    _get_wallet.cache_clear()
    logger.info("Application shutdown complete")

app = FastAPI(
    title="LNURL Zap Server",
    description="Lightning addresses with NIP-57 zap support",
    version=VERSION,
    lifespan=lifespan
)

# Add CORS middleware conditionally
if settings.CORS_ENABLED:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=False,
        allow_methods=settings.cors_methods_list,
        allow_headers=settings.cors_headers_list,
    )

@app.middleware("http")
async def limit_body_size(request: Request, call_next):
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > get_settings().MAX_BODY_BYTES:
        return PlainTextResponse("Request body too large", status_code=413)
    return await call_next(request)

@app.exception_handler(LnurlError)
async def lnurl_error_handler(request: Request, exc: LnurlError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.kind.code}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.kind.code}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.info(f"{request.method} {request.url.path} invalid request: {exc.errors()}")
    return JSONResponse(status_code=400, content={"status": "ERROR", "reason": "Invalid request"})

@app.exception_handler(StarletteHTTPException)
async def fallback_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return PlainTextResponse(f"No route for {request.url}", status_code=404)
    return await http_exception_handler(request, exc)

# Include routers
app.include_router(lnurl.router)
app.include_router(users.router)

# IETF draft RFC for HTTP API Health Checks:
# https://datatracker.ietf.org/doc/html/draft-inadarei-api-health-check
@app.get("/health-check", response_model=HealthResponse, tags=["health"], summary="Liveness check")
async def health_check():
    """Reports pass without checking database connectivity"""
    return HealthResponse(status="pass", version=VERSION)
