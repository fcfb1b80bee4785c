"""
ER Vision Proxy FastAPI Application
Main entry point: relays camera frames to Gemini Robotics-ER and issues
ephemeral Live tokens so the browser never holds the provider key.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import get_settings
from .models import HealthResponse
from .routers import er, live
from core.errors import ERProxyError, redact_secrets
from core.live_token import isoformat_utc

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings = get_settings()
    settings.validate_credentials()
    logger.info("Starting ER Vision Proxy...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Mock mode: {settings.mock_enabled}")
    if settings.mock_mode and not settings.mock_enabled:
        logger.warning("MOCK_MODE ignored in production")
    logger.info(f"ER model: {settings.er_model}")
    logger.info(f"Allowed origin: {settings.web_origin}")

    yield

    logger.info("Shutting down ER Vision Proxy...")


# Create FastAPI app
app = FastAPI(
    title="ER Vision Proxy",
    description="Frame-to-inference proxy for Gemini Robotics-ER with ephemeral Live tokens",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware (browser front-end origin only)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.web_origin],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(er.router)
app.include_router(live.router)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": redact_secrets(message, [get_settings().gemini_api_key])}
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if any(err.get("type") == "json_invalid" for err in errors):
        return _error(400, "Malformed JSON body")

    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return _error(400, f"{field}: {message}" if field else message)


@app.exception_handler(ERProxyError)
async def proxy_error_handler(request: Request, exc: ERProxyError):
    return _error(exc.status_code, exc.message)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    message = redact_secrets(str(exc) or type(exc).__name__, [get_settings().gemini_api_key])
    logger.error(f"Unhandled error on {request.url.path}: {message}")
    return _error(500, "Internal server error")


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(status="ok", timestamp=isoformat_utc(datetime.now(timezone.utc)))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=not settings.is_production
    )
