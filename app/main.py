"""
Main FastAPI Application for the ID PASS Lite Card Issuance Service
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import time
import logging

from app.core.config import get_settings
from app.core.exceptions import CardIssuanceError
from app.api.v1.api import api_router
from app.services.card_issuer import create_card_issuer

settings = get_settings()

# Configure logging
logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan events
    Builds the card issuer (key store, encoder, signature page) once at startup
    """
    logger.info("Starting card issuance service...")
    app.state.card_issuer = create_card_issuer(settings)
    logger.info("✅ Card issuer initialised")

    yield

    logger.info("Shutting down card issuance service...")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="Issues signed ID PASS Lite identity card PDFs",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan
)


# Request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add request processing time to response headers"""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


@app.exception_handler(CardIssuanceError)
async def handle_card_issuance_error(request: Request, exc: CardIssuanceError):
    """Issuance errors not handled by an endpoint"""
    logger.error(f"Unhandled issuance error ({type(exc).__name__}): {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": str(exc),
            "type": type(exc).__name__,
            "status_code": 500
        }
    )


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """Health check endpoint with card issuer status"""
    issuer = getattr(request.app.state, "card_issuer", None)
    health_status = {
        "status": "healthy" if issuer is not None else "unhealthy",
        "version": settings.VERSION,
        "system": settings.PROJECT_NAME,
        "timestamp": time.time(),
        "card_issuer": {
            "ready": issuer is not None,
            "store_prefix": issuer.encoder.key_store.store_prefix if issuer else None,
            "visible_fields": issuer.encoder.visible_fields if issuer else [],
        }
    }
    if issuer is None:
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=health_status)
    return health_status


app.include_router(api_router, prefix=settings.API_V1_STR)
