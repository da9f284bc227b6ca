"""
Catalog Gateway - Main FastAPI Application
Cached, validated access to TMDB without exposing provider credentials
"""
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.bulk import BulkHandler
from app.cache import BackgroundWriter, CacheStore
from app.cache.background import get_background_writer, shutdown_background_writer
from app.cache.store import get_cache_store
from app.db import init_db
from app.errors import GatewayError, InternalError, ValidationError
from app.proxy import ProxyHandler
from app.schemas import BulkRequest, BulkResponse, ErrorResponse, ProxyRequest
from app.tmdb_client import TmdbClient, get_tmdb_client
from config.settings import settings

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger("main")

# Version tracking
APP_VERSION = "v0.1.0"
APP_NAME = "Catalog Gateway"


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield
    shutdown_background_writer(wait=True)


app = FastAPI(
    title=APP_NAME,
    description="Caching, validating proxy in front of TMDB",
    version=APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


# =============================================================================
# ERROR HANDLING
# =============================================================================

@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=exc.headers(),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=ValidationError.status_code,
        content=ValidationError("Invalid request body").to_dict(),
    )


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url.path}")
    return JSONResponse(
        status_code=InternalError.status_code,
        content=InternalError("Internal error").to_dict(),
    )


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_proxy_handler(
    client: TmdbClient = Depends(get_tmdb_client),
    store: CacheStore = Depends(get_cache_store),
    writer: BackgroundWriter = Depends(get_background_writer),
) -> ProxyHandler:
    return ProxyHandler(client, store, writer)


def get_bulk_handler(
    client: TmdbClient = Depends(get_tmdb_client),
    store: CacheStore = Depends(get_cache_store),
    writer: BackgroundWriter = Depends(get_background_writer),
) -> BulkHandler:
    return BulkHandler(client, store, writer)


# =============================================================================
# SERVICE ENDPOINTS
# =============================================================================

@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok", "source": "tmdb", "cache_enabled": settings.cache_enabled}


@app.get("/version")
def version_info():
    """Version information endpoint."""
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "full": f"{APP_NAME} {APP_VERSION}",
    }


@app.get("/cache/stats")
def cache_stats(
    store: CacheStore = Depends(get_cache_store),
    writer: BackgroundWriter = Depends(get_background_writer),
):
    """Get cache table and background writer statistics."""
    return {"cache": store.stats(), "background": writer.get_stats()}


# =============================================================================
# TMDB PROXY
# =============================================================================

@app.post(
    "/tmdb-proxy",
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
def tmdb_proxy(body: ProxyRequest, handler: ProxyHandler = Depends(get_proxy_handler)):
    """
    Proxy one allow-listed TMDB resource.

    The upstream JSON is returned unchanged; X-Cache tells whether it came
    from the cache (HIT), was fetched and cached (MISS) or is never cached
    (BYPASS).
    """
    result = handler.handle(body.path, body.query, body.language, body.region)
    return JSONResponse(
        content=result.payload,
        headers={"X-Cache": result.cache_status.value},
    )


@app.post("/tmdb-bulk", response_model=BulkResponse, responses={400: {"model": ErrorResponse}})
def tmdb_bulk(body: BulkRequest, handler: BulkHandler = Depends(get_bulk_handler)):
    """
    Resolve up to BULK_MAX_ITEMS movie/TV ids in one call.

    Ids are deduplicated and capped; items that fail upstream are omitted.
    """
    if not body.ids:
        return {"items": []}
    items = handler.handle(body.ids, body.content_type, body.language)
    return {"items": items}
