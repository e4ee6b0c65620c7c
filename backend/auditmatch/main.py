"""
AuditMatch FastAPI Application Entry Point
FastAPI 应用入口
"""

import traceback

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from auditmatch.config import settings
from auditmatch.dependencies import get_audit_service
from auditmatch.exceptions import AuditMatchError
from auditmatch.routers import process_router
from auditmatch.utils.logger import get_logger

logger = get_logger(__name__)

# Initialize rate limiter
limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])

# Create FastAPI application / 创建 FastAPI 应用
app = FastAPI(
    title="AuditMatch API",
    description="Concurrent compliance evidence matching / 合规问题证据匹配",
    version="0.1.0",
    debug=settings.debug,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


@app.exception_handler(AuditMatchError)
async def audit_match_exception_handler(request: Request, exc: AuditMatchError):
    """Map application exceptions to ``{success, message, errors?, stack?}``."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    else:
        logger.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)

    content = {"success": False, "message": exc.message}
    if exc.details:
        content["errors"] = exc.details
    if not settings.is_production:
        content["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=exc.status_code, content=content)


# Global exception handler: unhandled errors become a generic 500
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions and return a safe 500 response."""
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal server error"},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Strategy: Dual Mount
# "/" for the dev proxy (which strips /api), "/api" for direct frontend calls
for router in (process_router,):
    app.include_router(router)
    app.include_router(router, prefix="/api")


@app.on_event("startup")
async def on_startup():
    """Load the policy index and warm the document store caches."""
    logger.info("Starting AuditMatch in %s mode", settings.environment)
    await get_audit_service().startup()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "auditmatch.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
