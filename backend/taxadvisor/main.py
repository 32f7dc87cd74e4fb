"""
TaxAdvisor FastAPI Application Entry Point
FastAPI 应用入口
"""

from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from taxadvisor.config import settings
from taxadvisor.dependencies import get_knowledge_cache
from taxadvisor.exceptions import CorruptIndexError, ValidationError
from taxadvisor.routers import knowledge_router, tax_law_router
from taxadvisor.utils.logger import get_logger

logger = get_logger(__name__)

# Initialize rate limiter
limiter = Limiter(key_func=get_remote_address, default_limits=["200/minute"])

# Create FastAPI application / 创建 FastAPI 应用
app = FastAPI(
    title="TaxAdvisor API",
    description="Personal Dutch tax knowledge assistant / 个人税务知识助手",
    version="0.1.0",
    debug=settings.debug,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(CorruptIndexError)
async def corrupt_index_handler(request: Request, exc: CorruptIndexError):
    """The knowledge index cannot be read; the cache is unavailable, not the service."""
    logger.error("Knowledge index unavailable on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={"detail": "Knowledge cache unavailable"},
    )


# Global exception handler: internal details stay out of client responses
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
        content={"detail": "Internal server error"},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:8000",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:8000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers / 注册路由
# Dual mount: "/" for the dev proxy, "/api" for direct clients
for router in (knowledge_router, tax_law_router):
    app.include_router(router)                  # http://localhost:8000/knowledge
    app.include_router(router, prefix="/api")   # http://localhost:8000/api/knowledge


@app.get("/health")
async def health_check():
    """Health check endpoint / 健康检查"""
    knowledge_dir = Path(settings.knowledge_dir)
    return {
        "status": "ok",
        "version": app.version,
        "storage_accessible": knowledge_dir.exists(),
    }


@app.on_event("startup")
async def on_startup():
    """Load the knowledge index once so a corrupt file shows up in the logs early."""
    try:
        index = await get_knowledge_cache().initialize()
        logger.info("Knowledge cache ready: %s entries", len(index.entries))
    except CorruptIndexError as exc:
        logger.error("Knowledge cache unavailable at startup: %s", exc)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("taxadvisor.main:app", host=settings.host, port=settings.port, reload=settings.debug)
