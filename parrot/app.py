"""
Parrot Microservice for the Discord bot
Main application entry point

Builds per-user Markov chains from stored messages and generates
sentences that mimic how those users write. CPU-only.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from parrot.config import settings
from parrot.utils.logger import setup_logger

# Setup logging
logger = setup_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for service initialization"""
    from parrot.services.chain_cache import get_chain_cache
    from parrot.services.message_store import get_store

    logger.info("[BOOT] Starting Parrot service...")
    logger.info(f"[BOOT] Message store: {settings.MESSAGE_STORE}")

    app.state.chain_cache = get_chain_cache()

    try:
        app.state.message_store = get_store()
        logger.info("[BOOT] Parrot service ready!")
        yield

    except Exception as e:
        logger.error(f"[ERR] Failed to initialize: {e}", exc_info=True)
        raise
    finally:
        logger.info("[SHUTDOWN] Dropping cached chains...")
        app.state.chain_cache.invalidate()
        logger.info("[SHUTDOWN] Parrot service stopped")


# Create FastAPI app
app = FastAPI(
    title="Parrot Service",
    description="Markov chain sentence generator that mimics Discord users",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"[ERR] Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "ok": False,
            "error": {
                "code": "PARROT_SERVICE_ERROR",
                "message": "Internal server error occurred",
                "details": {"type": type(exc).__name__},
            },
        },
    )


# Health check
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "ok": True,
        "data": {
            "status": "healthy",
            "store": settings.MESSAGE_STORE,
        },
    }


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "endpoints": {
            "health": "/health",
            "docs": "/docs",
            "markov": "/markov/*",
            "users": "/users/*",
            "reload": "/reload/*",
        },
    }


from parrot.api.routers import (
    markov_router,
    users_router,
    reload_router,
)

app.include_router(markov_router.router, tags=["Markov"])
app.include_router(users_router.router, tags=["Users"])
app.include_router(reload_router.router, tags=["Reload"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "parrot.app:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
