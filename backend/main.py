"""
SkinScan Ingredient AI API
==========================

Main entry point for the ingredient enrichment service.

Features:
- Cache-first enrichment of scanned ingredient lists
- Safety database retrieval (RAG) with two-tier confidence thresholds
- Batched, parallel generation with deterministic fallbacks
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from skinscan.api.routes import router as api_router
from skinscan.core.config import get_settings

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting %s v%s", settings.app_name, settings.app_version)
    logger.info("Generation: %s (%s)", settings.generation_provider, settings.generation_model)
    logger.info("Safety search: %s", settings.safety_search_provider)
    logger.info("Cache: %s", settings.cache_backend)

    # Pre-warm the enricher (safety index build) to avoid cold start latency
    try:
        from skinscan.enrichment.enricher import get_enricher
        enricher = get_enricher()
        logger.info("Enricher ready (generation configured: %s)", enricher.generator.is_configured)
    except Exception as e:
        logger.warning("Enricher pre-warming failed (will retry on request): %s", e)

    yield

    logger.info("Shutting down %s.", settings.app_name)


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Enriches cosmetic ingredient lists with safety and benefit metadata",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url=None,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Include API routes
app.include_router(api_router, prefix=settings.api_prefix)


@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "version": settings.app_version,
        "model": settings.generation_model,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
