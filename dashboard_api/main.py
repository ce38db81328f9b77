"""
ecaytracker dashboard API.

Read-only FastAPI service over the listings database written by the scraper.
"""
import logging
import os
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import config
from .database import get_db_connection
from .routes import listings_router, stats_router

# Configure logging
_handlers = [logging.StreamHandler(sys.stdout)]
if os.getenv("API_LOG_FILE"):
    _handlers.append(logging.FileHandler(os.environ["API_LOG_FILE"]))
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=_handlers
)

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    logger.info("Starting ecaytracker API...")
    try:
        config.validate()
        logger.info(f"Database path: {config.DB_PATH} (env={config.ENV})")
        yield
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise
    finally:
        logger.info("Shutting down ecaytracker API...")

# Create FastAPI application
app = FastAPI(
    title=config.API_TITLE,
    version=config.API_VERSION,
    description=config.API_DESCRIPTION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.FRONTEND_URL],
    allow_methods=config.CORS_ALLOW_METHODS,
    allow_headers=config.CORS_ALLOW_HEADERS,
)

@app.exception_handler(Exception)
async def global_exception_handler(request, exc: Exception):
    """Global exception handler for unhandled errors."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"data": None, "error": "Internal server error"}
    )

@app.get("/health")
async def health_check():
    """Ping the database."""
    try:
        with get_db_connection() as conn:
            conn.execute("SELECT 1").fetchone()
        return {"status": "ok"}
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=503, detail="Service unavailable")

app.include_router(listings_router)
app.include_router(stats_router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "dashboard_api.main:app",
        host="0.0.0.0",
        port=config.PORT,
        reload=config.ENV == "development",
        log_level=config.LOG_LEVEL.lower()
    )
