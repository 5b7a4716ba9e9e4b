"""
ASGI entry point of the Model Quality Monitor.

Owns the asyncpg pool for the lifetime of the process and mounts the
/model-quality router. Run locally with:

    uvicorn model_quality.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from model_quality import __version__
from model_quality.api import api_router
from model_quality.core.database import close_db, init_db

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Origins of the admin dashboard front end
ADMIN_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the pool before serving and close it on shutdown."""
    logger.info(f"Model Quality Monitor {__version__} starting")
    try:
        await init_db()
    except Exception as e:
        # get_db_pool() retries on the first query
        logger.error(f"Database unavailable at startup: {e}")

    yield

    try:
        await close_db()
    except Exception as e:
        logger.error(f"Failed to close database pool: {e}")
    logger.info("Model Quality Monitor stopped")


app = FastAPI(
    title="Model Quality Monitor API",
    version=__version__,
    description=(
        "Read-only monitoring of the trade-acceptance predictor: calibration, "
        "segment drift, feature drift, ranking quality and narrative integrity."
    ),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ADMIN_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.get("/")
async def root():
    """Service name, version and where to find the OpenAPI docs."""
    return {
        "name": "Model Quality Monitor API",
        "version": __version__,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("model_quality.main:app", host="0.0.0.0", port=8000)
