from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load environment variables early
load_dotenv()

from app.api import health, issues  # noqa: E402
from app.db import engine  # noqa: E402
from app.logging_config import setup_logging  # noqa: E402
from app.services.search_config_service import SearchConfigService  # noqa: E402

setup_logging(SearchConfigService.get_log_level())
logger = logging.getLogger(__name__)

app = FastAPI(title="Issue Search API")

# CORS setup
origins = [os.getenv("FRONTEND_ORIGIN", "http://localhost:3000")]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Startup / shutdown hooks
# ---------------------------------------------------------------------------


@app.on_event("startup")
async def startup_event():
    """Startup event handler."""
    logger.info("[Startup] Using Alembic for database migrations")
    logger.info(
        f"[Startup] Issue search: max limit {SearchConfigService.get_max_limit()}, "
        f"default page size {SearchConfigService.get_default_page_size()}"
    )


@app.on_event("shutdown")
async def shutdown_event():
    """Shutdown event handler."""
    logger.info("[Shutdown] Disposing database engine")
    await engine.dispose()


# Include API routers
app.include_router(health.router)
app.include_router(issues.router)
