"""FastAPI application entrypoint."""
import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bulk_transfer_api.deps import get_store
from bulk_transfer_api.routers import exports, health, imports
from bulk_transfer_core.util import configure_logging

configure_logging()
logger = structlog.get_logger()

app = FastAPI(title="Bulk Transfer API", version="1.0.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix="/api")
app.include_router(imports.router, prefix="/api/v1")
app.include_router(exports.router, prefix="/api/v1")


@app.on_event("startup")
def startup():
    """Initialize on startup."""
    logger.info("initializing_database")
    get_store().init_db()
