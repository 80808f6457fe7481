"""
FastAPI Backend for the OCR Order Reconciliation Service
Handles order uploads, catalog reconciliation, and export with automated correction
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
import logging

from recon import config

# Configure logging to show INFO level messages
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format='%(levelname)s:     %(name)s - %(message)s'
)

logger = logging.getLogger(__name__)

from api.database import init_order_tables
from api.routes import orders
from api.services.rate_limiter import limiter
from api.services.reconciliation import get_reconciler
from recon.export import check_export_target


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: create tables and load the catalog on startup."""
    init_order_tables()

    try:
        target = check_export_target()
    except ValueError as e:
        logger.error(f"Invalid EXPORT_TARGET: {e}")
        raise
    logger.info(f"Export target: {target}")

    reconciler = get_reconciler()
    entries = reconciler.warm_up()
    if entries == 0:
        logger.warning(f"Catalog is empty ({config.CATALOG_PATH}); every line will need review")
    else:
        logger.info(f"Catalog loaded: {entries} entries")

    yield  # App runs here

    logger.info("Shutting down Order Reconciliation API")


app = FastAPI(
    title="OCR Order Reconciliation API",
    description="Reconcile OCR'd order lines against the product catalog and export them",
    version="0.1.0",
    lifespan=lifespan
)

# Attach rate limiter to app
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(orders.router, prefix="/api/orders", tags=["orders"])


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "order-reconciliation"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api.main:app", host=config.API_HOST, port=config.API_PORT, reload=True)
