"""FastAPI application entry point."""
from fastapi import FastAPI
from sqlalchemy import text

from crm_integrity.core.config import settings
from crm_integrity.core.structured_logging import configure_logging
from crm_integrity.db.session import engine
from crm_integrity.routers import internal_router

configure_logging()

app = FastAPI(
    title="CRM Integrity API",
    description="Scheduled data-integrity maintenance for CRM workspaces",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url=None,
)

# Internal scheduled endpoints (cron)
app.include_router(internal_router)


@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
