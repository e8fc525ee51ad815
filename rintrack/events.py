import logging

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from rintrack.core.firebase import is_configured
from rintrack.core.settings import settings
from rintrack.db.init_db import init_db
from rintrack.db.session import engine

logger = logging.getLogger(__name__)


def register_event_handlers(app: FastAPI) -> None:
    @app.on_event("startup")
    async def on_startup() -> None:
        logger.info("Application startup (environment=%s)", settings.environment)
        if not is_configured():
            logger.warning("Identity issuer is not configured; authenticated routes will fail")
        if not settings.stripe_secret_key:
            logger.warning("STRIPE_SECRET_KEY is not set; checkout is unavailable")
        try:
            await init_db()
        except (SQLAlchemyError, OSError):
            logger.exception("Admin seeding failed")

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        logger.info("Application shutdown")
        await engine.dispose()
