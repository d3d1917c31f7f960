from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from alembic import command
from alembic.config import Config
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool

from . import settings
from .auth import AuthGate
from .db import dispose_engine
from .errors import register_error_handlers
from .middleware import SecurityHeadersMiddleware
from .routers import admin, categories, comments, posts, system
from .seed import ensure_seed_data
from .utils import background

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def _alembic_config() -> Config:
    base_dir = Path(__file__).resolve().parent.parent
    cfg = Config(str(base_dir / "alembic.ini"))
    cfg.set_main_option("script_location", str(base_dir / "alembic"))
    return cfg


def run_migrations() -> None:
    logger.info("run_migrations: Upgrading to head...")
    try:
        command.upgrade(_alembic_config(), "head")
    except Exception as e:
        logger.error(f"run_migrations: Error occurred: {e}", exc_info=True)
        raise
    logger.info("run_migrations: Completed successfully.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting blog API...")
    if settings.RUN_MIGRATIONS:
        await run_in_threadpool(run_migrations)
        await ensure_seed_data()
    logger.info(f"Auth gate mode: {app.state.auth_gate.mode.value}")
    yield
    logger.info("Shutting down blog API...")
    await background.drain()
    await dispose_engine()


def create_app(auth_gate: AuthGate | None = None) -> FastAPI:
    app = FastAPI(
        title="Blog API",
        version="1.0.0",
        description="Posts, comments, categories and admin stats for a personal blog",
        lifespan=lifespan,
    )
    # The auth mode is decided once, here, and never toggled afterwards
    app.state.auth_gate = auth_gate or AuthGate.from_settings()

    if settings.CORS_ORIGINS == ["*"] and settings.ENVIRONMENT == "production":
        logger.warning(
            "CORS is configured to allow all origins. Set CORS_ORIGIN to the frontend domain."
        )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=settings.CORS_METHODS,
        allow_headers=["Content-Type", "Authorization"],
    )
    app.add_middleware(SecurityHeadersMiddleware)

    register_error_handlers(app)

    app.include_router(system.router)
    app.include_router(posts.router)
    app.include_router(categories.router)
    app.include_router(comments.router)
    app.include_router(admin.router)
    return app


app = create_app()
