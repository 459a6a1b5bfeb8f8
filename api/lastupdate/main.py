from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from alembic import command
from alembic.config import Config
from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

load_dotenv()

from .middleware import SecurityHeadersMiddleware  # noqa: E402
from .routers import (  # noqa: E402
    auth,
    dashboard,
    geo,
    members,
    notifications,
    pages,
    profile,
    public,
    publications,
    push,
    search,
    system,
    uploads,
)
from .seed import ensure_seed_data  # noqa: E402
from .services.errors import ServiceError  # noqa: E402
from .settings import AVATAR_DIR, ENABLE_AUTO_SITEMAP, FRONTEND_DIR, UPLOAD_DIR  # noqa: E402

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

_STARTUP_COMPLETE = False


def run_migrations() -> None:
    logger.info("run_migrations: Starting...")
    try:
        alembic_cfg = _alembic_config()

        from alembic.runtime.migration import MigrationContext
        from alembic.script import ScriptDirectory

        from .db import engine

        try:
            with engine.connect() as connection:
                context = MigrationContext.configure(connection)
                current_heads = context.get_current_heads()
                current_rev = current_heads[0] if len(current_heads) == 1 else None

                script = ScriptDirectory.from_config(alembic_cfg)
                heads = script.get_heads()

                if current_rev and current_rev in heads:
                    logger.info(f"Database is up to date (revision: {current_rev}), skipping migrations.")
                    return
                logger.info(f"Current revision(s): {current_heads}, target: {heads}. Running migrations...")
        finally:
            engine.dispose()

        command.upgrade(alembic_cfg, "heads")
        logger.info("run_migrations: Completed successfully.")
    except Exception as e:
        logger.error(f"run_migrations: Error occurred: {e}", exc_info=True)
        raise


def _alembic_config() -> Config:
    base_dir = Path(__file__).resolve().parent.parent
    cfg = Config(str(base_dir / "alembic.ini"))
    cfg.set_main_option("script_location", str(base_dir / "alembic"))
    # Keep the application's logging configuration intact
    cfg.attributes["configure_logger"] = False
    return cfg


def run_startup_tasks() -> None:
    global _STARTUP_COMPLETE
    if _STARTUP_COMPLETE:
        logger.info("run_startup_tasks: Already completed, skipping.")
        return
    try:
        run_migrations()
        ensure_seed_data()
        _STARTUP_COMPLETE = True
        logger.info("Startup tasks completed.")
    except Exception as e:
        logger.error(f"Startup tasks failed: {e}", exc_info=True)
        raise


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application...")
    run_startup_tasks()
    if ENABLE_AUTO_SITEMAP:
        from .services.sitemap import schedule_sitemap_refresh

        schedule_sitemap_refresh(reason="startup")
    logger.info("The Last Update server ready")
    yield
    logger.info("Shutting down application...")


app = FastAPI(
    title="The Last Update API",
    version="1.0.0",
    description="Newsroom publishing platform and public news site",
    lifespan=lifespan,
)

# In production, set CORS_ORIGINS to a comma-separated list of allowed origins
cors_origins_str = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:8000")
if cors_origins_str == "*":
    logger.warning(
        "CORS is configured to allow all origins. "
        "This is insecure for production. Set CORS_ORIGINS to specific domains."
    )
cors_origins = [origin.strip() for origin in cors_origins_str.split(",")]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
    max_age=600,
)
app.add_middleware(SecurityHeadersMiddleware)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


app.include_router(system.router)
app.include_router(auth.router)
app.include_router(members.router)
app.include_router(profile.router)
app.include_router(publications.router)
app.include_router(notifications.router)
app.include_router(dashboard.router)
app.include_router(push.router)
app.include_router(public.router)
app.include_router(search.router)
app.include_router(geo.router)
app.include_router(uploads.router)
app.include_router(pages.router)


for media_dir in (UPLOAD_DIR, AVATAR_DIR):
    media_dir.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=str(UPLOAD_DIR)), name="uploads")
app.mount("/storage/avatars", StaticFiles(directory=str(AVATAR_DIR)), name="avatars")

assets_dir = FRONTEND_DIR / "assets"
if assets_dir.is_dir():
    app.mount("/assets", StaticFiles(directory=str(assets_dir)), name="assets")
    logger.info(f"Mounted frontend assets from {assets_dir}")
else:
    logger.warning(f"Frontend assets not found at {assets_dir}; only the API is served")


@app.get("/service-worker.js", include_in_schema=False)
def service_worker() -> FileResponse:
    """Served from the site root so the worker's scope covers every page."""
    path = FRONTEND_DIR / "service-worker.js"
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Not found")
    return FileResponse(
        path,
        media_type="application/javascript",
        headers={"Service-Worker-Allowed": "/", "Cache-Control": "no-cache"},
    )
