import logging
import sqlite3
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from portal.config import settings
from portal.database import init_db, migrate
from portal.routers import accounts, admin, applications, media, settings as settings_router
from portal.services.session_service import session_service

VERSION = "0.1.0"

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("portal")


def prepare_database():
    if not settings.db_path.exists():
        settings.data_path.mkdir(parents=True, exist_ok=True)
        init_db()
        logger.info("Created database at %s", settings.db_path)
        return
    try:
        result = migrate()
    except sqlite3.Error as exc:
        logger.error("Startup migration failed for %s: %s", settings.db_path, exc)
        return
    if result == "ok":
        logger.info("Database integrity check passed.")
    else:
        logger.error("DATABASE INTEGRITY CHECK FAILED: %s", result)


@asynccontextmanager
async def lifespan(app: FastAPI):
    prepare_database()
    yield
    # Tokens live in memory only; every candidate logs in again after a restart.
    session_service.clear()


app = FastAPI(
    title="Admission Portal",
    description="Candidate applications, presigned uploads and review status",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://127.0.0.1:3000", "http://localhost:3000"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

for module in (accounts, applications, media, settings_router, admin):
    app.include_router(module.router, prefix=settings.api_prefix)


@app.get("/health")
async def health():
    return {"status": "ok", "version": VERSION}
