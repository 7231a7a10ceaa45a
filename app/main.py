# app/main.py
from __future__ import annotations

import logging
import os
from pathlib import Path

from fastapi import FastAPI
from dotenv import load_dotenv, find_dotenv

# ---------------------------
# Env loading (root .env first, then app/.env as fallback)
# ---------------------------
load_dotenv(find_dotenv(usecwd=True))
load_dotenv(Path(__file__).resolve().parent / ".env", override=False)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("app.main")

# --- DB engine + models (must be imported BEFORE create_all) ---
from app.db.session import engine  # noqa: E402
from app.models import Base  # noqa: E402

from app.core.errors import register_exception_handlers  # noqa: E402
from app.middleware.access_control import AccessControlMiddleware  # noqa: E402
from app.middleware.request_logging import RequestLoggingMiddleware  # noqa: E402
from app.worker.scheduler import make_scheduler  # noqa: E402

# ---------------------------
# ROUTERS
# ---------------------------
from app.api import auth, invitations, studios, members, templates, forms, archive, pages  # noqa: E402
from app.api import health  # noqa: E402

# ---------------------------
# CREATE TABLES (dev-only; guard with env, production uses alembic)
# ---------------------------
ENABLE_CREATE_ALL = os.getenv("ENABLE_CREATE_ALL", "1") == "1"

if ENABLE_CREATE_ALL:
    Base.metadata.create_all(bind=engine)

# ---------------------------
# APP
# ---------------------------
app = FastAPI(title="Studio Consent", version="1.0.0")

register_exception_handlers(app)

# last added runs first: request logging wraps access control
app.add_middleware(AccessControlMiddleware)
app.add_middleware(RequestLoggingMiddleware)

# ---------------------------
# ROUTER MOUNT
# ---------------------------
app.include_router(health.router, prefix="/api")
app.include_router(auth.router)
app.include_router(invitations.router)
app.include_router(studios.router)
app.include_router(members.router)
app.include_router(templates.router)
app.include_router(forms.router)
app.include_router(archive.router)
app.include_router(pages.router)


# ---------------------------
# Scheduler (daily cleanup of abandoned invitations)
# ---------------------------
@app.on_event("startup")
def _start_scheduler():
    # Enable with ENABLE_SCHEDULER=1 (default 1). Time configured in worker/scheduler.py via env.
    app.state.scheduler = None
    if os.getenv("ENABLE_SCHEDULER", "1") != "1":
        return
    try:
        app.state.scheduler = make_scheduler()
        app.state.scheduler.start()
    except Exception:
        # keep API running if scheduler fails
        logger.exception("scheduler failed to start")
        app.state.scheduler = None


@app.on_event("shutdown")
def _stop_scheduler():
    sched = getattr(app.state, "scheduler", None)
    if sched:
        sched.shutdown(wait=False)
