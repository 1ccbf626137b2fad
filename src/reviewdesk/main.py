import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from reviewdesk.config import Settings, settings as default_settings
from reviewdesk.database import build_engine, build_session_factory, init_db
from reviewdesk.errors import WorkflowError
from reviewdesk.routes.audit_routes import router as audit_router
from reviewdesk.routes.document_routes import router as document_router
from reviewdesk.routes.notification_routes import router as notification_router
from reviewdesk.routes.queue_routes import router as queue_router
from reviewdesk.routes.stats_routes import router as stats_router
from reviewdesk.services.workflow_service import release_stale_claims
import uvicorn

logger = logging.getLogger(__name__)


def _stale_claim_job(session_factory: sessionmaker, idle_minutes: int):
    """Job executed by APScheduler — returns long-idle claims to the queue."""
    db = session_factory()
    try:
        released = release_stale_claims(db, idle_minutes)
        if released:
            logger.info("[Scheduler] Released %d stale claims", len(released))
    except Exception as e:
        logger.error("[Scheduler] Stale claim sweep failed: %s", e)
    finally:
        db.close()


def _build_scheduler(cfg: Settings, session_factory: sessionmaker) -> BackgroundScheduler | None:
    if cfg.stale_claim_minutes <= 0:
        return None
    scheduler = BackgroundScheduler(timezone="UTC")
    scheduler.add_job(
        _stale_claim_job,
        trigger="interval",
        minutes=cfg.stale_claim_sweep_minutes,
        id="release_stale_claims",
        name="Release stale in_review claims",
        args=[session_factory, cfg.stale_claim_minutes],
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    return scheduler


async def workflow_error_handler(request: Request, exc: WorkflowError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app(cfg: Settings | None = None, engine: Engine | None = None) -> FastAPI:
    """
    Build the service. The store engine is created here (or injected) and
    disposed on shutdown; nothing is held at module level.
    """
    cfg = cfg or default_settings
    owns_engine = engine is None
    engine = engine or build_engine(cfg.database_url, echo=cfg.database_echo)
    session_factory = build_session_factory(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        init_db(engine)
        scheduler = _build_scheduler(cfg, session_factory)
        if scheduler:
            scheduler.start()
            logger.info("APScheduler started — stale claims released after %d min", cfg.stale_claim_minutes)
        yield
        # Shutdown
        if scheduler:
            scheduler.shutdown(wait=False)
            logger.info("APScheduler stopped")
        if owns_engine:
            engine.dispose()

    app = FastAPI(
        title="Review Desk",
        description="Translator review workflow — queue, claims, approvals, statistics",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = cfg
    app.state.engine = engine
    app.state.session_factory = session_factory

    app.add_exception_handler(WorkflowError, workflow_error_handler)

    app.include_router(queue_router)
    app.include_router(document_router)
    app.include_router(stats_router)
    app.include_router(notification_router)
    app.include_router(audit_router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


def start():
    """Entry point for the reviewdesk console script"""
    logging.basicConfig(level=default_settings.log_level.upper())
    uvicorn.run(
        "reviewdesk.main:create_app",
        factory=True,
        host=default_settings.app_host,
        port=default_settings.app_port,
        reload=default_settings.debug,
    )
