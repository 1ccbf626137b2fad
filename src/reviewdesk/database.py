from fastapi import Request
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker, DeclarativeBase
from sqlalchemy.pool import StaticPool
import logging

logger = logging.getLogger(__name__)

IMMUTABLE_TABLES = ("revisions", "audit_logs")


class Base(DeclarativeBase):
    pass


class AppendOnly:
    """Marker for INSERT-only tables. Rows are never updated or deleted once flushed."""


@event.listens_for(Session, "before_flush")
def _reject_append_only_mutation(session, flush_context, instances):
    for obj in session.deleted:
        if isinstance(obj, AppendOnly):
            raise RuntimeError(f"{obj.__tablename__} is append-only: DELETE not allowed")
    for obj in session.dirty:
        if isinstance(obj, AppendOnly) and session.is_modified(obj):
            raise RuntimeError(f"{obj.__tablename__} is append-only: UPDATE not allowed")


def build_engine(url: str, echo: bool = False) -> Engine:
    """Create the store engine. In-memory SQLite gets a single shared connection."""
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)
    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def get_db(request: Request):
    """FastAPI dependency — yields a session from the app's store and closes it after request."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def _trigger_ddl(dialect: str, table: str, op: str) -> list[str]:
    name = f"prevent_{table}_{op.lower()}"
    message = f"{table} is immutable: {op} not allowed"
    if dialect == "sqlite":
        return [
            f"""
            CREATE TRIGGER IF NOT EXISTS {name}
            BEFORE {op} ON {table}
            BEGIN
                SELECT RAISE(ABORT, '{message}');
            END
            """
        ]
    if dialect == "mysql":
        return [
            f"DROP TRIGGER IF EXISTS {name}",
            f"""
            CREATE TRIGGER {name}
            BEFORE {op} ON {table}
            FOR EACH ROW
            SIGNAL SQLSTATE '45000'
            SET MESSAGE_TEXT = '{message}'
            """,
        ]
    return []


def install_immutability_triggers(engine: Engine):
    """
    Install DB-level triggers on revisions and audit_logs — append-only enforced at DB level.
    Idempotent; dialects without trigger support are skipped with a warning.
    """
    dialect = engine.dialect.name
    statements = [
        stmt
        for table in IMMUTABLE_TABLES
        for op in ("UPDATE", "DELETE")
        for stmt in _trigger_ddl(dialect, table, op)
    ]
    if not statements:
        logger.warning("No immutability triggers for dialect %s — relying on ORM guards only", dialect)
        return
    with engine.begin() as conn:
        for stmt in statements:
            conn.execute(text(stmt))


def init_db(engine: Engine):
    # ensure every table is registered on Base.metadata
    from reviewdesk.models import audit_log, document, notification, revision, translator_profile  # noqa: F401

    Base.metadata.create_all(bind=engine)
    install_immutability_triggers(engine)
    logger.info("Database tables created/verified")
