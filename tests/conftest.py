"""Shared fixtures for Review Desk tests."""
import pytest
from fastapi.testclient import TestClient

from reviewdesk.auth import Actor, create_access_token
from reviewdesk.config import Settings
from reviewdesk.database import build_engine, build_session_factory, init_db
from reviewdesk.main import create_app
from reviewdesk.models.document import Document, DocumentStatus, Priority


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'reviewdesk.db'}",
        JWT_SECRET="test-secret",
        STALE_CLAIM_MINUTES=0,
    )


@pytest.fixture
def engine(settings):
    engine = build_engine(settings.database_url)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_document(db):
    """Insert a document directly, bypassing the workflow."""
    def _make(**fields) -> Document:
        fields.setdefault("form_type", "bulletin")
        fields.setdefault("status", DocumentStatus.AI_COMPLETED)
        fields.setdefault("priority", Priority.NORMAL)
        fields.setdefault("user_id", "student-1")
        if fields["status"] == DocumentStatus.AI_COMPLETED:
            fields.setdefault("extracted_data", {"studentName": "JANE DOE"})
            fields.setdefault("ai_confidence_score", 0.87)
        doc = Document(**fields)
        db.add(doc)
        db.commit()
        return doc
    return _make


@pytest.fixture
def reload(db):
    """Fresh read of a document from the store."""
    def _reload(document_id: str) -> Document:
        db.expire_all()
        return db.get(Document, document_id)
    return _reload


@pytest.fixture
def client(settings, engine):
    app = create_app(settings, engine=engine)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers(settings):
    def _headers(actor: Actor) -> dict:
        token = create_access_token(
            settings, actor.uid, name=actor.display_name, role=actor.role, email=actor.email
        )
        return {"Authorization": f"Bearer {token}"}
    return _headers
