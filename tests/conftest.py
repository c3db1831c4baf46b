"""
Pytest fixtures for testing
"""
import uuid

import pytest
from sqlalchemy import create_engine, event, JSON
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.dialects.postgresql import JSONB

from wathaci.application.profiles import install_signup_hook
from wathaci.infrastructure.audit.listeners import install_audit_listeners
from wathaci.infrastructure.db.session import Base
from wathaci.infrastructure.db.models import User, UserRole


@pytest.fixture
def db_engine():
    """Create in-memory SQLite engine for tests, with JSONB→JSON mapping."""
    engine = create_engine("sqlite:///:memory:")

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    # SQLite doesn't support JSONB, remap to JSON for tests
    for table in Base.metadata.tables.values():
        for col in table.columns:
            if isinstance(col.type, JSONB):
                col.type = JSON()
    Base.metadata.create_all(engine)
    install_audit_listeners()
    install_signup_hook()
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Session:
    """Create database session for tests"""
    SessionLocal = sessionmaker(bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def make_user(db_session):
    """Insert an identity (the signup hook creates its profile)"""
    def _make(email=None, metadata=None, phone=None, admin_role=None):
        user = User(
            id=uuid.uuid4(),
            email=email if email is not None else f"user-{uuid.uuid4().hex[:8]}@example.com",
            phone=phone,
            raw_user_meta_data=metadata or {},
        )
        db_session.add(user)
        db_session.flush()
        if admin_role:
            db_session.add(UserRole(user_id=user.id, role=admin_role))
        db_session.commit()
        return user
    return _make


@pytest.fixture
def sample_user(make_user):
    return make_user(email="amara@example.com", metadata={"full_name": "Amara Banda", "account_type": "sme"})
