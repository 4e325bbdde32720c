# tests/conftest.py
"""Global test configuration and fixtures."""
import uuid

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from zap_server.db import engine as db_engine
from zap_server.db.models import User
from zap_server.services.registry import create_zap


@pytest.fixture
def db():
    """Point the server at a fresh in-memory SQLite database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    db_engine.set_engine(engine)

    yield engine

    engine.dispose()


@pytest.fixture
def make_user(db):
    """Factory for users, with Google tokens unless told otherwise."""

    def _make_user(access_token="ya29.test-token", email="owner@example.com"):
        session = db_engine.get_session()
        try:
            user = User(
                id=str(uuid.uuid4()),
                email=email,
                google_access_token=access_token,
                google_refresh_token="refresh-token" if access_token else None,
            )
            session.add(user)
            session.commit()
            return user.id
        finally:
            session.close()

    return _make_user


@pytest.fixture
def make_zap(db):
    """Factory for persisted zaps."""

    def _make_zap(trigger_type="price", trigger_metadata=None, actions=None, name="Test zap", user_id=None):
        return create_zap(
            {
                "name": name,
                "user_id": user_id,
                "trigger": {"type": trigger_type, "metadata": trigger_metadata or {}},
                "actions": actions or [],
            }
        )

    return _make_zap
