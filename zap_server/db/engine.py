# zap_server/db/engine.py
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from zap_server.db.models import Base
from zapflow import conf

logger = logging.getLogger(__name__)

# Cache the engine and session factory to avoid recreating them
_engine = None
_session_factory = None


def get_engine():
    """Get SQLAlchemy engine for the server database."""
    global _engine
    if _engine is None:
        db_url = conf.DATABASE_URL
        connect_args = {}
        if db_url.startswith("sqlite"):
            conf.ASSETS_DIR.mkdir(parents=True, exist_ok=True)
            connect_args = {"check_same_thread": False}
        _engine = create_engine(db_url, connect_args=connect_args)
        # Create tables if they don't exist (checkfirst=True prevents errors if tables already exist)
        Base.metadata.create_all(bind=_engine, checkfirst=True)
        logger.debug("Server DB schema ready → %s", _engine.url.render_as_string(hide_password=True))
    return _engine


def set_engine(engine) -> None:
    """Point the server at another engine (tests, embedded use). Creates the schema."""
    global _engine, _session_factory
    Base.metadata.create_all(bind=engine, checkfirst=True)
    _engine = engine
    _session_factory = None


def get_session():
    """Get a database session for the server database.

    Objects stay readable after commit/close so callers can return them.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), expire_on_commit=False)
    return _session_factory()
