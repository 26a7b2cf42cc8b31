"""Database dependencies for FastAPI endpoints."""

from sqlalchemy.orm import sessionmaker

from orgboard.db.session import get_sessionmaker


def get_session_factory() -> sessionmaker:
    """Session factory for components that outlive a single request."""

    return get_sessionmaker()
