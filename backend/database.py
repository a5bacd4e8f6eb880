# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
SQLAlchemy engine, session factory, declarative base, and the FastAPI
dependency that provides a transactional DB session per request.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from core.config import settings

_connect_args = {}
if settings.database_url.startswith("sqlite"):
    # FastAPI runs sync handlers in a thread pool
    _connect_args["check_same_thread"] = False

# pool_pre_ping keeps idle connections alive across MySQL's wait_timeout
engine = create_engine(settings.database_url, pool_pre_ping=True, connect_args=_connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """
    FastAPI dependency.  Yields a session for the duration of the request,
    then closes it.  Use with Depends(get_db).
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """Create every table known to the ORM (idempotent)."""
    # Import every ORM model so that Base.metadata knows about all tables.
    import models.user          # noqa: F401
    import models.login_log     # noqa: F401
    import models.activity_log  # noqa: F401
    import models.session       # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
