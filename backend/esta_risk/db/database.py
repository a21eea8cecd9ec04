from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

# Base class for all our database models
Base = declarative_base()


def create_db_engine(database_url: str):
    """
    Create the database engine (the connection manager).

    SQLite needs `check_same_thread=False` because FastAPI serves sync
    endpoints from a threadpool; in-memory SQLite additionally needs a single
    shared connection or every session would see an empty database.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url)


def create_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine) -> None:
    """Create tables. Call this after all models are imported."""
    import esta_risk.db.models  # noqa: F401 ensures models are registered

    Base.metadata.create_all(bind=engine)
