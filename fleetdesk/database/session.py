from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

from fleetdesk.config import settings

Base = declarative_base()


def build_engine(database_url: Optional[str] = None) -> Engine:
    """Engine for the local platform database."""
    url = database_url or settings.DATABASE_URL
    if url.startswith("sqlite"):
        # statements run on executor threads
        engine = create_engine(url, echo=False, connect_args={"check_same_thread": False})

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine
    return create_engine(url, echo=False, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def create_tables(engine: Engine) -> None:
    """Create every platform table registered on ``Base``."""
    import fleetdesk.models  # noqa: F401  registers the tables

    Base.metadata.create_all(bind=engine)
