import os
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker

from frontdesk.config import Config


def build_engine(url: str):
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": 30}
    return create_engine(url, connect_args=connect_args)


engine = build_engine(Config.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_database(bind=None):
    bind = bind or engine
    url = make_url(bind.url)
    if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
        directory = os.path.dirname(url.database)
        if directory and not os.path.exists(directory):
            os.makedirs(directory)
    # Register the tables on Base before creating them
    import frontdesk.models.node  # noqa: F401
    Base.metadata.create_all(bind=bind)


def get_store():
    """Provide a store client bound to the application database."""
    from frontdesk.store.sql import SqlStore

    yield SqlStore(SessionLocal)
