from sqlmodel import create_engine, SQLModel
from sqlalchemy.engine import Engine

from app.core.config import settings


def build_engine(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        # The scheduler thread and request threads share the engine
        connect_args["check_same_thread"] = False
        return create_engine(database_url, echo=False, connect_args=connect_args)

    return create_engine(
        database_url,
        echo=False,  # Disable query logging in production
        pool_size=5,
        max_overflow=10,  # Allow burst connections
        pool_pre_ping=True,  # Verify connections before use
        pool_recycle=300,  # Recycle connections every 5 min
        pool_timeout=30,  # Wait up to 30s for a connection
    )


engine = build_engine(settings.DATABASE_URL)


def create_db_and_tables(bind: Engine | None = None):
    # Register table models on the metadata
    import app.models  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)
