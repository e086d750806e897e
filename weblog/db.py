from sqlmodel import create_engine, SQLModel

from weblog.core.config import settings


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # Storage calls run on AnyIO worker threads
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": 5,
        "max_overflow": 10,
        "pool_pre_ping": True,  # Verify connections before use
        "pool_recycle": 300,
        "pool_timeout": 30,
    }


engine = create_engine(settings.DATABASE_URL, echo=False, **_engine_options(settings.DATABASE_URL))


def create_db_and_tables(bind=None):
    # Import models so their tables are registered on the metadata
    import weblog.models  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)
