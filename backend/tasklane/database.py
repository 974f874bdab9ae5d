from pathlib import Path

from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy.engine import make_url

from tasklane.config import get_settings

settings = get_settings()


def _connect_args(database_url: str) -> dict:
    # SQLite needs check_same_thread=False for FastAPI
    if make_url(database_url).get_backend_name() == "sqlite":
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.database_url, connect_args=_connect_args(settings.database_url), echo=False
)


def create_db_and_tables():
    url = make_url(settings.database_url)
    if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    SQLModel.metadata.create_all(engine)


def get_session():
    with Session(engine) as session:
        yield session
