import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .utils import env_flag, resolve_sqlite_url

load_dotenv()

# Repo root; relative sqlite paths in DB_URL are anchored here.
ROOT_DIR = Path(__file__).resolve().parents[2]
DEFAULT_SQLITE_URL = resolve_sqlite_url(
    os.getenv("DB_URL", "sqlite:///./dev.db"), ROOT_DIR
)


def make_engine(database_url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """Create the engine for the tournament database.

    ``echo`` defaults to the ``DB_ECHO`` environment flag. On SQLite, foreign
    keys are switched on for every connection so that deleting a tournament
    cascades to its categories, prizes and allocation versions.
    """
    url = database_url or DEFAULT_SQLITE_URL
    if echo is None:
        echo = env_flag(os.getenv("DB_ECHO"))
    engine = create_engine(url, echo=echo, future=True)

    if url.startswith("sqlite"):

        @event.listens_for(engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def get_sessionmaker(engine: Engine) -> sessionmaker:
    # Previews and reports are read after the commit that produced them.
    return sessionmaker(bind=engine, expire_on_commit=False, future=True)
