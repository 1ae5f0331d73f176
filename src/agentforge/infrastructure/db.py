"""Подключение к БД и фабрика сессий SQLAlchemy."""

from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker

from agentforge.db.models import Base
from agentforge.settings import get_settings


def _expand_sqlite_url(database_url: str) -> str:
    """Для SQLite раскрывает `~` и создаёт каталог под файл базы."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite" or not url.database or url.database == ":memory:":
        return database_url
    path = Path(url.database).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return url.set(database=str(path)).render_as_string(hide_password=False)


def create_db_engine(database_url: str | None = None) -> Engine:
    """Создаёт engine на основе `AGENTFORGE_DATABASE_URL`."""
    url = _expand_sqlite_url(database_url or get_settings().database_url)
    return create_engine(url, pool_pre_ping=True)


def create_session_factory(engine: Engine) -> sessionmaker:
    # Записи отдаём наружу после commit, поэтому без expire.
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Создаёт недостающие таблицы локальной SQLite; остальные базы ведёт alembic."""
    if engine.dialect.name != "sqlite":
        return
    Base.metadata.create_all(engine)
