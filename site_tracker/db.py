from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from site_tracker.settings import get_settings, is_sqlite_url


class Base(DeclarativeBase):
    pass


def build_engine(database_url: str) -> Engine:
    settings = get_settings()
    options: dict[str, Any] = {"pool_pre_ping": True}
    if is_sqlite_url(database_url):
        options["connect_args"] = {"check_same_thread": False}
    else:
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
        options["pool_timeout"] = settings.db_pool_timeout_seconds
    return create_engine(database_url, **options)


engine = build_engine(get_settings().database_url)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
