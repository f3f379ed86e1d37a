from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from hrms.config import settings


def make_engine(database_url: str) -> AsyncEngine:
  if database_url.startswith("sqlite"):
    eng = create_async_engine(database_url)

    # SQLite ignores foreign keys unless asked per connection.
    @event.listens_for(eng.sync_engine, "connect")
    def _sqlite_fk_on(dbapi_conn, _record) -> None:
      cur = dbapi_conn.cursor()
      cur.execute("PRAGMA foreign_keys=ON")
      cur.close()

    return eng
  return create_async_engine(database_url, pool_pre_ping=True)


def make_session_factory(eng: AsyncEngine) -> async_sessionmaker:
  return async_sessionmaker(eng, expire_on_commit=False)


engine = make_engine(settings.database_url)
SessionLocal = make_session_factory(engine)
