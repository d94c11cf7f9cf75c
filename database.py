from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from config import get_settings


def build_engine(database_url: str, **kwargs) -> Engine:
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, **kwargs)

    connect_args = kwargs.pop("connect_args", {})
    connect_args.setdefault("check_same_thread", False)
    eng = create_engine(database_url, connect_args=connect_args, **kwargs)
    in_memory = ":memory:" in database_url
    event.listen(
        eng,
        "connect",
        lambda dbapi_conn, _record: _sqlite_pragmas(dbapi_conn, in_memory),
    )
    return eng


def _sqlite_pragmas(dbapi_conn, in_memory: bool) -> None:
    cursor = dbapi_conn.cursor()
    # WAL needs a file; in-memory databases stay in journal_mode=memory
    if not in_memory:
        cursor.execute("PRAGMA journal_mode=WAL;")
    cursor.execute("PRAGMA foreign_keys=ON;")
    cursor.execute("PRAGMA busy_timeout=5000;")
    cursor.close()


def make_session_factory(eng: Engine) -> sessionmaker:
    return sessionmaker(bind=eng, autoflush=False, expire_on_commit=False)


engine = build_engine(get_settings().database_url)
SessionLocal = make_session_factory(engine)


class Base(DeclarativeBase):
    pass
