from collections.abc import Generator, Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .core.config import settings


def _ensure_sqlite_path(url: str) -> None:
    if not url.startswith("sqlite"):
        return

    parsed = make_url(url)
    database = parsed.database
    if not database or database == ":memory:":
        return

    path = Path(database)
    path.parent.mkdir(parents=True, exist_ok=True)


def build_engine(url: str, *, echo: bool = False) -> Engine:
    connect_args: dict[str, object] = {}
    engine_kwargs: dict[str, object] = {
        "echo": echo,
        "future": True,
        "pool_pre_ping": True,
    }

    parsed = make_url(url)
    backend = parsed.get_backend_name()
    driver = parsed.get_driver_name()

    if backend == "sqlite":
        # Bid requests run on the FastAPI threadpool, so connections hop threads.
        connect_args["check_same_thread"] = False
        _ensure_sqlite_path(url)
    else:
        engine_kwargs["pool_recycle"] = 300

        if backend.startswith("postgresql"):
            connect_args.setdefault("keepalives", 1)
            connect_args.setdefault("keepalives_idle", 120)
            connect_args.setdefault("keepalives_interval", 30)
            connect_args.setdefault("keepalives_count", 5)
            # Transaction poolers reject PREPARE; keep psycopg on plain statements.
            if driver == "psycopg":
                connect_args.setdefault("prepare_threshold", None)

    if connect_args:
        engine_kwargs["connect_args"] = connect_args

    return create_engine(url, **engine_kwargs)


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=True, autocommit=False, future=True)


engine = build_engine(settings.resolved_database_url, echo=settings.debug)
SessionLocal = build_session_factory(engine)
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@contextmanager
def session_scope(factory: sessionmaker[Session] | None = None) -> Iterator[Session]:
    session = (factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(bind: Engine | None = None) -> None:
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
