import importlib
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from shopcore.config import settings
from shopcore.errors import Unavailable
from shopcore.utils.logging import get_logger

log = get_logger(__name__)

Base = declarative_base()

SQLITE_BUSY_TIMEOUT_SECONDS = 30

# every model module must be imported before create_all so metadata is populated
MODEL_MODULES = [
    "shopcore.models.product_variant",
    "shopcore.models.cart",
    "shopcore.models.order",
    "shopcore.models.shipping",
]


def make_engine(url: str, **kwargs) -> Engine:
    """
    Build an engine with a bounded connection pool. SQLite keeps its own
    pool class, so the sizing arguments are only passed to server databases.

    File-backed SQLite opens every transaction with BEGIN IMMEDIATE, so
    concurrent writers wait on the busy timeout one at a time instead of
    failing with "database is locked" when a read lock is upgraded.
    """
    options = {"future": True, "echo": settings.DB_ECHO}
    if url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT_SECONDS}
    else:
        max_idle = max(1, settings.DB_MAX_IDLE)
        options.update(
            pool_size=max_idle,
            max_overflow=max(0, settings.DB_MAX_OPEN - max_idle),
            pool_recycle=settings.DB_CONN_MAX_LIFETIME_SECONDS,
            pool_pre_ping=True,
        )
    options.update(kwargs)
    eng = create_engine(url, **options)
    if url.startswith("sqlite"):
        event.listen(eng, "connect", _enable_sqlite_fks)
        if not _is_sqlite_memory(url):
            event.listen(eng, "connect", _disable_pysqlite_begin)
            event.listen(eng, "begin", _begin_immediate)
    return eng


def _is_sqlite_memory(url: str) -> bool:
    return url.rstrip("/") in ("sqlite:", "sqlite+pysqlite:") or ":memory:" in url or "mode=memory" in url


def _enable_sqlite_fks(dbapi_conn, _record):
    cur = dbapi_conn.cursor()
    cur.execute("PRAGMA foreign_keys=ON")
    cur.close()


def _disable_pysqlite_begin(dbapi_conn, _record):
    # the driver's own BEGIN is deferred; _begin_immediate takes over
    dbapi_conn.isolation_level = None


def _begin_immediate(conn):
    conn.exec_driver_sql("BEGIN IMMEDIATE")


DATABASE_URL = settings.DATABASE_URL
engine: Optional[Engine] = make_engine(DATABASE_URL) if DATABASE_URL else None
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def import_models() -> None:
    for mod in MODEL_MODULES:
        importlib.import_module(mod)


def init_db(reset: bool = False, bind: Optional[Engine] = None) -> None:
    """
    Create the schema. With ``reset`` (or RESET_DB set) tables are dropped
    first; otherwise existing tables are left in place.
    """
    bind = bind or engine
    if bind is None:
        raise Unavailable("DATABASE_URL is not configured")
    import_models()
    if reset or settings.RESET_DB:
        log.info("Resetting database schema")
        Base.metadata.drop_all(bind=bind)
    Base.metadata.create_all(bind=bind)
    log.info("Database initialized")


def get_db() -> Iterator[Session]:
    if engine is None:
        raise Unavailable("db unavailable")
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
