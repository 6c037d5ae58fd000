# backend/database.py
from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from dotenv import load_dotenv
import logging

from config import settings
from utils.errors import PersistenceFailed, StockBillingError

load_dotenv()

logger = logging.getLogger(__name__)

SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

# SQLAlchemy expects postgresql://, some hosting providers hand out postgres://
if SQLALCHEMY_DATABASE_URL and SQLALCHEMY_DATABASE_URL.startswith("postgres://"):
    SQLALCHEMY_DATABASE_URL = SQLALCHEMY_DATABASE_URL.replace("postgres://", "postgresql://", 1)


def make_engine(url):
    if "sqlite" not in url:
        return create_engine(url)

    connect_args = {"check_same_thread": False, "timeout": 30}
    # In-memory SQLite must share one connection across request threads
    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(url, connect_args=connect_args, poolclass=StaticPool)

    sqlite_engine = create_engine(url, connect_args=connect_args)

    # SQLite has no SELECT ... FOR UPDATE. Taking the write lock when the
    # transaction starts serialises read-modify-write sections instead.
    @event.listens_for(sqlite_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(sqlite_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return sqlite_engine


engine = make_engine(SQLALCHEMY_DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db():
    # Register every mapped class on Base.metadata before creating tables
    import models  # noqa: F401
    Base.metadata.create_all(bind=engine)

def commit(db):
    """Commit the session, turning driver errors into PersistenceFailed."""
    try:
        db.commit()
    except StockBillingError:
        # Raised by ORM guards during the flush; leave the session usable
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Commit failed")
        raise PersistenceFailed("Could not save changes", reason=exc.__class__.__name__) from exc
