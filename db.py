from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy import create_engine, event
import os


def _set_sqlite_pragmas(dbapi_connection, connection_record):
    """Configure SQLite for concurrent reads during vocabulary migrations."""
    # Let SQLAlchemy own transaction boundaries (see _begin_transaction).
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    try:
        # Wait for locks instead of failing immediately.
        cursor.execute("PRAGMA busy_timeout=5000")
        # Readers keep seeing the last committed snapshot while a writer works.
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


def _begin_transaction(conn):
    # pysqlite does not emit BEGIN before SELECTs; without it two reads in one
    # session could straddle a vocabulary migration.
    conn.exec_driver_sql("BEGIN")


def install_sqlite_pragmas(target_engine) -> None:
    """Attach the pragma/transaction hooks to an engine (app engine and test engines)."""
    if target_engine.dialect.name == "sqlite":
        event.listen(target_engine, "connect", _set_sqlite_pragmas)
        event.listen(target_engine, "begin", _begin_transaction)


DATA_DIR = os.path.join(os.path.dirname(__file__), "data")
DB_PATH = os.getenv("PORTFOLIO_DB_PATH", os.path.join(DATA_DIR, "portfolio.db"))
SQLALCHEMY_DATABASE_URL = f"sqlite:///{DB_PATH}"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False, "timeout": 30},
    pool_pre_ping=True,
)
install_sqlite_pragmas(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()
