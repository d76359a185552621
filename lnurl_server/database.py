from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
import logging

logger = logging.getLogger(__name__)

# Create Base class for models
Base = declarative_base()

REQUIRED_COLUMNS = {
    "users": ["id", "pubkey", "name", "disabled_zaps"],
    "invoice": [
        "id", "user_id", "bolt11", "amount_msats", "preimage",
        "lnurlp_comment", "state", "payment_hash", "description_hash", "created_at"
    ],
    "zaps": ["id", "request", "event_id"],
}

def build_engine(database_url: str) -> Engine:
    """Create the SQLAlchemy engine (and its connection pool) for a database URL"""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url == "sqlite://":
            # A single shared connection, otherwise every checkout sees an empty database
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, **kwargs)
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_engine(database_url, pool_size=10, pool_pre_ping=True)

def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)

def get_table_columns(engine: Engine, table_name: str) -> list:
    """Get list of column names for a table"""
    inspector = inspect(engine)
    return [col["name"] for col in inspector.get_columns(table_name)]

def table_exists(engine: Engine, table_name: str) -> bool:
    """Check if a table exists"""
    return table_name in inspect(engine).get_table_names()

def verify_database_schema(engine: Engine) -> bool:
    """Verify that the database schema matches the expected structure"""
    for table_name, required in REQUIRED_COLUMNS.items():
        if not table_exists(engine, table_name):
            logger.error(f"Missing table: {table_name}")
            return False

        columns = get_table_columns(engine, table_name)
        missing_columns = [col for col in required if col not in columns]
        if missing_columns:
            logger.error(f"Missing columns in {table_name} table: {missing_columns}")
            return False

        logger.debug(f"{table_name} table schema verified successfully")

    return True

def create_tables(engine: Engine):
    """Create all tables and verify the resulting schema"""
    # Models must be registered on Base before create_all
    from lnurl_server import models  # noqa: F401

    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)

    if not verify_database_schema(engine):
        raise RuntimeError("Database schema verification failed")

    logger.info("Database initialization completed successfully")
