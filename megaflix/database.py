from sqlalchemy import create_engine, event, text
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool
from typing import Generator
import logging

from .config import settings

logger = logging.getLogger(__name__)

# ============================================================
# Database Engine
# ============================================================

def build_engine(url: str):
    """
    Create the SQLAlchemy engine for the configured database.
    PostgreSQL gets a pooled engine, SQLite (local runs and tests) a single
    shared connection so in-memory databases survive across sessions.
    """
    if url.startswith("sqlite"):
        return create_engine(
            url,
            echo=settings.DB_ECHO,
            future=True,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )

    return create_engine(
        url,
        echo=settings.DB_ECHO,
        future=True,
        pool_pre_ping=True,
        poolclass=QueuePool,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
        pool_recycle=3600,
    )


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False
)

# ============================================================
# Base Model
# ============================================================

Base = declarative_base()

# ============================================================
# Database Session Dependency
# ============================================================

def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Usage:
        @router.get("/items")
        def get_items(db: Session = Depends(get_db)):
            return db.query(Item).all()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ============================================================
# Database Health Check
# ============================================================

def check_db_health() -> bool:
    """
    Check if database is accessible and responsive.
    Returns True if healthy, False otherwise.
    """
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
    finally:
        db.close()


def get_db_stats() -> dict:
    """Get database connection pool statistics."""
    pool = engine.pool
    if isinstance(pool, QueuePool):
        return {
            "size": pool.size(),
            "checked_in": pool.checkedin(),
            "checked_out": pool.checkedout(),
            "overflow": pool.overflow(),
        }
    return {"pool": pool.status()}


@event.listens_for(engine, "connect")
def receive_connect(dbapi_conn, connection_record):
    """Log database connections"""
    logger.debug("Database connection established")


# ============================================================
# Startup/Shutdown Handlers
# ============================================================

def init_db():
    """Create missing tables and verify connectivity."""
    from . import models  # noqa: F401  registers every model on Base.metadata

    try:
        logger.info("🔄 Creating database tables...")
        Base.metadata.create_all(bind=engine)

        if check_db_health():
            logger.info("✅ Database health check passed")
        else:
            logger.error("❌ Database health check failed")
    except Exception as e:
        logger.error(f"❌ Database init failed: {e}", exc_info=True)
        raise


def close_db():
    """Close database connections on shutdown."""
    try:
        logger.info("🔄 Closing database connections...")
        engine.dispose()
        logger.info("✅ Database connections closed")
    except Exception as e:
        logger.error(f"❌ Error closing database: {e}")


__all__ = [
    'Base',
    'engine',
    'SessionLocal',
    'get_db',
    'check_db_health',
    'get_db_stats',
    'init_db',
    'close_db',
]
