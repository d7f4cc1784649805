"""
Database configuration and session management for VA Dashboard.

PostgreSQL in deployment; an in-memory SQLite database (single shared
connection) when ``DATABASE_URL`` is ``sqlite://``, as in the test suite.
"""

from sqlalchemy import create_engine, MetaData, inspect, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
from typing import Any, Dict, Generator, List
import time
import structlog

from .settings import settings

logger = structlog.get_logger(__name__)


def engine_options(database_url: str) -> Dict[str, Any]:
    """Engine keyword arguments suited to the database backend."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            # One connection, otherwise each session would see an empty database
            options["poolclass"] = StaticPool
        return options

    return {
        "pool_pre_ping": True,
        "pool_size": settings.database_pool_size,
        "max_overflow": settings.database_max_overflow,
    }


engine = create_engine(
    settings.database_url,
    echo=settings.database_echo,
    **engine_options(settings.database_url)
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Constraint names match those created by the alembic migrations
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
}

Base = declarative_base(metadata=MetaData(naming_convention=convention))


def get_db() -> Generator[Session, None, None]:
    """
    Request-scoped database session.

    Anything left uncommitted when the request fails is rolled back.

    Yields:
        Session: SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.warning("Rolling back request session", error_type=type(e).__name__)
        db.rollback()
        raise
    finally:
        db.close()


def import_models() -> None:
    """Import all models so they are registered with the metadata."""
    from vadash.models import user, tenant, finance, crm, cycle, intake  # noqa


async def init_db() -> None:
    """
    Create any missing tables on startup.

    Existing tables are left alone; schema changes go through alembic.
    """
    import_models()
    existing = set(inspect(engine).get_table_names())
    Base.metadata.create_all(bind=engine)
    created = sorted(set(Base.metadata.tables) - existing)
    logger.info(
        "Database ready",
        backend=engine.url.get_backend_name(),
        created_tables=created or None
    )


async def close_db() -> None:
    engine.dispose()
    logger.info("Database connections closed")


class DatabaseManager:
    """Database management utilities."""

    @staticmethod
    def health_check() -> bool:
        """
        Check database connectivity.

        Returns:
            bool: True if a trivial query succeeds within the pool timeout
        """
        started = time.perf_counter()
        try:
            with engine.connect() as connection:
                connection.execute(text("SELECT 1"))
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return False

        logger.debug("Database health check ok", latency_ms=round((time.perf_counter() - started) * 1000, 1))
        return True

    @staticmethod
    def reset_schema() -> List[str]:
        """
        Drop and recreate every table. Only allowed outside production.

        Returns:
            List[str]: Names of the recreated tables
        """
        if settings.environment == "production":
            raise RuntimeError("Refusing to reset the production database")

        import_models()
        Base.metadata.drop_all(bind=engine)
        Base.metadata.create_all(bind=engine)
        logger.warning("Database schema reset", environment=settings.environment)
        return sorted(Base.metadata.tables)
