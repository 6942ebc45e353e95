"""Database connection and session management.

Provides the engine and session factory used by the maintenance entry
points. Handles connection pooling and the metadata schema mapping.
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from common.config import settings
from reclaim.models.metadata import METADATA_SCHEMA

logger = logging.getLogger(__name__)

# Global engine (initialized lazily)
_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _get_database_url() -> str:
    """Get a psycopg2 database URL from settings.

    Replaces postgresql+asyncpg:// and bare postgresql:// with postgresql+psycopg2://
    """
    url = settings.resolved_database_url
    if "asyncpg" in url:
        return url.replace("postgresql+asyncpg", "postgresql+psycopg2")
    elif url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg2://", 1)
    return url


def schema_translate_map() -> dict[str, str] | None:
    """Map the declared metadata schema to the configured one, if they differ."""
    if settings.metadata_schema == METADATA_SCHEMA:
        return None
    return {METADATA_SCHEMA: settings.metadata_schema}


def get_engine() -> Engine:
    """Get or create the database engine.

    Uses lazy initialization and a small pool; maintenance work runs one
    unit of work at a time.
    """
    global _engine

    if _engine is None:
        engine = create_engine(
            _get_database_url(),
            pool_size=settings.db_pool_size,
            max_overflow=0,
            pool_pre_ping=True,
            echo=settings.debug,
        )
        translate = schema_translate_map()
        if translate:
            logger.info(f"Metadata tables mapped to schema {settings.metadata_schema}")
            engine = engine.execution_options(schema_translate_map=translate)
        _engine = engine

    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Get or create the session factory."""
    global _session_factory

    if _session_factory is None:
        _session_factory = sessionmaker(
            get_engine(),
            class_=Session,
            expire_on_commit=False,
            autoflush=False,
        )

    return _session_factory


@contextmanager
def session_scope(factory: sessionmaker[Session] | None = None) -> Generator[Session, None, None]:
    """Provide a session whose transaction commits on success.

    Usage:
        with session_scope() as session:
            ReclaimService(session).reclaim(deployment)
    """
    factory = factory or get_session_factory()
    with factory() as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise


def close_db() -> None:
    """Dispose of the database engine."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
        _engine = None
        _session_factory = None
