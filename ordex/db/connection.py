"""
Database connection management

Wraps a SQLAlchemy engine and session factory configured from the
``database`` section of OrdexConfig (or an explicit URL).
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ordex.config import OrdexConfig

logger = logging.getLogger(__name__)

Base = declarative_base()


def build_database_url(db_config: Dict[str, Any]) -> str:
    """Build a SQLAlchemy URL from the ``database`` configuration section"""
    if db_config.get('url'):
        return db_config['url']

    db_type = db_config.get('type', 'sqlite')
    if db_type == 'sqlite':
        path = db_config.get('path') or 'ordex.db'
        if path == ':memory:':
            return 'sqlite://'
        return f"sqlite:///{Path(path).expanduser()}"

    if db_type == 'postgresql':
        postgres = db_config.get('postgres', {})
        return (
            f"postgresql://{postgres.get('user', 'postgres')}:{postgres.get('password', '')}"
            f"@{postgres.get('host', 'localhost')}:{postgres.get('port', 5432)}"
            f"/{postgres.get('database', 'ordex')}"
        )

    raise ValueError(f"Unsupported database type: {db_type}")


class Database:
    """
    Database connection manager

    Usage:
        db = Database(url='sqlite:///orders.db')
        db.create_all()
        with db.transaction() as session:
            session.add(obj)
    """

    def __init__(self, url: Optional[str] = None, config: Optional[OrdexConfig] = None,
                 echo: Optional[bool] = None):
        """
        Args:
            url: SQLAlchemy URL; read from configuration when omitted
            config: Configuration instance (defaults to the singleton)
            echo: Log SQL statements
        """
        db_config: Dict[str, Any] = {}
        if url is None:
            db_config = (config or OrdexConfig()).get_database_config()
            url = build_database_url(db_config)
        if echo is None:
            echo = bool(db_config.get('echo', False))

        self.url = url
        engine_kwargs: Dict[str, Any] = {'echo': echo}
        if url.startswith('sqlite'):
            engine_kwargs['connect_args'] = {'check_same_thread': False}
            if url in ('sqlite://', 'sqlite:///:memory:'):
                # One shared connection, otherwise every session sees an empty database
                engine_kwargs['poolclass'] = StaticPool
        else:
            engine_kwargs['pool_pre_ping'] = True

        self.engine = create_engine(url, **engine_kwargs)

        if url.startswith('sqlite'):
            @event.listens_for(self.engine, "connect")
            def set_sqlite_pragma(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        self.Session = sessionmaker(bind=self.engine, expire_on_commit=False)
        logger.debug(f"Database engine created for {self.engine.url.render_as_string(hide_password=True)}")

    def create_all(self) -> None:
        # Registers the tables on Base.metadata
        from ordex.db import models  # noqa: F401
        Base.metadata.create_all(self.engine)

    @contextmanager
    def transaction(self) -> Generator[Session, None, None]:
        """Session committed on success and rolled back on any exception"""
        session = self.Session()
        try:
            yield session
            session.commit()
        except IntegrityError as e:
            # Constraint violations are translated by the caller
            session.rollback()
            logger.debug(f"Database constraint violation: {e.orig}")
            raise
        except Exception as e:
            session.rollback()
            logger.error(f"Database transaction error: {str(e)}")
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        """Close all pooled connections"""
        self.engine.dispose()
