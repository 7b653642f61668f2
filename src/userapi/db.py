"""
=============================================================================
DATABASE ACCESS
=============================================================================

One SQLAlchemy engine per process, with a bounded connection pool. Each
user operation checks a connection out for its duration and returns it:

    operation ──► engine.begin() ──► pool checkout ──► statements ──► commit
                                                                        │
              ◄──────────────────── pool checkin ◄─────────────────────┘

The schema is a single table, created at start-up if it does not exist:

    users(id SERIAL PRIMARY KEY, name VARCHAR NOT NULL, email VARCHAR NOT NULL)

Statements are built with SQLAlchemy Core, so values are always bound
parameters, and the same code runs against PostgreSQL in production and
SQLite in the test suite.
=============================================================================
"""

from contextlib import contextmanager
from typing import Iterator
import logging

from sqlalchemy import Column, Integer, MetaData, String, Table, create_engine
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from .errors import DatabaseError

logger = logging.getLogger(__name__)

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False),
    Column("email", String, nullable=False),
)


def normalize_url(url: str) -> str:
    """
    Make a DATABASE_URL usable by SQLAlchemy.

    Strips surrounding quotes and whitespace, and maps the libpq-style
    "postgres://" scheme to "postgresql+psycopg2://".

    Raises:
        ValueError: If the URL is empty or cannot be parsed.
    """
    url = url.strip()
    if len(url) >= 2 and url[0] == url[-1] and url[0] in ("'", '"'):
        url = url[1:-1].strip()
    if not url:
        raise ValueError("DATABASE_URL is empty")

    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+psycopg2://", 1)

    try:
        make_url(url)
    except ArgumentError as e:
        raise ValueError(f"Invalid DATABASE_URL: {e}") from e
    return url


def mask_url(url: str) -> str:
    """Hide the password of a database URL for logging."""
    try:
        return make_url(url).render_as_string(hide_password=True)
    except ArgumentError:
        return "<invalid url>"


class Database:
    """
    The service's database handle.

    Usage:
        database = Database.connect("postgresql+psycopg2://...")
        database.ensure_schema()

        with database.transaction() as conn:
            conn.execute(users.select())

        database.dispose()
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    @classmethod
    def connect(
        cls,
        url: str,
        pool_size: int = 5,
        max_overflow: int = 5,
    ) -> "Database":
        """
        Create the engine. No connection is opened until first use.

        Args:
            url:          Database URL (see normalize_url()).
            pool_size:    Connections kept open in the pool.
            max_overflow: Extra connections allowed under burst load.
        """
        url = normalize_url(url)
        parsed = make_url(url)
        options = {"pool_pre_ping": True}
        in_memory = parsed.get_backend_name() == "sqlite" and parsed.database in (None, "", ":memory:")
        if in_memory:
            # One shared connection, so every worker thread sees the same database
            options.update(poolclass=StaticPool, connect_args={"check_same_thread": False})
        else:
            options.update(pool_size=pool_size, max_overflow=max_overflow)

        engine = create_engine(url, **options)
        logger.info(f"Database configured: {mask_url(url)}")
        return cls(engine)

    def ensure_schema(self) -> None:
        """
        Create the users table if it does not exist.

        Raises:
            DatabaseError: If the database cannot be reached or the DDL fails.
        """
        try:
            metadata.create_all(self.engine, checkfirst=True)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Could not set up database: {e}") from e
        logger.info("Database schema ready")

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """
        Check out a pooled connection inside a transaction.

        Commits when the block exits normally, rolls back otherwise, and
        always returns the connection to the pool. SQLAlchemy failures
        (from checkout to commit) surface as DatabaseError.
        """
        try:
            with self.engine.begin() as conn:
                yield conn
        except SQLAlchemyError as e:
            raise DatabaseError(f"{type(e).__name__}: {e}") from e

    def dispose(self) -> None:
        """Close every pooled connection."""
        self.engine.dispose()
