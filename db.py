"""
Database Module

PostgreSQL access for activity history: a lazily created connection pool,
a logged query helper, transactions and the schema.
"""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence

import psycopg2
from psycopg2.extras import RealDictCursor
from psycopg2.pool import ThreadedConnectionPool

from config import DATABASE_URL, DB_CONNECT_TIMEOUT, DB_POOL_MAX, DB_SSL

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id SERIAL PRIMARY KEY,
        email VARCHAR(255) UNIQUE NOT NULL,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS activities (
        id SERIAL PRIMARY KEY,
        user_id INTEGER REFERENCES users(id),
        type VARCHAR(50) NOT NULL,
        title TEXT NOT NULL,
        input_text TEXT,
        result JSONB,
        status VARCHAR(20) NOT NULL,
        duration INTEGER,
        metadata JSONB,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS summaries (
        id SERIAL PRIMARY KEY,
        activity_id INTEGER REFERENCES activities(id),
        summary_text TEXT NOT NULL,
        key_points JSONB,
        word_count INTEGER,
        original_word_count INTEGER,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS quizzes (
        id SERIAL PRIMARY KEY,
        activity_id INTEGER REFERENCES activities(id),
        questions JSONB NOT NULL,
        difficulty VARCHAR(20),
        score INTEGER,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS mindmaps (
        id SERIAL PRIMARY KEY,
        activity_id INTEGER REFERENCES activities(id),
        nodes JSONB NOT NULL,
        connections JSONB,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS videos (
        id SERIAL PRIMARY KEY,
        activity_id INTEGER REFERENCES activities(id),
        video_url TEXT,
        transcript TEXT,
        duration INTEGER,
        style VARCHAR(50),
        created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS pictures (
        id SERIAL PRIMARY KEY,
        activity_id INTEGER REFERENCES activities(id),
        image_url TEXT NOT NULL,
        prompt TEXT,
        style VARCHAR(50),
        created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
    )
    """,
]


class DatabaseNotConfiguredError(RuntimeError):
    """DATABASE_URL is not set."""


class Database:
    """Pooled PostgreSQL access"""

    def __init__(self, dsn: str = DATABASE_URL, ssl: bool = DB_SSL,
                 max_connections: int = DB_POOL_MAX, connect_timeout: int = DB_CONNECT_TIMEOUT):
        self.dsn = dsn
        self.ssl = ssl
        self.max_connections = max_connections
        self.connect_timeout = connect_timeout
        self._pool: Optional[ThreadedConnectionPool] = None
        self._lock = threading.Lock()

    def is_configured(self) -> bool:
        return bool(self.dsn)

    @property
    def pool(self) -> ThreadedConnectionPool:
        if not self.is_configured():
            raise DatabaseNotConfiguredError("DATABASE_URL is not configured")
        with self._lock:
            if self._pool is None:
                options = {"connect_timeout": self.connect_timeout}
                if self.ssl:
                    options["sslmode"] = "require"
                self._pool = ThreadedConnectionPool(1, self.max_connections, self.dsn, **options)
                logger.info(f"✅ PostgreSQL pool created (max {self.max_connections} connections)")
        return self._pool

    @contextmanager
    def connection(self):
        conn = self.pool.getconn()
        try:
            yield conn
        finally:
            self.pool.putconn(conn)

    @contextmanager
    def transaction(self):
        """
        Yield a dict cursor inside one transaction.
        Commits on success, rolls back and re-raises on any database error.
        """
        with self.connection() as conn:
            cursor = conn.cursor(cursor_factory=RealDictCursor)
            try:
                yield cursor
                conn.commit()
            except psycopg2.Error:
                conn.rollback()
                raise
            finally:
                cursor.close()

    def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Run one statement in its own transaction and return its rows, if any"""
        start = time.monotonic()
        try:
            with self.transaction() as cursor:
                cursor.execute(sql, params)
                rows = cursor.fetchall() if cursor.description else []
                row_count = cursor.rowcount
        except psycopg2.Error as e:
            logger.error(f"❌ Database query error: {e}")
            raise
        duration_ms = int((time.monotonic() - start) * 1000)
        logger.debug(f"Executed query in {duration_ms}ms, rows: {row_count}")
        return [dict(row) for row in rows]

    def init_schema(self) -> None:
        with self.transaction() as cursor:
            for statement in SCHEMA_STATEMENTS:
                cursor.execute(statement)
        logger.info("✅ Database initialized successfully")

    def close(self) -> None:
        with self._lock:
            if self._pool is not None:
                self._pool.closeall()
                self._pool = None


# Global instance
database = Database()
