# app/core/db.py - SQLAlchemy database setup with connection pooling
from sqlalchemy import create_engine, text, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool, QueuePool
from typing import Generator, Optional
import logging
import time
import threading

from app.core.config import settings

# Configure logging
logger = logging.getLogger(__name__)


class DatabaseManager:
    """Database manager with connection pooling and health monitoring"""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or settings.DATABASE_URL
        self.engine: Optional[Engine] = None
        self.SessionLocal: Optional[sessionmaker] = None
        self._initialized = False
        self._lock = threading.Lock()

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def initialize(self):
        """Initialize database engine and session maker"""
        if self._initialized:
            return

        with self._lock:
            if self._initialized:
                return

            try:
                self.engine = self._create_engine()
                self.SessionLocal = sessionmaker(
                    autocommit=False,
                    autoflush=False,
                    bind=self.engine
                )

                # Set up event listeners
                self._setup_event_listeners()

                # Test connection
                self._test_connection()

                self._initialized = True
                logger.info("Database initialized successfully")

            except SQLAlchemyError as e:
                logger.error(f"Failed to initialize database: {e}")
                raise

    def _create_engine(self) -> Engine:
        """Create SQLAlchemy engine with optimized configuration"""
        engine_args = {
            "url": self.database_url,
            "echo": settings.DATABASE_ECHO,
        }

        if self.is_sqlite:
            # One shared connection so in-memory databases survive across sessions
            engine_args.update({
                "poolclass": StaticPool,
                "connect_args": {
                    "check_same_thread": False,
                    "timeout": 30,  # 30 second timeout for SQLite locks
                },
            })
        else:
            # PostgreSQL specific configuration
            engine_args.update({
                "poolclass": QueuePool,
                "pool_size": settings.DATABASE_POOL_SIZE,
                "max_overflow": settings.DATABASE_MAX_OVERFLOW,
                "pool_timeout": settings.DATABASE_POOL_TIMEOUT,
                "pool_recycle": settings.DATABASE_POOL_RECYCLE,
                "pool_pre_ping": True,  # Verify connections before use
                "connect_args": {
                    "connect_timeout": 10,
                    "application_name": f"student_id_cards_{settings.ENV}",
                    "options": "-c timezone=UTC"
                }
            })

        return create_engine(**engine_args)

    def _setup_event_listeners(self):
        """Set up SQLAlchemy event listeners for monitoring"""

        @event.listens_for(self.engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            """Enable foreign keys on SQLite"""
            if self.is_sqlite:
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        @event.listens_for(self.engine, "before_cursor_execute")
        def receive_before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            if settings.is_development:
                context._query_start_time = time.time()

        @event.listens_for(self.engine, "after_cursor_execute")
        def receive_after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            """Log slow queries in development"""
            if settings.is_development and hasattr(context, '_query_start_time'):
                total = time.time() - context._query_start_time
                if total > 0.1:  # Log queries taking more than 100ms
                    logger.warning(f"Slow query ({total:.3f}s): {statement[:100]}...")

    def _test_connection(self):
        """Test database connection and log status"""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()

            if self.is_sqlite:
                db_info = conn.execute(text("SELECT sqlite_version()")).fetchone()
                logger.info(f"Connected to SQLite: {db_info[0]}")
            else:
                db_info = conn.execute(text("SELECT version()")).fetchone()
                logger.info(f"Connected to PostgreSQL: {db_info[0][:50]}...")

    def create_tables(self):
        """Create tables that do not exist yet (development and tests)"""
        from app.models import Base

        if not self._initialized:
            self.initialize()
        Base.metadata.create_all(bind=self.engine)

    def get_session(self) -> Generator[Session, None, None]:
        """
        Get database session with automatic cleanup and error handling.

        Yields:
            Session: SQLAlchemy database session
        """
        if not self._initialized:
            self.initialize()

        session = self.SessionLocal()
        try:
            yield session
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        finally:
            session.close()

    def health_check(self) -> dict:
        """
        Perform database health check.

        Returns:
            Dict with health status information
        """
        try:
            if not self._initialized:
                self.initialize()
            start_time = time.time()
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            response_time = (time.time() - start_time) * 1000  # Convert to ms
            return {
                "status": "healthy",
                "response_time_ms": round(response_time, 2),
            }
        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {e}")
            return {
                "status": "unhealthy",
                "error": str(e)
            }

    def set_rls_context(self, session: Session, user_id: str = None, role: str = None):
        """
        Set Row Level Security context for PostgreSQL.

        Policies on the students table read ``app.current_user_id`` and
        ``app.current_user_role``. SQLite has no RLS; ownership is enforced by
        the query filters alone.
        """
        if self.is_sqlite or not user_id:
            return
        try:
            session.execute(
                text(
                    "SELECT set_config('app.current_user_id', :user_id, true), "
                    "set_config('app.current_user_role', :role, true)"
                ),
                {"user_id": str(user_id), "role": role or ""}
            )
        except SQLAlchemyError as e:
            logger.warning(f"Could not set RLS context: {e}")
            session.rollback()

    def close(self):
        """Close database connections and cleanup"""
        if self.engine:
            self.engine.dispose()
            logger.info("Database connections closed")


# Create global database manager instance
db_manager = DatabaseManager()


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency to get database session.

    Usage in FastAPI:
        @app.get("/students")
        def list_students(db: Session = Depends(get_db)):
            ...
    """
    yield from db_manager.get_session()


def set_rls_context(session: Session, user_id: str = None, role: str = None):
    """Set Row Level Security context (convenience function)"""
    db_manager.set_rls_context(session, user_id, role)


def health_check() -> dict:
    """Get database health status (convenience function)"""
    return db_manager.health_check()


__all__ = [
    "DatabaseManager",
    "get_db",
    "set_rls_context",
    "health_check",
    "db_manager"
]
