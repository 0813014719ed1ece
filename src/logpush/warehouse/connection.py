"""
PostgreSQL connection pool management using psycopg3

One connection per upload worker: the pool is sized to the worker count
and every connection is opened in autocommit mode, so each COPY is its
own transaction and VACUUM can run on the same connection.
"""
import time
from contextlib import contextmanager

from psycopg import OperationalError
from psycopg_pool import ConnectionPool

from logpush.observability.logger import get_logger

from .adapters import register_adapters

logger = get_logger(__name__)


class DatabaseConnectionPool:
    """
    PostgreSQL connection pool manager using psycopg3

    Provides connection pooling sized to the number of upload workers,
    with retry on open and connection lifecycle management.
    """

    def __init__(
        self,
        conninfo: str,
        size: int = 1,
        timeout: float = 30.0,
        name: str = "logpush",
    ) -> None:
        """
        Initialize database connection pool

        Args:
            conninfo: PostgreSQL URI or key=value connection string
            size: Number of connections (min and max), one per worker
            timeout: Seconds to wait for a connection
            name: Pool name used in logs
        """
        if size < 1:
            raise ValueError(f"Pool size must be at least 1, got {size}")

        self.conninfo = conninfo
        self.size = size
        self.timeout = timeout
        self.name = name

        self._pool: ConnectionPool | None = None

    def open(self, max_retries: int = 3, retry_delay: float = 2.0) -> None:
        """
        Open the connection pool with retry logic.

        Args:
            max_retries: Maximum number of connection attempts
            retry_delay: Delay between retries in seconds

        Raises:
            OperationalError: If connection fails after all retries
        """
        if self._pool is not None:
            return

        last_error = None
        for attempt in range(1, max_retries + 1):
            pool = ConnectionPool(
                conninfo=self.conninfo,
                min_size=self.size,
                max_size=self.size,
                timeout=self.timeout,
                name=self.name,
                kwargs={"autocommit": True},
                configure=register_adapters,
                open=False,
            )
            try:
                pool.open(wait=True, timeout=self.timeout)
                self._pool = pool
                logger.info(f"Opened connection pool '{self.name}' with {self.size} connection(s)")
                return
            except OperationalError as e:
                last_error = e
                pool.close()
                if attempt < max_retries:
                    logger.warning(f"Connection attempt {attempt}/{max_retries} failed: {e}")
                    time.sleep(retry_delay)

        raise OperationalError(
            f"Failed to connect to database after {max_retries} attempts: {last_error}"
        ) from last_error

    def close(self) -> None:
        """Close the connection pool"""
        if self._pool is not None:
            self._pool.close()
            self._pool = None

    @contextmanager
    def get_connection(self):
        """
        Get a connection from the pool

        Blocks until a connection is free or the pool timeout expires.

        Yields:
            psycopg.Connection: Database connection in autocommit mode

        Raises:
            RuntimeError: If pool is not open
        """
        if self._pool is None:
            raise RuntimeError("Connection pool is not open. Call open() first.")

        with self._pool.connection() as conn:
            yield conn

    def execute_command(self, command, params: tuple | None = None) -> int:
        """
        Execute a single command on a pooled connection

        Args:
            command: SQL command (str or psycopg.sql.Composable)
            params: Command parameters (optional)

        Returns:
            Number of rows affected
        """
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(command, params)
                return cur.rowcount

    def __enter__(self):
        """Context manager entry"""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.close()
        return False
