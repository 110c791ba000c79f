"""
Product API Database Configuration

Two engines, one per role:
- primary: authoritative, read-write, used only by the write path
- replica: eventually consistent, read-only, used only by the read path

Each engine is exposed as a QueryExecutor. Query failures are surfaced as
StoreFailure immediately; only the startup connectivity check is retried.
"""

import asyncio
import time
from typing import Any, Dict, List, Mapping, Optional

import asyncpg
import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.sql import Executable
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .config import Settings, get_settings
from .exceptions import StoreFailure
from ..monitoring.metrics import DB_QUERY_DURATION, DB_QUERY_FAILURES

logger = structlog.get_logger()


class QueryExecutor:
    """
    Executes one parameterized statement and returns its rows as dicts.

    The read-only executor runs every statement inside a READ ONLY
    transaction; the read-write executor commits each statement on success.
    """

    def __init__(self, engine: AsyncEngine, name: str, read_only: bool):
        self.engine = engine
        self.name = name
        self.read_only = read_only

    async def execute(
        self, statement: Executable, params: Optional[Mapping[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        start_time = time.perf_counter()

        try:
            if self.read_only:
                async with self.engine.connect() as conn:
                    result = await conn.execute(statement, params or {})
                    rows = [dict(row) for row in result.mappings().all()]
            else:
                async with self.engine.begin() as conn:
                    result = await conn.execute(statement, params or {})
                    rows = [dict(row) for row in result.mappings().all()]

        except (
            SQLAlchemyError,
            OSError,
            asyncio.TimeoutError,
            asyncpg.PostgresError,
        ) as e:
            DB_QUERY_FAILURES.labels(executor=self.name).inc()
            logger.error(
                "Store query failed",
                executor=self.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StoreFailure(
                message=f"{self.name} query failed",
                executor=self.name,
                original_error=e,
            ) from e

        finally:
            DB_QUERY_DURATION.labels(executor=self.name).observe(
                time.perf_counter() - start_time
            )

        return rows


class DatabaseManager:
    """
    Owns the primary and replica engines and their executors.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.primary_engine: Optional[AsyncEngine] = None
        self.replica_engine: Optional[AsyncEngine] = None
        self.write_executor: Optional[QueryExecutor] = None
        self.read_executor: Optional[QueryExecutor] = None

    def _create_engine(self, url: str, application_name: str) -> AsyncEngine:
        return create_async_engine(
            url,
            pool_size=self.settings.DATABASE_POOL_SIZE,
            max_overflow=self.settings.DATABASE_MAX_OVERFLOW,
            pool_timeout=self.settings.DATABASE_POOL_TIMEOUT,
            pool_pre_ping=True,
            echo=self.settings.DEBUG,
            connect_args={
                "command_timeout": self.settings.QUERY_TIMEOUT_SECONDS,
                "server_settings": {"application_name": application_name},
            },
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(
            (asyncpg.PostgresConnectionError, ConnectionError, OSError)
        ),
        before_sleep=lambda retry_state: logger.warning(
            "Database connection retry",
            attempt=retry_state.attempt_number,
            wait_time=retry_state.next_action.sleep,
        ),
        reraise=True,
    )
    async def _check_connectivity(self, engine: AsyncEngine, role: str) -> None:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database reachable", role=role)

    async def initialize(self) -> None:
        """Create both engines and verify they answer."""
        self.primary_engine = self._create_engine(
            self.settings.PRIMARY_DATABASE_URL, "product_api_primary"
        )
        self.replica_engine = self._create_engine(
            self.settings.REPLICA_DATABASE_URL, "product_api_replica"
        )

        try:
            await self._check_connectivity(self.primary_engine, "primary")
            await self._check_connectivity(self.replica_engine, "replica")
        except Exception as e:
            logger.error(
                "Database initialization failed", error=str(e), exc_info=True
            )
            await self.close()
            raise

        self.write_executor = QueryExecutor(
            self.primary_engine, name="primary", read_only=False
        )
        self.read_executor = QueryExecutor(
            self.replica_engine.execution_options(postgresql_readonly=True),
            name="replica",
            read_only=True,
        )

        logger.info(
            "Database executors ready",
            primary=self.settings.redacted_url(self.settings.PRIMARY_DATABASE_URL),
            replica=self.settings.redacted_url(self.settings.REPLICA_DATABASE_URL),
        )

    async def close(self) -> None:
        """Dispose both engines."""
        for engine in (self.primary_engine, self.replica_engine):
            if engine is not None:
                await engine.dispose()
        self.primary_engine = None
        self.replica_engine = None
        self.write_executor = None
        self.read_executor = None
        logger.info("Database connections closed")
