"""PostgreSQL persistence for conversion jobs and users.

This module provides `PostgresStorage`, the relational implementation of
`JobStorage`. It handles dynamic table naming (schema and prefix),
per-operation connection management with exponential backoff on connect,
and the DDL used by `init-db`.

JSON payloads are stored in `jsonb` columns; psycopg decodes them back into
Python objects on read, so rows map directly onto `ConversionJob`.
"""
from __future__ import annotations

import logging
import re
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Optional

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .models.jobs import ConversionJob, JobUpdate, NewConversionJob, NewUser, User
from .storage import DuplicateUsernameError, JobStorage, now_ms

logger = logging.getLogger(__name__)

_JOB_COLUMNS = (
    "id, file_name, original_data, converted_data, status, error_message, "
    "file_size, timestamp_format, created_at"
)


class PostgresStorage(JobStorage):
    """Job store backed by PostgreSQL via psycopg (async).

    Each operation opens its own autocommit connection; statements are atomic
    on their own and the one read-modify-write (`update_job`) runs inside an
    explicit transaction with a row lock.
    """

    name = "postgres"

    def __init__(
        self,
        dsn: str,
        *,
        schema: Optional[str] = None,
        table_prefix: str = "",
        connect_attempts: int = 5,
    ):
        """Initialize the store and resolve table names.

        Args:
            dsn: The full PostgreSQL connection string.
            schema: The database schema to use (default 'public').
            table_prefix: Prefix for both tables. An empty string means none.
            connect_attempts: Attempts made to open a connection before the
                last error is re-raised.
        """
        self._dsn = dsn
        self._schema = schema or "public"
        self._table_prefix = table_prefix or ""
        # Basic safety: allow only alnum + underscore in prefix & schema
        if not re.fullmatch(r"[A-Za-z0-9_]+", self._schema):
            raise ValueError("Invalid schema name")
        if not re.fullmatch(r"[A-Za-z0-9_]*", self._table_prefix):
            raise ValueError("Invalid table prefix")
        self._connect_attempts = max(1, connect_attempts)
        self._users_table = f'"{self._schema}"."{self._table_prefix}users"'
        self._jobs_table = f'"{self._schema}"."{self._table_prefix}conversion_jobs"'
        logger.info(
            "DB init: schema=%s prefix=%r users_table=%s jobs_table=%s",
            self._schema,
            self._table_prefix,
            self._users_table,
            self._jobs_table,
        )

    @property
    def users_table(self) -> str:
        return self._users_table

    @property
    def jobs_table(self) -> str:
        return self._jobs_table

    def schema_statements(self) -> List[str]:
        """DDL creating the schema and both tables if they do not exist."""
        return [
            f'CREATE SCHEMA IF NOT EXISTS "{self._schema}"',
            (
                f"CREATE TABLE IF NOT EXISTS {self._users_table} ("
                "id SERIAL PRIMARY KEY, "
                "username TEXT NOT NULL UNIQUE, "
                "password TEXT NOT NULL)"
            ),
            (
                f"CREATE TABLE IF NOT EXISTS {self._jobs_table} ("
                "id SERIAL PRIMARY KEY, "
                "file_name TEXT NOT NULL, "
                "original_data JSONB NOT NULL, "
                "converted_data JSONB, "
                "status TEXT NOT NULL DEFAULT 'pending', "
                "error_message TEXT, "
                "file_size INTEGER NOT NULL, "
                "timestamp_format TEXT NOT NULL, "
                "created_at BIGINT NOT NULL)"
            ),
        ]

    async def _open(self) -> psycopg.AsyncConnection:
        async for attempt in AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(self._connect_attempts),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=8),
            retry=retry_if_exception_type(psycopg.OperationalError),
        ):
            with attempt:
                return await psycopg.AsyncConnection.connect(
                    self._dsn, autocommit=True, row_factory=dict_row
                )
        raise RuntimeError("unreachable")  # pragma: no cover

    @asynccontextmanager
    async def _connect(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """Async context manager yielding a live PostgreSQL connection."""
        if not self._dsn:
            raise RuntimeError("PG_DSN is empty; cannot establish database connection")
        conn = await self._open()
        try:
            yield conn
        finally:
            try:
                await conn.close()
            except Exception:  # pragma: no cover - best effort
                logger.debug("Error closing Postgres connection", exc_info=True)

    async def setup(self) -> None:
        async with self._connect() as conn:
            for stmt in self.schema_statements():
                await conn.execute(stmt)
        logger.info("Ensured tables %s and %s exist", self._users_table, self._jobs_table)

    # ---------------- Users -----------------

    async def get_user(self, user_id: int) -> Optional[User]:
        async with self._connect() as conn:
            cur = await conn.execute(
                f"SELECT id, username, password FROM {self._users_table} WHERE id = %s",
                (user_id,),
            )
            row = await cur.fetchone()
        return User.model_validate(row) if row else None

    async def get_user_by_username(self, username: str) -> Optional[User]:
        async with self._connect() as conn:
            cur = await conn.execute(
                f"SELECT id, username, password FROM {self._users_table} WHERE username = %s",
                (username,),
            )
            row = await cur.fetchone()
        return User.model_validate(row) if row else None

    async def create_user(self, user: NewUser) -> User:
        async with self._connect() as conn:
            try:
                cur = await conn.execute(
                    f"INSERT INTO {self._users_table} (username, password) VALUES (%s, %s) "
                    "RETURNING id, username, password",
                    (user.username, user.password),
                )
            except psycopg.errors.UniqueViolation as e:
                raise DuplicateUsernameError(f"username already exists: {user.username}") from e
            row = await cur.fetchone()
        return User.model_validate(row)

    # ---------------- Conversion jobs -----------------

    @staticmethod
    def _row_to_job(row: Dict[str, Any]) -> ConversionJob:
        return ConversionJob.model_validate(row)

    async def create_job(self, job: NewConversionJob) -> ConversionJob:
        async with self._connect() as conn:
            cur = await conn.execute(
                f"INSERT INTO {self._jobs_table} "
                "(file_name, original_data, file_size, timestamp_format, created_at) "
                f"VALUES (%s, %s, %s, %s, %s) RETURNING {_JOB_COLUMNS}",
                (
                    job.file_name,
                    Jsonb(job.original_data),
                    job.file_size,
                    job.timestamp_format.value,
                    now_ms(),
                ),
            )
            row = await cur.fetchone()
        return self._row_to_job(row)

    async def get_job(self, job_id: int) -> Optional[ConversionJob]:
        async with self._connect() as conn:
            cur = await conn.execute(
                f"SELECT {_JOB_COLUMNS} FROM {self._jobs_table} WHERE id = %s", (job_id,)
            )
            row = await cur.fetchone()
        return self._row_to_job(row) if row else None

    async def update_job(self, job_id: int, update: JobUpdate) -> Optional[ConversionJob]:
        async with self._connect() as conn:
            async with conn.transaction():
                cur = await conn.execute(
                    f"SELECT {_JOB_COLUMNS} FROM {self._jobs_table} WHERE id = %s FOR UPDATE",
                    (job_id,),
                )
                row = await cur.fetchone()
                if row is None:
                    return None
                updated = self._row_to_job(row).apply(update)
                cur = await conn.execute(
                    f"UPDATE {self._jobs_table} "
                    "SET status = %s, converted_data = %s, error_message = %s "
                    f"WHERE id = %s RETURNING {_JOB_COLUMNS}",
                    (
                        updated.status.value,
                        Jsonb(updated.converted_data) if updated.converted_data is not None else None,
                        updated.error_message,
                        job_id,
                    ),
                )
                row = await cur.fetchone()
        return self._row_to_job(row)

    async def list_jobs(self) -> List[ConversionJob]:
        async with self._connect() as conn:
            cur = await conn.execute(f"SELECT {_JOB_COLUMNS} FROM {self._jobs_table} ORDER BY id ASC")
            rows = await cur.fetchall()
        return [self._row_to_job(r) for r in rows]

    async def delete_job(self, job_id: int) -> bool:
        async with self._connect() as conn:
            cur = await conn.execute(
                f"DELETE FROM {self._jobs_table} WHERE id = %s RETURNING id", (job_id,)
            )
            row = await cur.fetchone()
        return row is not None


__all__ = ["PostgresStorage"]
