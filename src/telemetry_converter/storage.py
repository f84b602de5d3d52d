"""Job and user persistence interface plus the in-process implementation.

`JobStorage` is the contract every backend satisfies; the PostgreSQL
implementation lives in `telemetry_converter.db`. `MemoryStorage` backs the
service when no database is configured and is what the test-suite uses.

`build_storage` selects a backend from `Settings`.
"""
from __future__ import annotations

import abc
import asyncio
import logging
import time
from typing import Dict, List, Optional

from .config import Settings
from .models.jobs import ConversionJob, JobUpdate, NewConversionJob, NewUser, User

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


class DuplicateUsernameError(ValueError):
    pass


class JobStorage(abc.ABC):
    """CRUD persistence for conversion jobs and the stub users table."""

    name: str = "abstract"

    async def setup(self) -> None:
        """Prepare the backend (create tables, etc.). No-op by default."""

    # Users
    @abc.abstractmethod
    async def get_user(self, user_id: int) -> Optional[User]: ...

    @abc.abstractmethod
    async def get_user_by_username(self, username: str) -> Optional[User]: ...

    @abc.abstractmethod
    async def create_user(self, user: NewUser) -> User: ...

    # Conversion jobs
    @abc.abstractmethod
    async def create_job(self, job: NewConversionJob) -> ConversionJob: ...

    @abc.abstractmethod
    async def get_job(self, job_id: int) -> Optional[ConversionJob]: ...

    @abc.abstractmethod
    async def update_job(self, job_id: int, update: JobUpdate) -> Optional[ConversionJob]: ...

    @abc.abstractmethod
    async def list_jobs(self) -> List[ConversionJob]: ...

    @abc.abstractmethod
    async def delete_job(self, job_id: int) -> bool: ...


class MemoryStorage(JobStorage):
    """Dict-backed store with serial ids, safe for one event loop."""

    name = "memory"

    def __init__(self) -> None:
        self._users: Dict[int, User] = {}
        self._jobs: Dict[int, ConversionJob] = {}
        self._next_user_id = 1
        self._next_job_id = 1
        self._lock = asyncio.Lock()

    async def get_user(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    async def get_user_by_username(self, username: str) -> Optional[User]:
        for user in self._users.values():
            if user.username == username:
                return user
        return None

    async def create_user(self, user: NewUser) -> User:
        async with self._lock:
            if await self.get_user_by_username(user.username) is not None:
                raise DuplicateUsernameError(f"username already exists: {user.username}")
            created = User(id=self._next_user_id, **user.model_dump())
            self._users[created.id] = created
            self._next_user_id += 1
        return created

    async def create_job(self, job: NewConversionJob) -> ConversionJob:
        async with self._lock:
            created = ConversionJob(
                id=self._next_job_id,
                created_at=now_ms(),
                **job.model_dump(),
            )
            self._jobs[created.id] = created
            self._next_job_id += 1
        logger.debug("memory store: created job id=%s", created.id)
        return created

    async def get_job(self, job_id: int) -> Optional[ConversionJob]:
        return self._jobs.get(job_id)

    async def update_job(self, job_id: int, update: JobUpdate) -> Optional[ConversionJob]:
        async with self._lock:
            current = self._jobs.get(job_id)
            if current is None:
                return None
            updated = current.apply(update)
            self._jobs[job_id] = updated
        return updated

    async def list_jobs(self) -> List[ConversionJob]:
        return [self._jobs[k] for k in sorted(self._jobs)]

    async def delete_job(self, job_id: int) -> bool:
        async with self._lock:
            return self._jobs.pop(job_id, None) is not None


def build_storage(settings: Settings) -> JobStorage:
    """Instantiate the job store selected by `settings`."""
    backend = settings.effective_storage_backend
    if backend == "postgres":
        from .db import PostgresStorage

        return PostgresStorage(
            settings.PG_DSN,
            schema=settings.DB_POSTGRESDB_SCHEMA,
            table_prefix=settings.DB_TABLE_PREFIX,
            connect_attempts=settings.DB_CONNECT_ATTEMPTS,
        )
    if settings.STORAGE_BACKEND == "auto":
        logger.warning("PG_DSN not set; conversion jobs are kept in memory only")
    return MemoryStorage()


__all__ = ["JobStorage", "MemoryStorage", "DuplicateUsernameError", "build_storage", "now_ms"]
