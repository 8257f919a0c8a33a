"""SQLite-backed snapshot cache (any SQLAlchemy async URL works)."""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from chat_client.application.exceptions import StorageError
from chat_client.infrastructure.storage.models import Base, SnapshotPartitionModel

logger = logging.getLogger(__name__)


class SqlAlchemySnapshotStorage:
    """Implements application.ports.storage.SnapshotStorage.

    All partitions are upserted inside one transaction, so a failed write
    leaves the previous snapshot intact.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._sessionmaker = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            autoflush=False,
            expire_on_commit=False,
        )
        self._ready = False

    @classmethod
    def from_url(cls, url: str) -> SqlAlchemySnapshotStorage:
        return cls(create_async_engine(url, echo=False))

    async def _ensure_schema(self) -> None:
        if self._ready:
            return
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self._ready = True

    async def read(self) -> dict[str, str] | None:
        try:
            await self._ensure_schema()
            async with self._sessionmaker() as session:
                rows = (await session.execute(select(SnapshotPartitionModel))).scalars().all()
        except SQLAlchemyError as exc:
            raise StorageError(f"Snapshot read failed: {exc}") from exc
        if not rows:
            return None
        return {row.name: row.payload for row in rows}

    async def write(self, partitions: dict[str, str]) -> None:
        now = datetime.now(timezone.utc)
        try:
            await self._ensure_schema()
            async with self._sessionmaker() as session, session.begin():
                for name, payload in partitions.items():
                    stmt = (
                        sqlite_insert(SnapshotPartitionModel)
                        .values(name=name, payload=payload, updated_at=now)
                        .on_conflict_do_update(
                            index_elements=[SnapshotPartitionModel.name],
                            set_={"payload": payload, "updated_at": now},
                        )
                    )
                    await session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StorageError(f"Snapshot write failed: {exc}") from exc
        logger.debug("Snapshot written (%d partitions)", len(partitions))

    async def aclose(self) -> None:
        await self._engine.dispose()
