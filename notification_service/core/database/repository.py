"""Generic async repository.

Repositories hold no session; every call takes one, so the caller decides
the transaction boundary. Feature repositories subclass this and add their
own queries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import Select, func, select

from notification_service.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.orm import InstrumentedAttribute


@dataclass(slots=True, frozen=True)
class SearchResult[T]:
    """One page of rows plus the unpaged total."""

    items: Sequence[T]
    total: int
    limit: int
    offset: int

    @property
    def has_next(self) -> bool:
        return self.offset + len(self.items) < self.total


class BaseRepository[T]:
    __slots__ = ("_log", "model")

    def __init__(self, model: type[T]) -> None:
        self.model = model
        self._log = get_lazy_logger(f"repository.{model.__name__}")

    async def get(self, session: AsyncSession, id: Any) -> T | None:  # noqa: A002
        instance = await session.get(self.model, id)
        self._log.debug(lambda: f"get {self.model.__name__}({id}) -> {'hit' if instance else 'miss'}")
        return instance

    async def get_by(self, session: AsyncSession, attr: InstrumentedAttribute[Any], value: Any) -> T | None:
        """Fetch the single row whose unique ``attr`` equals ``value``."""
        result = await session.execute(select(self.model).where(attr == value))
        return result.scalar_one_or_none()

    async def search(
        self,
        session: AsyncSession,
        statement: Select[tuple[T]],
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> SearchResult[T]:
        """Run a filtered, ordered statement as one page and count the full match."""
        count_stmt = select(func.count()).select_from(statement.order_by(None).subquery())
        total = (await session.execute(count_stmt)).scalar_one()
        items = (await session.execute(statement.limit(limit).offset(offset))).scalars().all()
        self._log.debug(lambda: f"search {self.model.__name__} offset={offset} -> {len(items)}/{total}")
        return SearchResult(items=items, total=total, limit=limit, offset=offset)

    async def create(self, session: AsyncSession, instance: T) -> T:
        """Add, flush and refresh so generated columns such as ``id`` are populated."""
        session.add(instance)
        await session.flush()
        await session.refresh(instance)
        return instance

    async def save(self, session: AsyncSession, instance: T) -> T:
        await session.flush()
        await session.refresh(instance)
        return instance
