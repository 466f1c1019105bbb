from __future__ import annotations

from typing import Any, Sequence, TypeVar

from sqlalchemy import Select, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from propertyhub.core.config import settings
from propertyhub.models.counter import Counter
from propertyhub.schemas.common import Pagination

T = TypeVar("T")


async def conditional_update(db: AsyncSession, model: type[T], *criteria: Any, values: dict[str, Any]) -> T | None:
    """
    Match-and-write in one statement: UPDATE ... WHERE <criteria> RETURNING *.

    Returns the updated row, or None when nothing matched. Callers put every
    precondition into `criteria` so there is no window between check and write.
    """
    stmt = (
        update(model)
        .where(*criteria)
        .values(**values)
        .returning(model)
        .execution_options(synchronize_session=False, populate_existing=True)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def atomic_increment(db: AsyncSession, name: str, *, start: int = 0) -> int:
    """Increment-and-fetch on a named counter row; creates it on first use."""
    stmt = update(Counter).where(Counter.name == name).values(seq=Counter.seq + 1).returning(Counter.seq)
    seq = (await db.execute(stmt)).scalar_one_or_none()
    if seq is not None:
        return seq

    try:
        async with db.begin_nested():
            db.add(Counter(name=name, seq=start + 1))
        return start + 1
    except IntegrityError:
        # another writer created the row first
        return (await db.execute(stmt)).scalar_one()


def page_window(page: int, limit: int) -> tuple[int, int]:
    page = max(1, page)
    limit = max(1, min(limit, settings.max_page_size))
    return page, limit


async def paginate(db: AsyncSession, stmt: Select, *, page: int, limit: int) -> tuple[Sequence[Any], Pagination]:
    page, limit = page_window(page, limit)

    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = (await db.execute(count_stmt)).scalar_one()

    rows = (await db.execute(stmt.offset((page - 1) * limit).limit(limit))).scalars().all()
    pages = (total + limit - 1) // limit
    return rows, Pagination(page=page, limit=limit, total=total, pages=pages)
