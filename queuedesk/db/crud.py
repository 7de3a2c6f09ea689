from datetime import datetime
from typing import Any, Type
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel


async def guarded_update(
    session: AsyncSession,
    model: Type[SQLModel],
    row_id: UUID,
    *conditions: Any,
    **values: Any,
) -> bool:
    """
    Update one row only if it still matches ``conditions``.

    Bumps ``version`` and ``updated_at`` along with ``values``. Returns False
    when nothing matched, i.e. another writer changed the row first. The
    caller owns the transaction and decides whether to roll back.
    """
    stmt = (
        update(model)
        .where(model.id == row_id, *conditions)
        .values(version=model.version + 1, updated_at=datetime.utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return result.rowcount == 1
