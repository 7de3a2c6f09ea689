from datetime import datetime
from typing import List

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from queuedesk.core.logger import logger
from queuedesk.db.models import Counter, CounterKind


class CounterService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _increment(self, kind: CounterKind) -> int | None:
        stmt = (
            update(Counter)
            .where(Counter.id == kind.value)
            .values(last_number=Counter.last_number + 1, updated_at=datetime.utcnow())
            .returning(Counter.last_number)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def next_number(self, kind: CounterKind) -> int:
        """
        Reserve the next sequential number for ``kind``.

        Increment and read happen in one statement, so concurrent callers
        always get distinct numbers. Runs inside the caller's transaction:
        the number is only consumed if the caller commits.
        """
        number = await self._increment(kind)
        if number is not None:
            return number

        # First use: create the row, or lose the race to whoever did
        try:
            async with self.session.begin_nested():
                self.session.add(Counter(id=kind.value, last_number=1))
            return 1
        except IntegrityError:
            number = await self._increment(kind)
            if number is None:
                raise
            return number

    async def reset(self, kind: CounterKind) -> Counter:
        """
        Set ``kind`` back to 0 inside the caller's transaction.

        The write locks the counter row until the caller commits or rolls
        back, so creators that already drew a number finish first and new
        ones wait. Callers check for live rows after this, not before.
        """
        result = await self.session.execute(
            update(Counter)
            .where(Counter.id == kind.value)
            .values(last_number=0, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.session.add(Counter(id=kind.value, last_number=0))
            await self.session.flush()

        counter = await self.session.get(Counter, kind.value, populate_existing=True)
        logger.info(f"{kind.value.capitalize()} counter reset to 0")
        return counter

    async def get_counters(self) -> List[Counter]:
        stmt = select(Counter).order_by(Counter.id).execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalars().all()
