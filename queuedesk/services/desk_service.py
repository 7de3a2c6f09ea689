from typing import List
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import delete, func, select

from queuedesk.core.exceptions import ConflictError, InvalidTransitionError, NotFoundError
from queuedesk.core.logger import logger
from queuedesk.db.crud import guarded_update
from queuedesk.db.models import Counter, CounterKind, Desk, DeskStatus, Token
from queuedesk.schemas.desk import DeskCreate, DeskUpdate
from queuedesk.services.counter_service import CounterService

class DeskService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_desk(self, data: DeskCreate) -> Desk:
        desk_number = await CounterService(self.session).next_number(CounterKind.DESK)
        desk = Desk(
            desk_number=desk_number,
            name=data.name or f"Desk {desk_number}",
            operator_name=data.operator_name,
            status=DeskStatus.FREE,
            total_tokens_served=0,
            is_active=True,
        )
        self.session.add(desk)
        await self.session.commit()
        await self.session.refresh(desk)

        logger.info(f"{desk.name} created with operator {desk.operator_name!r}")
        return desk

    async def list_desks(self, active_only: bool = False) -> List[Desk]:
        stmt = select(Desk)
        if active_only:
            stmt = stmt.where(Desk.is_active == True)
        stmt = stmt.order_by(Desk.desk_number).execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def get_desk(self, desk_id: UUID) -> Desk:
        desk = await self.session.get(Desk, desk_id, populate_existing=True)
        if not desk:
            raise NotFoundError("Desk not found")
        return desk

    async def get_desk_by_number(self, desk_number: int) -> Desk:
        stmt = (
            select(Desk)
            .where(Desk.desk_number == desk_number)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        desk = result.scalars().first()
        if not desk:
            raise NotFoundError(f"Desk {desk_number} not found")
        return desk

    async def get_current_token(self, desk: Desk) -> Token | None:
        if desk.assigned_token_id is None:
            return None
        return await self.session.get(Token, desk.assigned_token_id, populate_existing=True)

    async def update_desk(self, desk_id: UUID, desk_update: DeskUpdate) -> Desk:
        desk = await self.get_desk(desk_id)
        update_data = desk_update.model_dump(exclude_unset=True, exclude_none=True)
        if not update_data:
            return desk

        if desk.status == DeskStatus.OCCUPIED and (
            "status" in update_data or update_data.get("is_active") is False
        ):
            raise InvalidTransitionError(
                f"{desk.name} is serving a token; complete it before changing status"
            )
        if "status" in update_data:
            update_data["status"] = DeskStatus(update_data["status"])

        desk_name = desk.name
        updated = await guarded_update(
            self.session,
            Desk,
            desk.id,
            Desk.version == desk.version,
            **update_data,
        )
        if not updated:
            await self.session.rollback()
            raise ConflictError(f"{desk_name} was changed by another request, please retry")

        await self.session.commit()
        await self.session.refresh(desk)
        logger.info(f"{desk.name} updated: {sorted(update_data)}")
        return desk

    async def _detach_history(self, *conditions) -> None:
        # Served tokens keep their row but lose the pointer to a deleted desk
        stmt = (
            update(Token)
            .where(Token.served_by_desk_id.is_not(None), *conditions)
            .values(served_by_desk_id=None)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def delete_desk(self, desk_id: UUID) -> dict:
        desk = await self.get_desk(desk_id)
        if desk.status == DeskStatus.OCCUPIED:
            raise ConflictError(f"{desk.name} is serving a token and cannot be deleted")

        desk_name = desk.name
        await self._detach_history(Token.served_by_desk_id == desk.id)
        result = await self.session.execute(
            delete(Desk)
            .where(Desk.id == desk.id, Desk.status != DeskStatus.OCCUPIED)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self.session.rollback()
            raise ConflictError(f"{desk_name} was assigned a token while being deleted")

        await self.session.commit()
        logger.info(f"{desk_name} deleted")
        return {"message": f"{desk_name} has been deleted"}

    async def reset_desks(self) -> Counter:
        """
        Delete every desk and restart desk numbering at 1.

        Refused while any desk is serving a token.
        """
        counter = await CounterService(self.session).reset(CounterKind.DESK)

        await self._detach_history()
        await self.session.execute(
            delete(Desk)
            .where(Desk.status != DeskStatus.OCCUPIED)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(select(func.count(Desk.id)))
        remaining = result.scalar() or 0
        if remaining:
            await self.session.rollback()
            raise ConflictError(f"Cannot reset desks while {remaining} desk(s) are serving tokens")

        await self.session.commit()
        await self.session.refresh(counter)

        logger.info("All desks deleted")
        return counter
