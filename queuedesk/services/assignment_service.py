"""
Token/desk state machine.

A token and its desk always change together: each transition below runs
both conditional updates in one transaction and rolls back if either row
no longer looks the way it did when it was read. That makes concurrent
assignment passes, completions from several screens and crashes between
the two writes safe without any locking outside the database.
"""
from datetime import datetime
from typing import List
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from queuedesk.core.exceptions import ConflictError, InvalidTransitionError, NotFoundError
from queuedesk.core.logger import logger
from queuedesk.db.crud import guarded_update
from queuedesk.db.models import Desk, DeskStatus, Token, TokenStatus
from queuedesk.schemas.assignment import AssignmentOutcome, AssignmentResult, ReconcileReport
from queuedesk.schemas.desk import DeskResponse
from queuedesk.schemas.token import TokenResponse
from queuedesk.services.desk_service import DeskService

class AssignmentService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def oldest_waiting_token(self) -> Token | None:
        stmt = (
            select(Token)
            .where(Token.status == TokenStatus.WAITING)
            .order_by(Token.created_at, Token.token_number)
            .limit(1)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def first_free_desk(self) -> Desk | None:
        stmt = (
            select(Desk)
            .where(Desk.status == DeskStatus.FREE, Desk.is_active == True)
            .order_by(Desk.desk_number)
            .limit(1)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def assign_next(self) -> AssignmentResult:
        """Hand the oldest waiting token to the first free, active desk."""
        token = await self.oldest_waiting_token()
        if token is None:
            return AssignmentResult(assigned=False, outcome=AssignmentOutcome.NO_WAITING_TOKEN)

        desk = await self.first_free_desk()
        if desk is None:
            return AssignmentResult(assigned=False, outcome=AssignmentOutcome.NO_FREE_DESK)

        return await self.claim(token, desk)

    async def claim(self, token: Token, desk: Desk) -> AssignmentResult:
        """
        Pair ``token`` with ``desk`` if both are still as they were read.

        Either both rows change or neither does. A pass that lost the race
        gets a CONFLICT outcome and leaves the store untouched.
        """
        token_id, token_number, token_version = token.id, token.token_number, token.version
        desk_id, desk_name, desk_version = desk.id, desk.name, desk.version
        now = datetime.utcnow()

        desk_claimed = await guarded_update(
            self.session,
            Desk,
            desk_id,
            Desk.status == DeskStatus.FREE,
            Desk.is_active == True,
            Desk.version == desk_version,
            status=DeskStatus.OCCUPIED,
            assigned_token_id=token_id,
            assigned_at=now,
        )
        token_claimed = desk_claimed and await guarded_update(
            self.session,
            Token,
            token_id,
            Token.status == TokenStatus.WAITING,
            Token.version == token_version,
            status=TokenStatus.ASSIGNED,
            assigned_desk_id=desk_id,
            assigned_at=now,
        )
        if not token_claimed:
            await self.session.rollback()
            logger.info(f"Assignment of token #{token_number} to {desk_name} lost a race, skipping")
            return AssignmentResult(assigned=False, outcome=AssignmentOutcome.CONFLICT)

        await self.session.commit()
        await self.session.refresh(token)
        await self.session.refresh(desk)

        logger.info(f"Token #{token_number} ({token.name}) assigned to {desk_name}")
        return AssignmentResult(
            assigned=True,
            outcome=AssignmentOutcome.ASSIGNED,
            token=TokenResponse.model_validate(token),
            desk=DeskResponse.model_validate(desk),
        )

    async def assign_all(self) -> List[AssignmentResult]:
        """
        Keep assigning until a pass stops making progress.

        The last element is the pass that stopped, so callers can tell why
        the queue was not drained.
        """
        results = []
        while True:
            result = await self.assign_next()
            results.append(result)
            if not result.assigned:
                return results

    async def complete_token(self, token_id: UUID) -> Token:
        """
        Finish serving a token and free its desk.

        The desk keeps its served count; the token keeps the desk that served
        it in ``served_by_desk_id``.
        """
        token = await self.session.get(Token, token_id, populate_existing=True)
        if not token:
            raise NotFoundError("Token not found")
        if token.status != TokenStatus.ASSIGNED:
            raise InvalidTransitionError(
                f"Token #{token.token_number} is {token.status.value}, only assigned tokens can be completed"
            )

        token_number, token_version, desk_id = token.token_number, token.version, token.assigned_desk_id
        now = datetime.utcnow()

        desk_freed = await guarded_update(
            self.session,
            Desk,
            desk_id,
            Desk.status == DeskStatus.OCCUPIED,
            Desk.assigned_token_id == token_id,
            status=DeskStatus.FREE,
            assigned_token_id=None,
            assigned_at=None,
            total_tokens_served=Desk.total_tokens_served + 1,
        )
        if not desk_freed:
            await self.session.rollback()
            raise ConflictError(
                f"Desk for token #{token_number} no longer holds it; run reconciliation"
            )

        token_completed = await guarded_update(
            self.session,
            Token,
            token_id,
            Token.status == TokenStatus.ASSIGNED,
            Token.version == token_version,
            status=TokenStatus.COMPLETED,
            assigned_desk_id=None,
            served_by_desk_id=desk_id,
            completed_at=now,
        )
        if not token_completed:
            await self.session.rollback()
            raise ConflictError(f"Token #{token_number} was changed by another request, please retry")

        await self.session.commit()
        await self.session.refresh(token)

        logger.info(f"Token #{token_number} completed, desk {desk_id} freed")
        return token

    async def complete_for_desk(self, desk_number: int) -> Token:
        desk = await DeskService(self.session).get_desk_by_number(desk_number)
        if desk.assigned_token_id is None:
            raise InvalidTransitionError(f"{desk.name} has no token to complete")
        return await self.complete_token(desk.assigned_token_id)

    async def reconcile(self) -> ReconcileReport:
        """
        Repair token/desk pairs that do not point at each other.

        Normal operation never produces these; they come from rows written
        before transitions were atomic, or edited by hand. Occupied desks
        whose token does not point back are freed, stray pointers on free
        desks are cleared, then assigned tokens without a matching desk go
        back to ``waiting`` keeping their place in line.
        """
        report = ReconcileReport()

        result = await self.session.execute(
            select(Desk).execution_options(populate_existing=True)
        )
        desks = {desk.id: desk for desk in result.scalars().all()}
        result = await self.session.execute(
            select(Token)
            .where(Token.status == TokenStatus.ASSIGNED)
            .execution_options(populate_existing=True)
        )
        assigned_tokens = {token.id: token for token in result.scalars().all()}

        released = set()
        for desk in desks.values():
            if desk.status == DeskStatus.OCCUPIED:
                token = assigned_tokens.get(desk.assigned_token_id)
                if token is not None and token.assigned_desk_id == desk.id:
                    continue
                target = report.freed_desks
            elif desk.assigned_token_id is not None or desk.assigned_at is not None:
                target = report.cleared_desks
            else:
                continue

            values = dict(assigned_token_id=None, assigned_at=None)
            if desk.status == DeskStatus.OCCUPIED:
                values["status"] = DeskStatus.FREE
            if await guarded_update(self.session, Desk, desk.id, Desk.version == desk.version, **values):
                target.append(desk.id)
                released.add(desk.id)
            else:
                report.skipped += 1

        for token in assigned_tokens.values():
            desk = desks.get(token.assigned_desk_id)
            paired = (
                desk is not None
                and desk.id not in released
                and desk.status == DeskStatus.OCCUPIED
                and desk.assigned_token_id == token.id
            )
            if paired:
                continue
            requeued = await guarded_update(
                self.session,
                Token,
                token.id,
                Token.status == TokenStatus.ASSIGNED,
                Token.version == token.version,
                status=TokenStatus.WAITING,
                assigned_desk_id=None,
                assigned_at=None,
            )
            if requeued:
                report.requeued_tokens.append(token.id)
            else:
                report.skipped += 1

        await self.session.commit()

        if report.repaired or report.skipped:
            logger.info(
                f"Reconciliation freed {len(report.freed_desks)} desk(s), "
                f"cleared {len(report.cleared_desks)}, requeued {len(report.requeued_tokens)} token(s), "
                f"skipped {report.skipped}"
            )
        return report
