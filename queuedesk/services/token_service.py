from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import delete, func, select

from queuedesk.core.exceptions import ConflictError, InvalidTransitionError, NotFoundError
from queuedesk.core.logger import logger
from queuedesk.db.crud import guarded_update
from queuedesk.db.models import Counter, CounterKind, Token, TokenStatus
from queuedesk.schemas.token import TokenCreate
from queuedesk.services.counter_service import CounterService

ACTIVE_STATES = [TokenStatus.WAITING, TokenStatus.ASSIGNED, TokenStatus.COMPLETED]
TERMINAL_STATES = [TokenStatus.PAID, TokenStatus.CANCELLED]

class TokenService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_token(self, data: TokenCreate) -> Token:
        # Number and row land in the same transaction
        token_number = await CounterService(self.session).next_number(CounterKind.TOKEN)
        token = Token(token_number=token_number, name=data.name)
        self.session.add(token)
        await self.session.commit()
        await self.session.refresh(token)

        logger.info(f"Token #{token.token_number} created for {token.name!r}")
        return token

    async def list_tokens(self, status: Optional[TokenStatus] = None) -> List[Token]:
        stmt = select(Token)
        if status:
            stmt = stmt.where(Token.status == status)
        stmt = stmt.order_by(Token.token_number).execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def get_token(self, token_id: UUID) -> Token:
        token = await self.session.get(Token, token_id, populate_existing=True)
        if not token:
            raise NotFoundError("Token not found")
        return token

    async def _transition(
        self,
        token: Token,
        source: TokenStatus,
        target: TokenStatus,
        **values,
    ) -> Token:
        token_number = token.token_number
        updated = await guarded_update(
            self.session,
            Token,
            token.id,
            Token.status == source,
            Token.version == token.version,
            status=target,
            **values,
        )
        if not updated:
            await self.session.rollback()
            raise ConflictError(f"Token #{token_number} was changed by another request, please retry")

        await self.session.commit()
        await self.session.refresh(token)
        return token

    async def mark_paid(self, token_id: UUID) -> Token:
        """
        Move a completed token to ``paid``.

        Paid tokens are kept for the daily summary. Paying twice returns the
        token unchanged; desks are never touched here because the served
        count was already bumped at completion.
        """
        token = await self.get_token(token_id)
        if token.status == TokenStatus.PAID:
            return token
        if token.status != TokenStatus.COMPLETED:
            raise InvalidTransitionError(
                f"Token #{token.token_number} is {token.status.value}, only completed tokens can be paid"
            )

        token = await self._transition(
            token, TokenStatus.COMPLETED, TokenStatus.PAID, paid_at=datetime.utcnow()
        )
        logger.info(f"Token #{token.token_number} paid")
        return token

    async def cancel_token(self, token_id: UUID) -> Token:
        token = await self.get_token(token_id)
        if token.status == TokenStatus.CANCELLED:
            return token
        if token.status != TokenStatus.WAITING:
            raise InvalidTransitionError(
                f"Token #{token.token_number} is {token.status.value}, only waiting tokens can be cancelled"
            )

        token = await self._transition(token, TokenStatus.WAITING, TokenStatus.CANCELLED)
        logger.info(f"Token #{token.token_number} cancelled")
        return token

    async def reset_counter(self) -> Counter:
        """
        Restart token numbering at 1.

        Refused while any token is still in the queue or awaiting payment.
        All paid and cancelled tokens are deleted, today's payments
        included, so old numbers cannot collide with new ones; the fees
        screen's paid-today list starts over empty.
        """
        counter = await CounterService(self.session).reset(CounterKind.TOKEN)

        stmt = select(func.count(Token.id)).where(Token.status.in_(ACTIVE_STATES))
        result = await self.session.execute(stmt)
        active = result.scalar() or 0
        if active:
            await self.session.rollback()
            raise ConflictError(f"Cannot reset the token counter while {active} token(s) are still active")

        await self.session.execute(delete(Token).where(Token.status.in_(TERMINAL_STATES)))
        await self.session.commit()
        await self.session.refresh(counter)
        return counter
