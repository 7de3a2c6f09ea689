from datetime import datetime
from typing import Dict, List
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from queuedesk.core.config import settings
from queuedesk.core.utils import day_window
from queuedesk.db.models import Desk, DeskStatus, Token, TokenStatus
from queuedesk.schemas.desk import DeskResponse, DeskSummary
from queuedesk.schemas.display import (
    DeskWithToken,
    DisplayResponse,
    DisplayStats,
    FeesResponse,
    TokenWithDesk,
)
from queuedesk.schemas.settings import SettingsResponse
from queuedesk.schemas.token import TokenResponse, TokenSummary
from queuedesk.services.settings_service import SettingsService

class DisplayService:
    """Read-only snapshots for the polling screens."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _desks_by_id(self) -> Dict[UUID, Desk]:
        stmt = select(Desk).order_by(Desk.desk_number).execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return {desk.id: desk for desk in result.scalars().all()}

    async def _tokens(self, *conditions, order_by) -> List[Token]:
        stmt = (
            select(Token)
            .where(*conditions)
            .order_by(*order_by)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    @staticmethod
    def _with_desk(token: Token, desk_id: UUID | None, desks: Dict[UUID, Desk]) -> TokenWithDesk:
        desk = desks.get(desk_id) if desk_id else None
        return TokenWithDesk(
            **TokenResponse.model_validate(token).model_dump(),
            desk=DeskSummary.model_validate(desk) if desk else None,
        )

    async def get_display(self) -> DisplayResponse:
        desks = await self._desks_by_id()
        active = await self._tokens(
            Token.status.in_([TokenStatus.WAITING, TokenStatus.ASSIGNED]),
            order_by=(Token.created_at, Token.token_number),
        )
        waiting = [token for token in active if token.status == TokenStatus.WAITING]
        assigned = [token for token in active if token.status == TokenStatus.ASSIGNED]
        tokens_by_id = {token.id: token for token in assigned}

        desk_views = []
        for desk in desks.values():
            if not desk.is_active:
                continue
            current = tokens_by_id.get(desk.assigned_token_id)
            desk_views.append(DeskWithToken(
                **DeskResponse.model_validate(desk).model_dump(),
                current_token=TokenSummary.model_validate(current) if current else None,
            ))

        system_settings = await SettingsService(self.session).get_settings()

        return DisplayResponse(
            desks=desk_views,
            waiting_tokens=[TokenResponse.model_validate(token) for token in waiting],
            assigned_tokens=[
                self._with_desk(token, token.assigned_desk_id, desks) for token in assigned
            ],
            settings=SettingsResponse.model_validate(system_settings),
            stats=DisplayStats(
                total_desks=len(desk_views),
                free_desks=sum(1 for desk in desk_views if desk.status == DeskStatus.FREE),
                occupied_desks=sum(1 for desk in desk_views if desk.status == DeskStatus.OCCUPIED),
                waiting_tokens=len(waiting),
                assigned_tokens=len(assigned),
            ),
            refresh_interval_seconds=settings.DISPLAY_REFRESH_SECONDS,
            generated_at=datetime.utcnow(),
        )

    async def get_fees(self) -> FeesResponse:
        desks = await self._desks_by_id()
        now = datetime.utcnow()
        day_start, day_end = day_window(now)

        awaiting = await self._tokens(
            Token.status == TokenStatus.COMPLETED,
            order_by=(Token.completed_at, Token.token_number),
        )
        paid = await self._tokens(
            Token.status == TokenStatus.PAID,
            Token.paid_at >= day_start,
            Token.paid_at < day_end,
            order_by=(Token.paid_at, Token.token_number),
        )

        return FeesResponse(
            awaiting_payment=[
                self._with_desk(token, token.served_by_desk_id, desks) for token in awaiting
            ],
            paid_today=[self._with_desk(token, token.served_by_desk_id, desks) for token in paid],
            paid_today_count=len(paid),
            refresh_interval_seconds=settings.DISPLAY_REFRESH_SECONDS,
            generated_at=now,
        )
