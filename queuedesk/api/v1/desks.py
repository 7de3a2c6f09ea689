from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID

from queuedesk.core.config import settings
from queuedesk.db.session import get_session
from queuedesk.schemas.desk import DeskCreate, DeskUpdate, DeskResponse, DeskPageResponse
from queuedesk.schemas.display import CounterResponse
from queuedesk.schemas.token import TokenResponse, TokenSummary
from queuedesk.services.desk_service import DeskService
from queuedesk.services.assignment_service import AssignmentService

router = APIRouter()

async def get_desk_service(session: AsyncSession = Depends(get_session)) -> DeskService:
    return DeskService(session)

@router.post("/", response_model=DeskResponse)
async def create_desk(
    request: DeskCreate,
    service: DeskService = Depends(get_desk_service)
):
    return await service.create_desk(request)

@router.get("/", response_model=List[DeskResponse])
async def read_desks(
    active_only: bool = False,
    service: DeskService = Depends(get_desk_service)
):
    return await service.list_desks(active_only)

@router.post("/reset", response_model=CounterResponse)
async def reset_desks(service: DeskService = Depends(get_desk_service)):
    return await service.reset_desks()

@router.get("/number/{desk_number}", response_model=DeskPageResponse)
async def read_desk_page(
    desk_number: int,
    service: DeskService = Depends(get_desk_service)
):
    desk = await service.get_desk_by_number(desk_number)
    current_token = await service.get_current_token(desk)
    return DeskPageResponse(
        desk=DeskResponse.model_validate(desk),
        current_token=TokenSummary.model_validate(current_token) if current_token else None,
        refresh_interval_seconds=settings.DISPLAY_REFRESH_SECONDS
    )

@router.post("/number/{desk_number}/complete", response_model=TokenResponse)
async def complete_desk_token(
    desk_number: int,
    session: AsyncSession = Depends(get_session)
):
    service = AssignmentService(session)
    return await service.complete_for_desk(desk_number)

@router.get("/{desk_id}", response_model=DeskResponse)
async def read_desk(
    desk_id: UUID,
    service: DeskService = Depends(get_desk_service)
):
    return await service.get_desk(desk_id)

@router.patch("/{desk_id}", response_model=DeskResponse)
async def update_desk(
    desk_id: UUID,
    desk_update: DeskUpdate,
    service: DeskService = Depends(get_desk_service)
):
    return await service.update_desk(desk_id, desk_update)

@router.delete("/{desk_id}")
async def delete_desk(
    desk_id: UUID,
    service: DeskService = Depends(get_desk_service)
):
    return await service.delete_desk(desk_id)
