from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from queuedesk.db.session import get_session
from queuedesk.schemas.display import CounterResponse, DisplayResponse, FeesResponse
from queuedesk.schemas.settings import SettingsResponse, SettingsUpdate
from queuedesk.services.counter_service import CounterService
from queuedesk.services.display_service import DisplayService
from queuedesk.services.settings_service import SettingsService

router = APIRouter()

@router.get("/settings", response_model=SettingsResponse)
async def read_settings(session: AsyncSession = Depends(get_session)):
    service = SettingsService(session)
    return await service.get_settings()

@router.patch("/settings", response_model=SettingsResponse)
async def update_settings(
    settings_update: SettingsUpdate,
    session: AsyncSession = Depends(get_session)
):
    service = SettingsService(session)
    return await service.update_settings(settings_update)

@router.get("/counters", response_model=List[CounterResponse])
async def read_counters(session: AsyncSession = Depends(get_session)):
    service = CounterService(session)
    return await service.get_counters()

@router.get("/display", response_model=DisplayResponse)
async def read_display(session: AsyncSession = Depends(get_session)):
    service = DisplayService(session)
    return await service.get_display()

@router.get("/fees", response_model=FeesResponse)
async def read_fees(session: AsyncSession = Depends(get_session)):
    service = DisplayService(session)
    return await service.get_fees()
