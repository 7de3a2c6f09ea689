from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from uuid import UUID

from queuedesk.db.session import get_session
from queuedesk.db.models import TokenStatus
from queuedesk.schemas.token import TokenCreate, TokenResponse
from queuedesk.schemas.display import CounterResponse
from queuedesk.services.token_service import TokenService
from queuedesk.services.assignment_service import AssignmentService

router = APIRouter()

async def get_token_service(session: AsyncSession = Depends(get_session)) -> TokenService:
    return TokenService(session)

@router.post("/", response_model=TokenResponse)
async def create_token(
    request: TokenCreate,
    service: TokenService = Depends(get_token_service)
):
    return await service.create_token(request)

@router.get("/", response_model=List[TokenResponse])
async def read_tokens(
    status: Optional[TokenStatus] = None,
    service: TokenService = Depends(get_token_service)
):
    return await service.list_tokens(status)

@router.post("/reset-counter", response_model=CounterResponse)
async def reset_token_counter(service: TokenService = Depends(get_token_service)):
    return await service.reset_counter()

@router.get("/{token_id}", response_model=TokenResponse)
async def read_token(
    token_id: UUID,
    service: TokenService = Depends(get_token_service)
):
    return await service.get_token(token_id)

@router.post("/{token_id}/complete", response_model=TokenResponse)
async def complete_token(
    token_id: UUID,
    session: AsyncSession = Depends(get_session)
):
    service = AssignmentService(session)
    return await service.complete_token(token_id)

@router.post("/{token_id}/pay", response_model=TokenResponse)
async def pay_token(
    token_id: UUID,
    service: TokenService = Depends(get_token_service)
):
    return await service.mark_paid(token_id)

@router.post("/{token_id}/cancel", response_model=TokenResponse)
async def cancel_token(
    token_id: UUID,
    service: TokenService = Depends(get_token_service)
):
    return await service.cancel_token(token_id)
