from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from queuedesk.db.session import get_session
from queuedesk.schemas.assignment import AutoAssignResponse, ReconcileReport
from queuedesk.services.assignment_service import AssignmentService

router = APIRouter()

async def get_assignment_service(session: AsyncSession = Depends(get_session)) -> AssignmentService:
    return AssignmentService(session)

@router.post("/auto-assign", response_model=AutoAssignResponse)
async def auto_assign(
    drain: bool = False,
    service: AssignmentService = Depends(get_assignment_service)
):
    # One assignment per call unless asked to drain the queue
    results = await service.assign_all() if drain else [await service.assign_next()]
    return AutoAssignResponse(
        assignments=[result for result in results if result.assigned],
        outcome=results[-1].outcome
    )

@router.post("/reconcile", response_model=ReconcileReport)
async def reconcile(service: AssignmentService = Depends(get_assignment_service)):
    return await service.reconcile()
