from fastapi import APIRouter
from queuedesk.api.v1 import tokens, desks, assignments, system
from queuedesk.schemas.assignment import AutoAssignResponse

api_router = APIRouter()

api_router.include_router(tokens.router, prefix="/tokens", tags=["tokens"])
api_router.include_router(desks.router, prefix="/desks", tags=["desks"])
api_router.include_router(assignments.router, tags=["assignments"])
api_router.include_router(system.router, tags=["system"])

# Pre-v1 path of the auto-assign endpoint, kept for existing callers
legacy_router = APIRouter()
legacy_router.add_api_route(
    "/auto-assign",
    assignments.auto_assign,
    methods=["POST"],
    response_model=AutoAssignResponse,
    include_in_schema=False,
)
