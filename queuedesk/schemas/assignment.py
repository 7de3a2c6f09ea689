from pydantic import BaseModel
from enum import Enum
from typing import Optional, List
from uuid import UUID

from queuedesk.schemas.token import TokenResponse
from queuedesk.schemas.desk import DeskResponse

class AssignmentOutcome(str, Enum):
    ASSIGNED = "assigned"
    NO_WAITING_TOKEN = "no_waiting_token"
    NO_FREE_DESK = "no_free_desk"
    # Another pass claimed the desk or token between read and write
    CONFLICT = "conflict"

class AssignmentResult(BaseModel):
    assigned: bool
    outcome: AssignmentOutcome
    token: Optional[TokenResponse] = None
    desk: Optional[DeskResponse] = None

class AutoAssignResponse(BaseModel):
    assignments: List[AssignmentResult]
    outcome: AssignmentOutcome

class ReconcileReport(BaseModel):
    freed_desks: List[UUID] = []
    cleared_desks: List[UUID] = []
    requeued_tokens: List[UUID] = []
    skipped: int = 0

    @property
    def repaired(self) -> int:
        return len(self.freed_desks) + len(self.cleared_desks) + len(self.requeued_tokens)
