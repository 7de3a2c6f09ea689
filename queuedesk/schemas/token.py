from pydantic import BaseModel, Field, field_validator
from uuid import UUID
from datetime import datetime
from typing import Optional

from queuedesk.db.models import TokenStatus

class TokenCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value

class TokenResponse(BaseModel):
    id: UUID
    token_number: int
    name: str
    status: TokenStatus
    assigned_desk_id: Optional[UUID] = None
    assigned_at: Optional[datetime] = None
    served_by_desk_id: Optional[UUID] = None
    completed_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    version: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class TokenSummary(BaseModel):
    id: UUID
    token_number: int
    name: str
    status: TokenStatus

    class Config:
        from_attributes = True
