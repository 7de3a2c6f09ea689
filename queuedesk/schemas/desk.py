from pydantic import BaseModel, Field, field_validator
from uuid import UUID
from datetime import datetime
from typing import Optional, Literal

from queuedesk.db.models import DeskStatus
from queuedesk.schemas.token import TokenSummary

class DeskCreate(BaseModel):
    operator_name: str = Field(min_length=1, max_length=100)
    # Defaults to "Desk <number>"
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)

    @field_validator("operator_name", "name", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

class DeskUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    operator_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    is_active: Optional[bool] = None
    # Occupancy is driven by assignment, only these two can be set by hand
    status: Optional[Literal["free", "maintenance"]] = None

    @field_validator("operator_name", "name", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

class DeskResponse(BaseModel):
    id: UUID
    desk_number: int
    name: str
    operator_name: str
    status: DeskStatus
    assigned_token_id: Optional[UUID] = None
    assigned_at: Optional[datetime] = None
    total_tokens_served: int
    is_active: bool
    version: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class DeskSummary(BaseModel):
    id: UUID
    desk_number: int
    name: str
    operator_name: str

    class Config:
        from_attributes = True

class DeskPageResponse(BaseModel):
    desk: DeskResponse
    current_token: Optional[TokenSummary] = None
    refresh_interval_seconds: int
