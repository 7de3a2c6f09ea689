from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

class TokenStatus(str, Enum):
    WAITING = "waiting"
    ASSIGNED = "assigned"
    COMPLETED = "completed"
    PAID = "paid"
    CANCELLED = "cancelled"

class Token(SQLModel, table=True):
    __tablename__ = "tokens"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    token_number: int = Field(unique=True, index=True)
    name: str
    status: TokenStatus = Field(default=TokenStatus.WAITING, index=True)
    assigned_desk_id: Optional[UUID] = Field(default=None, foreign_key="desks.id")
    assigned_at: Optional[datetime] = None
    # Desk that served the token, kept after the assignment is released
    served_by_desk_id: Optional[UUID] = Field(default=None, foreign_key="desks.id")
    completed_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    version: int = Field(default=1)
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
