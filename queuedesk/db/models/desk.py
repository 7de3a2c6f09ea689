from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

class DeskStatus(str, Enum):
    FREE = "free"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"

class Desk(SQLModel, table=True):
    __tablename__ = "desks"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    desk_number: int = Field(unique=True, index=True)
    name: str
    operator_name: str
    status: DeskStatus = Field(default=DeskStatus.FREE, index=True)
    # No FK: tokens already reference desks and the cycle would need ALTER TABLE
    assigned_token_id: Optional[UUID] = Field(default=None, index=True)
    assigned_at: Optional[datetime] = None
    total_tokens_served: int = Field(default=0)
    is_active: bool = Field(default=True)
    version: int = Field(default=1)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
