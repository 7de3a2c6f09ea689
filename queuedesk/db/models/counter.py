from sqlmodel import SQLModel, Field
from datetime import datetime
from enum import Enum

class CounterKind(str, Enum):
    TOKEN = "token"
    DESK = "desk"

class Counter(SQLModel, table=True):
    __tablename__ = "counters"
    id: str = Field(primary_key=True)  # a CounterKind value
    last_number: int = Field(default=0)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
