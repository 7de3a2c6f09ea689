from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List

from queuedesk.schemas.token import TokenResponse, TokenSummary
from queuedesk.schemas.desk import DeskResponse, DeskSummary
from queuedesk.schemas.settings import SettingsResponse

class DeskWithToken(DeskResponse):
    current_token: Optional[TokenSummary] = None

class TokenWithDesk(TokenResponse):
    desk: Optional[DeskSummary] = None

class DisplayStats(BaseModel):
    total_desks: int
    free_desks: int
    occupied_desks: int
    waiting_tokens: int
    assigned_tokens: int

class DisplayResponse(BaseModel):
    desks: List[DeskWithToken]
    waiting_tokens: List[TokenResponse]
    assigned_tokens: List[TokenWithDesk]
    settings: SettingsResponse
    stats: DisplayStats
    refresh_interval_seconds: int
    generated_at: datetime

class FeesResponse(BaseModel):
    awaiting_payment: List[TokenWithDesk]
    paid_today: List[TokenWithDesk]
    paid_today_count: int
    refresh_interval_seconds: int
    generated_at: datetime

class CounterResponse(BaseModel):
    id: str
    last_number: int
    updated_at: datetime

    class Config:
        from_attributes = True
