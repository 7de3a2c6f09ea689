from pydantic import BaseModel
from datetime import datetime

class SettingsResponse(BaseModel):
    auto_assign_enabled: bool
    updated_at: datetime

    class Config:
        from_attributes = True

class SettingsUpdate(BaseModel):
    auto_assign_enabled: bool
