from sqlmodel import SQLModel, Field
from datetime import datetime

SETTINGS_ROW_ID = 1

class SystemSettings(SQLModel, table=True):
    __tablename__ = "system_settings"
    id: int = Field(default=SETTINGS_ROW_ID, primary_key=True)
    auto_assign_enabled: bool = Field(default=True)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
