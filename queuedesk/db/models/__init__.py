from sqlmodel import SQLModel
from .token import Token, TokenStatus
from .desk import Desk, DeskStatus
from .counter import Counter, CounterKind
from .system_settings import SystemSettings, SETTINGS_ROW_ID

__all__ = [
    "SQLModel",
    "Token",
    "TokenStatus",
    "Desk",
    "DeskStatus",
    "Counter",
    "CounterKind",
    "SystemSettings",
    "SETTINGS_ROW_ID",
]
