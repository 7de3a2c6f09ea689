from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from queuedesk.core.logger import logger
from queuedesk.db.models import SystemSettings, SETTINGS_ROW_ID
from queuedesk.schemas.settings import SettingsUpdate

class SettingsService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_settings(self) -> SystemSettings:
        system_settings = await self.session.get(SystemSettings, SETTINGS_ROW_ID, populate_existing=True)
        if not system_settings:
            system_settings = SystemSettings(id=SETTINGS_ROW_ID)
            self.session.add(system_settings)
            await self.session.commit()
            await self.session.refresh(system_settings)
        return system_settings

    async def update_settings(self, settings_update: SettingsUpdate) -> SystemSettings:
        system_settings = await self.get_settings()
        system_settings.auto_assign_enabled = settings_update.auto_assign_enabled
        system_settings.updated_at = datetime.utcnow()
        self.session.add(system_settings)
        await self.session.commit()
        await self.session.refresh(system_settings)

        state = "enabled" if system_settings.auto_assign_enabled else "disabled"
        logger.info(f"Auto-assignment {state}")
        return system_settings
