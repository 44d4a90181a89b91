"""
Referral setting repository.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.models.referral_setting import ReferralSetting
from wallet_ledger.repositories.base import BaseRepository


class ReferralSettingRepository(BaseRepository[ReferralSetting]):
    """Referral setting repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral setting repository."""
        super().__init__(ReferralSetting, session)

    async def get_all_as_dict(self) -> dict[str, str]:
        """All settings as ``{setting_key: setting_value}``."""
        stmt = select(ReferralSetting.setting_key, ReferralSetting.setting_value)
        result = await self.session.execute(stmt)
        return {row[0]: row[1] for row in result.all()}

    async def set_value(
        self,
        key: str,
        value: str,
        setting_type: str = "string",
        description: str | None = None,
    ) -> ReferralSetting:
        """
        Insert or update one setting.

        Args:
            key: Setting key
            value: Raw string value
            setting_type: boolean, number or string
            description: Optional admin-facing description

        Returns:
            Stored setting
        """
        setting = await self.get_by(setting_key=key)
        if setting is None:
            return await self.create(
                setting_key=key,
                setting_value=value,
                setting_type=setting_type,
                description=description,
            )

        setting.setting_value = value
        setting.setting_type = setting_type
        if description is not None:
            setting.description = description
        await self.session.flush()
        return setting
