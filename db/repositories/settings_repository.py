from db.models.settings import Settings
from db.repositories.base_repository import BaseRepository
from typing import Optional
import os

SMTP_REQUIRED_KEYS = ("SMTP_HOST", "SMTP_PORT", "SMTP_USER", "SMTP_PASSWORD", "SENDER_EMAIL")


class SettingsRepository(BaseRepository):
    def get_setting(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get a setting value, preferring environment variable over database"""
        env_value = os.getenv(key)
        if env_value is not None:
            return env_value

        setting = self.db.query(Settings).filter(Settings.key == key).first()
        if setting and setting.value is not None:
            return setting.value
        return default

    def set_setting(self, key: str, value: Optional[str], is_secret: bool = False):
        """Set a setting value in database"""
        setting = self.db.query(Settings).filter(Settings.key == key).first()
        if setting:
            setting.value = value
            setting.is_secret = is_secret
        else:
            setting = Settings(key=key, value=value, is_secret=is_secret)
            self.db.add(setting)
        self.db.commit()

    def get_smtp_config(self) -> dict:
        return {
            "SMTP_HOST": self.get_setting("SMTP_HOST"),
            "SMTP_PORT": self.get_setting("SMTP_PORT"),
            "SMTP_USER": self.get_setting("SMTP_USER"),
            "SMTP_PASSWORD": self.get_setting("SMTP_PASSWORD"),
            "SENDER_EMAIL": self.get_setting("SENDER_EMAIL"),
            "SENDER_NAME": self.get_setting("SENDER_NAME", "Uptime Monitor"),
            "SMTP_USE_TLS": self.get_setting("SMTP_USE_TLS", "true"),
        }

    def is_smtp_configured(self) -> bool:
        """Check if SMTP is configured (either env vars or database)"""
        return all(self.get_setting(key) for key in SMTP_REQUIRED_KEYS)
