from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class ImapConfig:
    host: str
    port: int
    username: str
    password: str
    inbox_folder: str
    processed_folder: Optional[str] = None
    error_folder: Optional[str] = None


@dataclass(frozen=True)
class SmtpConfig:
    host: str
    port: int
    username: str
    password: str
    personal_name: str = ""
    timeout_seconds: float = 30.0


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_env: str = "dev"
    app_host: str = "0.0.0.0"
    app_port: int = 8000

    database_path: str = ".data/reply_bridge.db"

    mail_address: str = "notifications@example.org"
    mail_password: str = ""
    mail_personal_name: str = "Notifications"

    smtp_host: str = ""
    smtp_port: int = 587
    smtp_timeout_seconds: float = 30.0

    imap_host: str = ""
    imap_port: int = 993
    inbox_folder: str = "INBOX"
    processed_folder: str = ""
    error_folder: str = ""
    move_after_process: bool = False

    drop_blank_lines: bool = False

    log_level: str = "INFO"
    api_retry_max_attempts: int = 3
    api_retry_base_delay_seconds: float = 1.0
    api_retry_max_delay_seconds: float = 8.0

    alert_webhook_url: str = ""

    @property
    def database_file(self) -> Path:
        return Path(self.database_path)

    def imap_config(self) -> ImapConfig:
        return ImapConfig(
            host=self.imap_host,
            port=self.imap_port,
            username=self.mail_address,
            password=self.mail_password,
            inbox_folder=self.inbox_folder,
            processed_folder=self.processed_folder or None,
            error_folder=self.error_folder or None,
        )

    def smtp_config(self) -> SmtpConfig:
        return SmtpConfig(
            host=self.smtp_host,
            port=self.smtp_port,
            username=self.mail_address,
            password=self.mail_password,
            personal_name=self.mail_personal_name,
            timeout_seconds=self.smtp_timeout_seconds,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
