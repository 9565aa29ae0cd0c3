"""
Pydantic-validated settings loading.

SettingsModel ignores unknown keys and converts into the dataclass Settings.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
import yaml

from .settings import (
    AppConfig,
    DatabaseConfig,
    SecurityConfig,
    EmailConfig,
    WhatsAppConfig,
    CRMConfig,
    PaymentConfig,
    LLMConfig,
    UploadConfig,
    LoggingConfig,
    Settings,
)


class AppConfigModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = "PlayCode Agency"
    version: str = "0.1.0"
    environment: str = Field(default="development", pattern="^(development|production|test)$")
    app_url: str = "http://localhost:3000"
    team_email: str = "team@playcode.agency"


class DatabaseConfigModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str = ""
    timeout: int = 30


class SecurityConfigModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    token_secret_key: str = ""
    token_ttl_days: int = Field(default=7, ge=1)
    admin_approval_token: str = ""
    admin_username: str = "admin"
    admin_password: str = ""
    admin_session_hours: int = Field(default=24, ge=1)
    blocked_ips: list[str] = Field(default_factory=list)
    allowed_origins: list[str] = Field(default_factory=lambda: ["*"])


class EmailConfigModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    smtp_host: str = ""
    smtp_port: int = 587
    smtp_secure: bool = False
    smtp_user: str = ""
    smtp_pass: str = ""
    smtp_from: str = "noreply@playcode.agency"
    sender_name: str = "PlayCode Agency 🎮"


class WhatsAppConfigModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    api_url: str = ""
    api_key: str = ""


class CRMConfigModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    provider: str = ""
    hubspot_api_key: str = ""
    hubspot_portal_id: str = ""
    hubspot_webhook_secret: str = ""


class PaymentConfigModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    pagseguro_application_key: str = ""
    pagseguro_webhook_secret: str = ""
    sandbox: bool = True
    timeout: float = 30.0


class LLMConfigModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    openai_api_key: str = ""
    model: str = "gpt-3.5-turbo"
    base_url: Optional[str] = None
    timeout: float = 30.0


class UploadConfigModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    upload_dir: str = "uploads"
    max_file_size: int = Field(default=10 * 1024 * 1024, gt=0)


class LoggingConfigModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class SettingsModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    app: AppConfigModel = Field(default_factory=AppConfigModel)
    database: DatabaseConfigModel = Field(default_factory=DatabaseConfigModel)
    security: SecurityConfigModel = Field(default_factory=SecurityConfigModel)
    email: EmailConfigModel = Field(default_factory=EmailConfigModel)
    whatsapp: WhatsAppConfigModel = Field(default_factory=WhatsAppConfigModel)
    crm: CRMConfigModel = Field(default_factory=CRMConfigModel)
    payments: PaymentConfigModel = Field(default_factory=PaymentConfigModel)
    llm: LLMConfigModel = Field(default_factory=LLMConfigModel)
    uploads: UploadConfigModel = Field(default_factory=UploadConfigModel)
    logging: LoggingConfigModel = Field(default_factory=LoggingConfigModel)

    def to_dataclass(self) -> Settings:
        return Settings(
            app=AppConfig(**self.app.model_dump()),
            database=DatabaseConfig(**self.database.model_dump()),
            security=SecurityConfig(**self.security.model_dump()),
            email=EmailConfig(**self.email.model_dump()),
            whatsapp=WhatsAppConfig(**self.whatsapp.model_dump()),
            crm=CRMConfig(**self.crm.model_dump()),
            payments=PaymentConfig(**self.payments.model_dump()),
            llm=LLMConfig(**self.llm.model_dump()),
            uploads=UploadConfig(**self.uploads.model_dump()),
            logging=LoggingConfig(**self.logging.model_dump()),
        )


def load_validated_settings(config_path: Optional[str] = None, *, with_env: bool = True) -> Settings:
    """Validate the YAML file (if any), then overlay environment variables."""
    path = config_path or os.getenv("PLAYCODE_CONFIG") or "config/playcode.yaml"
    cfg_file = Path(path)
    data = {}
    if cfg_file.exists():
        data = yaml.safe_load(cfg_file.read_text(encoding="utf-8")) or {}
    model = SettingsModel(**data)
    settings = model.to_dataclass()
    if with_env:
        settings.load_environment_variables()
    return settings
