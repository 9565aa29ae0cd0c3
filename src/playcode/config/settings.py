# src/playcode/config/settings.py

import os
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field


def _env_flag(value: str) -> bool:
    return value.lower() in ("1", "true", "yes", "on")


@dataclass
class AppConfig:
    """Application-level settings"""
    name: str = "PlayCode Agency"
    version: str = "0.1.0"
    environment: str = "development"  # development / production / test
    app_url: str = "http://localhost:3000"
    team_email: str = "team@playcode.agency"


@dataclass
class DatabaseConfig:
    """Database settings"""
    url: str = ""
    timeout: int = 30


@dataclass
class SecurityConfig:
    """Tokens, admin access and IP policy"""
    token_secret_key: str = ""
    token_ttl_days: int = 7
    admin_approval_token: str = ""
    admin_username: str = "admin"
    admin_password: str = ""
    admin_session_hours: int = 24
    blocked_ips: List[str] = field(default_factory=list)
    allowed_origins: List[str] = field(default_factory=lambda: ["*"])


@dataclass
class EmailConfig:
    """SMTP settings"""
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_secure: bool = False
    smtp_user: str = ""
    smtp_pass: str = ""
    smtp_from: str = "noreply@playcode.agency"
    sender_name: str = "PlayCode Agency 🎮"


@dataclass
class WhatsAppConfig:
    """WhatsApp Business API settings"""
    api_url: str = ""
    api_key: str = ""


@dataclass
class CRMConfig:
    """CRM integration settings"""
    provider: str = ""
    hubspot_api_key: str = ""
    hubspot_portal_id: str = ""
    hubspot_webhook_secret: str = ""


@dataclass
class PaymentConfig:
    """PagSeguro settings"""
    pagseguro_application_key: str = ""
    pagseguro_webhook_secret: str = ""
    sandbox: bool = True
    timeout: float = 30.0


@dataclass
class LLMConfig:
    """Chatbot model settings"""
    openai_api_key: str = ""
    model: str = "gpt-3.5-turbo"
    base_url: Optional[str] = None
    timeout: float = 30.0


@dataclass
class UploadConfig:
    """Upload storage settings"""
    upload_dir: str = "uploads"
    max_file_size: int = 10 * 1024 * 1024


@dataclass
class LoggingConfig:
    """Logging settings"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class Settings:
    """Top-level settings"""
    app: AppConfig = field(default_factory=AppConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    email: EmailConfig = field(default_factory=EmailConfig)
    whatsapp: WhatsAppConfig = field(default_factory=WhatsAppConfig)
    crm: CRMConfig = field(default_factory=CRMConfig)
    payments: PaymentConfig = field(default_factory=PaymentConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    uploads: UploadConfig = field(default_factory=UploadConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def is_production(self) -> bool:
        return self.app.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.app.environment == "development"

    @classmethod
    def load_from_file(cls, config_path: Optional[str] = None) -> 'Settings':
        """Load from a YAML file; defaults when the file is missing."""
        if config_path is None:
            config_path = os.getenv("PLAYCODE_CONFIG") or "config/playcode.yaml"

        config_path = Path(config_path)

        if not config_path.exists():
            return cls()

        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}

        return cls.from_dict(config_data)

    @classmethod
    def from_dict(cls, config_data: Dict[str, Any]) -> 'Settings':
        settings = cls()
        sections = {
            'app': AppConfig,
            'database': DatabaseConfig,
            'security': SecurityConfig,
            'email': EmailConfig,
            'whatsapp': WhatsAppConfig,
            'crm': CRMConfig,
            'payments': PaymentConfig,
            'llm': LLMConfig,
            'uploads': UploadConfig,
            'logging': LoggingConfig,
        }
        for name, section_cls in sections.items():
            if name in config_data and config_data[name] is not None:
                setattr(settings, name, section_cls(**config_data[name]))
        return settings

    def load_environment_variables(self):
        """Overlay environment variables on top of file values."""
        env = os.getenv('PLAYCODE_ENV') or os.getenv('NODE_ENV')
        if env:
            self.app.environment = env
        self.app.app_url = (
            os.getenv('NEXT_PUBLIC_APP_URL') or os.getenv('APP_URL') or self.app.app_url
        ).rstrip('/')
        self.app.team_email = os.getenv('TEAM_EMAIL', self.app.team_email)

        self.database.url = os.getenv('PLAYCODE_DB_URL', self.database.url)

        self.security.token_secret_key = os.getenv('TOKEN_SECRET_KEY', self.security.token_secret_key)
        self.security.admin_approval_token = os.getenv(
            'ADMIN_APPROVAL_TOKEN', self.security.admin_approval_token
        )
        self.security.admin_username = os.getenv('PLAYCODE_ADMIN_USERNAME', self.security.admin_username)
        self.security.admin_password = os.getenv('PLAYCODE_ADMIN_PASSWORD', self.security.admin_password)
        blocked = os.getenv('PLAYCODE_BLOCKED_IPS')
        if blocked:
            self.security.blocked_ips = [ip.strip() for ip in blocked.split(',') if ip.strip()]

        self.email.smtp_host = os.getenv('SMTP_HOST', self.email.smtp_host)
        smtp_port = os.getenv('SMTP_PORT')
        if smtp_port:
            try:
                self.email.smtp_port = int(smtp_port)
            except ValueError:
                pass
        smtp_secure = os.getenv('SMTP_SECURE')
        if smtp_secure is not None:
            self.email.smtp_secure = _env_flag(smtp_secure)
        self.email.smtp_user = os.getenv('SMTP_USER', self.email.smtp_user)
        self.email.smtp_pass = os.getenv('SMTP_PASS', self.email.smtp_pass)
        self.email.smtp_from = os.getenv('SMTP_FROM', self.email.smtp_from)

        self.whatsapp.api_url = os.getenv('WHATSAPP_API_URL', self.whatsapp.api_url)
        self.whatsapp.api_key = os.getenv('WHATSAPP_API_KEY', self.whatsapp.api_key)

        self.crm.provider = os.getenv('CRM_PROVIDER', self.crm.provider)
        self.crm.hubspot_api_key = os.getenv('HUBSPOT_API_KEY', self.crm.hubspot_api_key)
        self.crm.hubspot_portal_id = os.getenv('HUBSPOT_PORTAL_ID', self.crm.hubspot_portal_id)
        self.crm.hubspot_webhook_secret = os.getenv(
            'HUBSPOT_WEBHOOK_SECRET', self.crm.hubspot_webhook_secret
        )

        self.payments.pagseguro_application_key = os.getenv(
            'PAGSEGURO_APPLICATION_KEY', self.payments.pagseguro_application_key
        )
        self.payments.pagseguro_webhook_secret = os.getenv(
            'PAGSEGURO_WEBHOOK_SECRET', self.payments.pagseguro_webhook_secret
        )
        sandbox = os.getenv('PAGSEGURO_SANDBOX')
        if sandbox is not None:
            self.payments.sandbox = _env_flag(sandbox)

        self.llm.openai_api_key = os.getenv('OPENAI_API_KEY', self.llm.openai_api_key)
        self.llm.model = os.getenv('PLAYCODE_CHATBOT_MODEL', self.llm.model)

        self.uploads.upload_dir = os.getenv('PLAYCODE_UPLOAD_DIR', self.uploads.upload_dir)

        self.logging.level = os.getenv('PLAYCODE_LOG_LEVEL', self.logging.level)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'app': self.app.__dict__,
            'database': self.database.__dict__,
            'security': self.security.__dict__,
            'email': self.email.__dict__,
            'whatsapp': self.whatsapp.__dict__,
            'crm': self.crm.__dict__,
            'payments': self.payments.__dict__,
            'llm': self.llm.__dict__,
            'uploads': self.uploads.__dict__,
            'logging': self.logging.__dict__,
        }


def create_settings(config_path: Optional[str] = None) -> Settings:
    """Load settings from file, then apply environment overrides."""
    settings = Settings.load_from_file(config_path)
    settings.load_environment_variables()
    return settings
