import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .hub import HUB_URL


class AppConfig(BaseModel):
    """Application configuration"""

    api_secret: str = Field(description="Bearer token for /api/* and hub.secret for push signatures")
    app_domain: str = Field(description="Public host the hub calls back (e.g. 'notify.example.com')")
    discord_webhook_url: str = Field(description="Discord webhook receiving notifications and alerts")

    hub_url: str = Field(
        default=HUB_URL,
        description="PubSubHubbub hub endpoint"
    )

    renew_interval_hours: int = Field(
        default=24,
        ge=0,
        description="Hours between subscription renewals (0 to disable the scheduler)"
    )

    request_timeout: int = Field(
        default=30,
        gt=0,
        description="Timeout in seconds for outbound HTTP calls"
    )

    web_host: str = Field(default="0.0.0.0", description="Web server bind address")
    web_port: int = Field(default=8080, description="Web server port")

    @field_validator("app_domain")
    @classmethod
    def strip_scheme(cls, value: str) -> str:
        """Accept 'https://host/' as well as 'host'"""
        for prefix in ("https://", "http://"):
            if value.startswith(prefix):
                value = value[len(prefix):]
        return value.rstrip("/")

    @property
    def callback_url(self) -> str:
        return f"https://{self.app_domain}/callback"


class ConfigManager:
    """Manages application configuration"""

    CONFIG_FILE = "config.json"
    DB_FILE = "data.db"
    LOG_DIR = "logs"

    def __init__(self, config_dir: Optional[Path] = None):
        # Default to current working directory
        self.config_dir = Path(config_dir) if config_dir else Path.cwd()
        self.config_path = self.config_dir / self.CONFIG_FILE
        self.db_path = self.config_dir / self.DB_FILE
        self.log_dir = self.config_dir / self.LOG_DIR

    def ensure_config_dir(self) -> None:
        """Ensure config directory exists"""
        self.config_dir.mkdir(parents=True, exist_ok=True)

    def load(self) -> Optional[AppConfig]:
        """Load configuration from file"""
        if not self.config_path.exists():
            return None
        with open(self.config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return AppConfig.model_validate(data)

    def save(self, config: AppConfig) -> None:
        """Save configuration to file"""
        self.ensure_config_dir()
        with open(self.config_path, "w", encoding="utf-8") as f:
            json.dump(config.model_dump(), f, indent=2, ensure_ascii=False)

    def exists(self) -> bool:
        """Check if configuration file exists"""
        return self.config_path.exists()

    def get_db_path(self) -> Path:
        """Get database file path"""
        self.ensure_config_dir()
        return self.db_path
