from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite+aiosqlite:///./jobs.db"
    log_level: str = "INFO"

    # Outbound trigger (automation webhook)
    automation_webhook_url: str = ""
    automation_api_key: str = ""
    automation_agent_id: str = ""
    dispatch_timeout_seconds: float = 10.0

    # Base URL the automation system uses to reach our callback route.
    public_base_url: str = "http://localhost:3000"
    callback_path: str = "/api/v1/callbacks/automation"

    # Comma separated; subdomains of these hosts are accepted too.
    allowed_target_hosts: str = "instagram.com"
    callback_marker: str = "="

    job_retention_days: int = 7
    purge_interval_seconds: int = 3600

    @field_validator("dispatch_timeout_seconds")
    @classmethod
    def _timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @field_validator("job_retention_days", "purge_interval_seconds")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("callback_marker")
    @classmethod
    def _single_char_marker(cls, v: str) -> str:
        if len(v) != 1:
            raise ValueError("callback_marker must be exactly one character")
        return v

    @property
    def target_hosts(self) -> tuple[str, ...]:
        return tuple(h.strip().lower() for h in self.allowed_target_hosts.split(",") if h.strip())

    @property
    def callback_url(self) -> str:
        return self.public_base_url.rstrip("/") + self.callback_path


settings = Settings()
