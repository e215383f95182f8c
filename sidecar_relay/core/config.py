from typing import List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RelayConfig(BaseModel):
    """Immutable relay settings handed to the core by its caller"""
    model_config = ConfigDict(frozen=True)

    syslog_addr: str
    send_docker_labels: Tuple[str, ...] = ()
    report_caller: bool = False
    max_line_bytes: int = Field(64 * 1024, gt=0)


class Settings(BaseSettings):
    # Application
    app_name: str = "Sidecar Log Relay"
    app_version: str = "0.1.0"
    log_level: str = "INFO"

    # Syslog sink
    syslog_addr: str = "127.0.0.1:514"
    send_docker_labels: List[str] = Field(default_factory=list)
    report_caller: bool = False
    max_line_bytes: int = 64 * 1024

    # Docker
    docker_host: Optional[str] = None
    docker_tls_verify: bool = False
    docker_cert_path: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="RELAY_",
        env_file=".env",
        case_sensitive=False,
    )

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v):
        return v.upper()

    def relay_config(self, **overrides) -> RelayConfig:
        values = {
            "syslog_addr": self.syslog_addr,
            "send_docker_labels": tuple(self.send_docker_labels),
            "report_caller": self.report_caller,
            "max_line_bytes": self.max_line_bytes,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return RelayConfig(**values)


settings = Settings()
