"""Pydantic schema for configuration validation."""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..core.constants import DownloadDefaults, ScriptDefaults, SelectionDefaults


class DownloadsConfig(BaseModel):
    """Schema for download settings."""

    cors_proxy: str = Field(
        default=DownloadDefaults.CORS_PROXY,
        description="Prefix prepended to every URL when the CORS proxy is on",
    )
    timeout: float = Field(default=DownloadDefaults.TIMEOUT, gt=0)
    max_retries: int = Field(
        default=DownloadDefaults.MAX_RETRIES,
        ge=1,
        le=20,
        description="Attempts per URL before a file is skipped",
    )
    backoff_base_delay: float = Field(default=DownloadDefaults.BACKOFF_BASE_DELAY, ge=0)
    backoff_max_delay: float = Field(default=DownloadDefaults.BACKOFF_MAX_DELAY, ge=0)
    mirror_fallback: bool = Field(
        default=False, description="Try the remaining download URLs of a file"
    )
    user_agent: str = Field(default=DownloadDefaults.USER_AGENT, min_length=1)
    chunk_size: int = Field(default=DownloadDefaults.CHUNK_SIZE, ge=1024)
    spool_memory_bytes: int = Field(default=DownloadDefaults.SPOOL_MEMORY_BYTES, ge=0)

    @field_validator("cors_proxy")
    @classmethod
    def validate_cors_proxy(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"cors_proxy must be an http(s) URL prefix, got '{v}'")
        return v

    @model_validator(mode="after")
    def validate_backoff(self) -> "DownloadsConfig":
        if self.backoff_max_delay < self.backoff_base_delay:
            raise ValueError("backoff_max_delay must not be below backoff_base_delay")
        return self


class ScriptsConfig(BaseModel):
    """Schema for startup script defaults."""

    min_ram: int = Field(default=ScriptDefaults.MIN_RAM, ge=1)
    max_ram: int = Field(default=ScriptDefaults.MAX_RAM, ge=1)
    java_flags: str = Field(default=ScriptDefaults.JAVA_FLAGS)
    server_jar_name: str = Field(default=ScriptDefaults.SERVER_JAR, min_length=1)


class SelectionConfig(BaseModel):
    """Schema for server-mode selection heuristics."""

    client_only_keywords: List[str] = Field(
        default_factory=lambda: list(SelectionDefaults.CLIENT_ONLY_KEYWORDS)
    )


class LoggingConfig(BaseModel):
    """Schema for logging settings."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    event_log_dir: Optional[str] = Field(
        default=None, description="Write per-job JSONL event logs here"
    )

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v):
        return v.upper() if isinstance(v, str) else v


class MrzipConfig(BaseModel):
    """Complete configuration schema."""

    downloads: DownloadsConfig = Field(default_factory=DownloadsConfig)
    scripts: ScriptsConfig = Field(default_factory=ScriptsConfig)
    selection: SelectionConfig = Field(default_factory=SelectionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"extra": "forbid"}
