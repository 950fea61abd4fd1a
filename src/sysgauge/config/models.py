"""Pydantic models for sysgauge settings."""

from pydantic import BaseModel, Field


class SamplingSettings(BaseModel):
    """Background sampler timing."""

    cpu_interval_ms: int = Field(default=1000, ge=1)
    network_interval_ms: int = Field(default=1000, ge=1)
    warmup_delay_ms: int = Field(default=50, ge=0)


class CommandSettings(BaseModel):
    """External tool invocation."""

    timeout_s: float | None = Field(default=None, gt=0)  # None = wait forever


class DriveSettings(BaseModel):
    """Filesystem types hidden from drive listings by default."""

    virtual_types: list[str] = Field(
        default_factory=lambda: ["devtmpfs", "tmpfs", "overlay", "devfs", "autofs"]
    )


class LoggingSettings(BaseModel):
    """Logging output for the ``sysgauge`` logger."""

    level: str = "WARNING"
    log_file: str | None = None
    max_bytes: int = Field(default=10 * 1024 * 1024, ge=0)
    backup_count: int = Field(default=5, ge=0)


class Settings(BaseModel):
    """Top-level sysgauge configuration."""

    sampling: SamplingSettings = Field(default_factory=SamplingSettings)
    commands: CommandSettings = Field(default_factory=CommandSettings)
    drives: DriveSettings = Field(default_factory=DriveSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    sysfs_root: str = "/sys"
