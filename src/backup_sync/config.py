"""Application settings."""

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables.

    The job list itself comes from the properties file passed on the command
    line; these settings only tune how jobs are executed.
    """

    log_level: str = "INFO"
    property_prefix: str = "Sync"
    rsync_program: str = "rsync"
    ssh_program: str = "ssh"
    scp_program: str = "scp"
    transfer_max_attempts: int = 3
    transfer_retry_pause_seconds: float = 3.0
    preflight_timeout_seconds: float = 5.0
    preflight_strict: bool = False
    process_read_chunk_bytes: int = 64 * 1024
    process_max_line_bytes: int = 1024 * 1024

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: object) -> object:
        """Accept log level names in any case."""

        if not isinstance(value, str):
            return value
        return value.strip().upper()

    @model_validator(mode="after")
    def validate_execution_settings(self) -> "Settings":
        """Ensure execution settings are usable."""

        if self.log_level not in _LOG_LEVELS:
            raise ValueError(
                "BACKUP_SYNC_LOG_LEVEL must be one of "
                f"{', '.join(sorted(_LOG_LEVELS))}."
            )
        if not self.property_prefix.strip():
            raise ValueError("BACKUP_SYNC_PROPERTY_PREFIX cannot be empty.")
        for name in ("rsync_program", "ssh_program", "scp_program"):
            if not getattr(self, name).strip():
                raise ValueError(f"BACKUP_SYNC_{name.upper()} cannot be empty.")
        if self.transfer_max_attempts < 1:
            raise ValueError("BACKUP_SYNC_TRANSFER_MAX_ATTEMPTS must be >= 1.")
        if self.transfer_retry_pause_seconds < 0:
            raise ValueError("BACKUP_SYNC_TRANSFER_RETRY_PAUSE_SECONDS must be >= 0.")
        if self.preflight_timeout_seconds <= 0:
            raise ValueError("BACKUP_SYNC_PREFLIGHT_TIMEOUT_SECONDS must be > 0.")
        if self.process_read_chunk_bytes < 1:
            raise ValueError("BACKUP_SYNC_PROCESS_READ_CHUNK_BYTES must be >= 1.")
        if self.process_max_line_bytes < 1:
            raise ValueError("BACKUP_SYNC_PROCESS_MAX_LINE_BYTES must be >= 1.")
        return self

    model_config = SettingsConfigDict(env_prefix="BACKUP_SYNC_", extra="ignore")


__all__ = ["Settings"]
