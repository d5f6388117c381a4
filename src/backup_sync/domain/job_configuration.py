"""Validated sync job configuration models."""

from __future__ import annotations

import re
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from backup_sync.domain.errors import ConfigurationError

VALID_NAME = re.compile(r"[a-z_0-9]{0,64}")
DEFAULT_PROPERTY_PREFIX = "Sync"


def _require_identifier(value: str, kind: str) -> str:
    if not value or not VALID_NAME.fullmatch(value):
        raise ValueError(
            f"{kind} names must be non-empty and match the pattern {VALID_NAME.pattern}, "
            f"got '{value}'."
        )
    return value


class ConfigurationModel(BaseModel):
    """Base model for immutable configuration values."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class SyncJob(ConfigurationModel):
    """One source directory synchronized to a remote host, plus its metrics target."""

    name: str
    source_path: str = Field(min_length=1)
    source_metrics_dir: Path
    target_host: str = Field(min_length=1)
    target_path: str = Field(min_length=1)
    target_metrics_dir: str = Field(min_length=1)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _require_identifier(value, "Job")

    @field_validator("source_metrics_dir", mode="before")
    @classmethod
    def validate_source_metrics_dir(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            raise ValueError("source_metrics_dir cannot be empty.")
        return value


class SyncConfiguration(ConfigurationModel):
    """Validated global settings plus the set of jobs to run."""

    dry_run: bool = False
    host: str
    jobs: tuple[SyncJob, ...] = ()

    @field_validator("host")
    @classmethod
    def validate_host(cls, value: str) -> str:
        return _require_identifier(value, "Host")

    @model_validator(mode="after")
    def validate_unique_job_names(self) -> "SyncConfiguration":
        """Reject configurations that name the same job twice."""

        seen: set[str] = set()
        for job in self.jobs:
            if job.name in seen:
                raise ValueError(f"Job '{job.name}' is declared more than once.")
            seen.add(job.name)
        return self

    @property
    def job_names(self) -> list[str]:
        return [job.name for job in self.jobs]

    def job(self, name: str) -> SyncJob:
        """Return the job with the given name."""

        for job in self.jobs:
            if job.name == name:
                return job
        raise KeyError(name)

    @classmethod
    def from_properties(
        cls,
        properties: Mapping[str, str],
        prefix: str = DEFAULT_PROPERTY_PREFIX,
    ) -> "SyncConfiguration":
        """Build a configuration from a flat property set.

        Required keys are `<prefix>.Host`, `<prefix>.Jobs` and, for every job
        listed in `<prefix>.Jobs`, `TargetHost`, `Target`, `Source`,
        `SourceMetricsDir` and `TargetMetricsDir` under `<prefix>.<job>.`.
        `<prefix>.DryRun` is optional and defaults to false.
        """

        def required(key: str) -> str:
            value = properties.get(key)
            if value is None:
                raise ConfigurationError(f"Missing required property: {key}")
            return value

        host = required(f"{prefix}.Host")
        job_names = required(f"{prefix}.Jobs").split()

        raw_jobs: list[dict[str, str]] = []
        for job_name in job_names:
            raw_jobs.append(
                {
                    "name": job_name,
                    "target_host": required(f"{prefix}.{job_name}.TargetHost"),
                    "target_path": required(f"{prefix}.{job_name}.Target"),
                    "source_path": required(f"{prefix}.{job_name}.Source"),
                    "source_metrics_dir": required(f"{prefix}.{job_name}.SourceMetricsDir"),
                    "target_metrics_dir": required(f"{prefix}.{job_name}.TargetMetricsDir"),
                }
            )

        try:
            return cls.model_validate(
                {
                    # Pydantic bool rules: true/false, yes/no, on/off, 1/0 in any case.
                    # Any other value is rejected rather than read as false.
                    "dry_run": properties.get(f"{prefix}.DryRun", "false").strip() or "false",
                    "host": host,
                    "jobs": raw_jobs,
                }
            )
        except ValidationError as exc:
            raise ConfigurationError(_summarize_validation_error(exc)) from exc


def _summarize_validation_error(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        problems.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "Invalid configuration: " + "; ".join(problems)


__all__ = [
    "ConfigurationModel",
    "DEFAULT_PROPERTY_PREFIX",
    "SyncConfiguration",
    "SyncJob",
    "VALID_NAME",
]
