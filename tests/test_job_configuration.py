from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from backup_sync.domain.errors import ConfigurationError
from backup_sync.domain.job_configuration import SyncConfiguration, SyncJob
from backup_sync.infrastructure.configuration import (
    load_sync_configuration,
    parse_properties,
    read_properties,
)


def _job_properties(name: str, prefix: str = "Sync") -> dict[str, str]:
    return {
        f"{prefix}.{name}.TargetHost": "backup.example.com",
        f"{prefix}.{name}.Target": f"/backups/{name}",
        f"{prefix}.{name}.Source": f"/srv/{name}",
        f"{prefix}.{name}.SourceMetricsDir": "/var/lib/node_exporter",
        f"{prefix}.{name}.TargetMetricsDir": "/var/lib/node_exporter/remote",
    }


def _properties(*job_names: str, host: str = "web01") -> dict[str, str]:
    properties = {"Sync.Host": host, "Sync.Jobs": " ".join(job_names)}
    for name in job_names:
        properties.update(_job_properties(name))
    return properties


def test_parse_properties_supports_comments_separators_and_escapes() -> None:
    text = (
        "# comment\n"
        "! another comment\n"
        "\n"
        "Sync.Host = web01\n"
        "Sync.Jobs:alpha  beta\n"
        "Sync.alpha.Source /srv/alpha\n"
        "Sync.alpha.Target=/backups/with\\ttab\n"
        "Sync.unicode=caf\\u00e9\n"
        "key\\=with\\:separators = value\n"
    )

    properties = parse_properties(text)

    assert properties == {
        "Sync.Host": "web01",
        "Sync.Jobs": "alpha  beta",
        "Sync.alpha.Source": "/srv/alpha",
        "Sync.alpha.Target": "/backups/with\ttab",
        "Sync.unicode": "café",
        "key=with:separators": "value",
    }


def test_parse_properties_joins_continuation_lines() -> None:
    text = "Sync.Jobs = alpha \\\n    beta \\\n    gamma\nSync.Path = C:\\\\\n"

    properties = parse_properties(text)

    assert properties["Sync.Jobs"] == "alpha beta gamma"
    assert properties["Sync.Path"] == "C:\\"


def test_parse_properties_later_keys_override_earlier_ones() -> None:
    assert parse_properties("a=1\na=2\n") == {"a": "2"}


def test_from_properties_builds_jobs_in_declaration_order() -> None:
    configuration = SyncConfiguration.from_properties(_properties("alpha", "beta_2"))

    assert configuration.host == "web01"
    assert configuration.dry_run is False
    assert configuration.job_names == ["alpha", "beta_2"]

    alpha = configuration.job("alpha")
    assert alpha.source_path == "/srv/alpha"
    assert alpha.target_path == "/backups/alpha"
    assert alpha.target_host == "backup.example.com"
    assert alpha.source_metrics_dir == Path("/var/lib/node_exporter")
    assert alpha.target_metrics_dir == "/var/lib/node_exporter/remote"


def test_from_properties_accepts_empty_job_list() -> None:
    configuration = SyncConfiguration.from_properties({"Sync.Host": "web01", "Sync.Jobs": "  "})

    assert configuration.jobs == ()


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("true", True),
        ("True", True),
        ("yes", True),
        ("1", True),
        ("false", False),
        ("off", False),
        ("", False),
    ],
)
def test_from_properties_parses_dry_run(raw: str, expected: bool) -> None:
    properties = _properties("alpha")
    properties["Sync.DryRun"] = raw

    assert SyncConfiguration.from_properties(properties).dry_run is expected


def test_from_properties_rejects_invalid_dry_run_value() -> None:
    properties = _properties("alpha")
    properties["Sync.DryRun"] = "sometimes"

    with pytest.raises(ConfigurationError, match="dry_run"):
        SyncConfiguration.from_properties(properties)


@pytest.mark.parametrize("job_name", ["Alpha", "a/b", "a-b", "x" * 65])
def test_from_properties_rejects_invalid_job_names(job_name: str) -> None:
    with pytest.raises(ConfigurationError, match="Job names must be non-empty"):
        SyncConfiguration.from_properties(_properties(job_name))


def test_job_names_accept_maximum_length() -> None:
    name = "a" * 64

    configuration = SyncConfiguration.from_properties(_properties(name))

    assert configuration.job_names == [name]


@pytest.mark.parametrize("host", ["", "Web01", "web.example.com"])
def test_from_properties_rejects_invalid_host(host: str) -> None:
    with pytest.raises(ConfigurationError, match="Host names must be non-empty"):
        SyncConfiguration.from_properties(_properties("alpha", host=host))


@pytest.mark.parametrize(
    "missing_key",
    ["Sync.Host", "Sync.Jobs", "Sync.alpha.TargetHost", "Sync.alpha.SourceMetricsDir"],
)
def test_from_properties_reports_missing_key(missing_key: str) -> None:
    properties = _properties("alpha")
    del properties[missing_key]

    with pytest.raises(ConfigurationError) as exc_info:
        SyncConfiguration.from_properties(properties)

    assert str(exc_info.value) == f"Missing required property: {missing_key}"


def test_from_properties_rejects_duplicate_job_names() -> None:
    properties = _properties("alpha")
    properties["Sync.Jobs"] = "alpha alpha"

    with pytest.raises(ConfigurationError, match="declared more than once"):
        SyncConfiguration.from_properties(properties)


def test_from_properties_rejects_blank_values() -> None:
    properties = _properties("alpha")
    properties["Sync.alpha.Source"] = ""

    with pytest.raises(ConfigurationError, match="source_path"):
        SyncConfiguration.from_properties(properties)


def test_from_properties_honors_custom_prefix() -> None:
    properties = {"Backup.Host": "web01", "Backup.Jobs": "alpha"}
    properties.update(_job_properties("alpha", prefix="Backup"))

    configuration = SyncConfiguration.from_properties(properties, prefix="Backup")

    assert configuration.job_names == ["alpha"]


def test_job_lookup_raises_key_error_for_unknown_job() -> None:
    configuration = SyncConfiguration.from_properties(_properties("alpha"))

    with pytest.raises(KeyError):
        configuration.job("beta")


def test_sync_job_is_immutable() -> None:
    job = SyncConfiguration.from_properties(_properties("alpha")).job("alpha")

    with pytest.raises(ValidationError):
        job.source_path = "/elsewhere"  # type: ignore[misc]
    assert isinstance(job, SyncJob)


def test_load_sync_configuration_reads_file(tmp_path: Path) -> None:
    config_file = tmp_path / "sync.properties"
    config_file.write_text(
        "\n".join(f"{key}={value}" for key, value in _properties("alpha", "beta").items())
        + "\nSync.DryRun=true\n",
        encoding="utf-8",
    )

    configuration = load_sync_configuration(config_file)

    assert configuration.dry_run is True
    assert configuration.job_names == ["alpha", "beta"]


def test_read_properties_wraps_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="Unable to read configuration file"):
        read_properties(tmp_path / "missing.properties")


def test_read_properties_rejects_non_utf8_file(tmp_path: Path) -> None:
    config_file = tmp_path / "latin1.properties"
    config_file.write_bytes(b"Sync.Host=caf\xe9\n")

    with pytest.raises(ConfigurationError):
        read_properties(config_file)
