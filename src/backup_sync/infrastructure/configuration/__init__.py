"""Configuration file adapters."""

from backup_sync.infrastructure.configuration.properties_loader import (
    load_sync_configuration,
    parse_properties,
    read_properties,
)

__all__ = ["load_sync_configuration", "parse_properties", "read_properties"]
