"""Application services public API."""

from backup_sync.application.services.sync_service import SyncService

__all__ = ["SyncService"]
