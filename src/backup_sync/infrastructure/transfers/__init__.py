"""Transfer adapter implementations."""

from backup_sync.infrastructure.transfers.rsync_transfer_executor import RsyncTransferExecutor

__all__ = ["RsyncTransferExecutor"]
