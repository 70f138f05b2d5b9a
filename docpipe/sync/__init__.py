"""External documentation sync."""

from .archive import DocsSyncJob, SyncOutcome

__all__ = ["DocsSyncJob", "SyncOutcome"]
