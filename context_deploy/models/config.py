"""Configuration data models"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, Any

from ..constants import (
    DEFAULT_BACKUP_DIR,
    DEFAULT_LOCK_DIR,
    DEFAULT_LOCK_TIMEOUT,
    DEFAULT_LOCK_RETRY_INTERVAL,
    DEFAULT_LOCK_STALE_AFTER,
    DEFAULT_STREAMING_THRESHOLD,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_PARALLEL_THRESHOLD,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_CACHE_TTL,
    DEFAULT_CACHE_MAX_ENTRIES,
    DEFAULT_BACKUP_RETENTION_DAYS,
    DEFAULT_RETRY_COUNT,
    DEFAULT_RETRY_DELAY,
)


@dataclass
class DeployConfig:
    """Engine configuration, usually loaded from ``.context-deploy.yaml``"""

    backup_dir: str = DEFAULT_BACKUP_DIR
    lock_dir: str = DEFAULT_LOCK_DIR
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT
    lock_retry_interval: float = DEFAULT_LOCK_RETRY_INTERVAL
    lock_stale_after: float = DEFAULT_LOCK_STALE_AFTER
    streaming_threshold: int = DEFAULT_STREAMING_THRESHOLD
    chunk_size: int = DEFAULT_CHUNK_SIZE
    parallel_threshold: int = DEFAULT_PARALLEL_THRESHOLD
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    cache_ttl: float = DEFAULT_CACHE_TTL
    cache_max_entries: int = DEFAULT_CACHE_MAX_ENTRIES
    keep_backups: bool = True
    backup_retention_days: int = DEFAULT_BACKUP_RETENTION_DAYS
    retry_attempts: int = DEFAULT_RETRY_COUNT
    retry_delay: float = DEFAULT_RETRY_DELAY

    def __post_init__(self):
        """Validate configuration"""
        if self.lock_timeout < 0 or self.lock_retry_interval <= 0 or self.lock_stale_after <= 0:
            raise ValueError("Lock timings must be positive")
        if self.max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        if self.cache_max_entries < 1 or self.cache_ttl <= 0:
            raise ValueError("Cache size and TTL must be positive")
        if self.retry_attempts < 1:
            raise ValueError("retry_attempts must be at least 1")

    @property
    def backup_path(self) -> Path:
        return Path(self.backup_dir).expanduser()

    @property
    def lock_path(self) -> Path:
        return Path(self.lock_dir).expanduser()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeployConfig":
        """Create from dictionary

        Unknown keys are rejected so typos surface instead of being ignored.
        """
        data = data or {}
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {f.name: getattr(self, f.name) for f in fields(self)}
