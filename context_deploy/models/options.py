"""Deployment option models"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Any

from ..constants import (
    Platform,
    ConflictStrategy,
    MergeStrategy,
    DEFAULT_LOCK_TIMEOUT,
    DEFAULT_STREAMING_THRESHOLD,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_PARALLEL_THRESHOLD,
    DEFAULT_MAX_CONCURRENCY,
)
from ..api.exceptions import InvalidOptionsError


@dataclass
class TargetContext:
    """Filesystem roots a platform layout is resolved against"""

    home_dir: Path = field(default_factory=Path.home)
    project_dir: Path = field(default_factory=Path.cwd)

    def __post_init__(self):
        self.home_dir = Path(self.home_dir).expanduser().resolve()
        self.project_dir = Path(self.project_dir).expanduser().resolve()

    def to_dict(self) -> Dict[str, str]:
        return {"home_dir": str(self.home_dir), "project_dir": str(self.project_dir)}


@dataclass
class DeploymentOptions:
    """Options controlling one deployment"""

    platform: Platform
    components: List[str] = field(default_factory=list)
    skip_components: List[str] = field(default_factory=list)
    conflict_strategy: ConflictStrategy = ConflictStrategy.PROMPT
    merge_strategy: Optional[MergeStrategy] = None
    dry_run: bool = False
    validate_only: bool = False
    backup: bool = False
    backup_dir: Optional[Path] = None
    keep_backup: bool = True
    continue_on_error: bool = True
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT
    streaming_threshold: int = DEFAULT_STREAMING_THRESHOLD
    chunk_size: int = DEFAULT_CHUNK_SIZE
    parallel_threshold: int = DEFAULT_PARALLEL_THRESHOLD
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    collect_metrics: bool = False

    def __post_init__(self):
        # Accept plain strings from callers that skip the CLI
        if isinstance(self.platform, str):
            try:
                self.platform = Platform(self.platform)
            except ValueError:
                raise InvalidOptionsError(f"Unsupported platform: {self.platform}")
        if isinstance(self.conflict_strategy, str):
            try:
                self.conflict_strategy = ConflictStrategy(self.conflict_strategy)
            except ValueError:
                raise InvalidOptionsError(f"Unknown conflict strategy: {self.conflict_strategy}")
        if isinstance(self.merge_strategy, str):
            try:
                self.merge_strategy = MergeStrategy(self.merge_strategy)
            except ValueError:
                raise InvalidOptionsError(f"Unknown merge strategy: {self.merge_strategy}")
        if self.backup_dir is not None:
            self.backup_dir = Path(self.backup_dir).expanduser()

    @property
    def needs_backup(self) -> bool:
        """Whether this run must keep a backup manifest"""
        return self.backup or self.conflict_strategy == ConflictStrategy.BACKUP

    def validate(self, available_components: List[str]) -> None:
        """Fail fast on invalid option combinations

        Args:
            available_components: Component names supported by the platform

        Raises:
            InvalidOptionsError: If the options cannot describe a deployment
        """
        unknown = [c for c in self.components + self.skip_components
                   if c not in available_components]
        if unknown:
            raise InvalidOptionsError(
                f"Invalid components for {self.platform.value}: {', '.join(unknown)}. "
                f"Available: {', '.join(available_components)}"
            )

        overlap = sorted(set(self.components) & set(self.skip_components))
        if overlap:
            raise InvalidOptionsError(
                f"Components both included and skipped: {', '.join(overlap)}"
            )

        if self.lock_timeout < 0:
            raise InvalidOptionsError("lock_timeout must not be negative")
        if self.max_concurrency < 1:
            raise InvalidOptionsError("max_concurrency must be at least 1")
        if self.parallel_threshold < 1:
            raise InvalidOptionsError("parallel_threshold must be at least 1")
        if self.streaming_threshold < 1 or self.chunk_size < 1:
            raise InvalidOptionsError("streaming_threshold and chunk_size must be positive")

    def select_components(self, present: List[str]) -> List[str]:
        """Apply include/exclude lists to the components present in a context"""
        selected = [c for c in present if not self.components or c in self.components]
        return [c for c in selected if c not in self.skip_components]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "platform": self.platform.value,
            "components": list(self.components),
            "skip_components": list(self.skip_components),
            "conflict_strategy": self.conflict_strategy.value,
            "merge_strategy": self.merge_strategy.value if self.merge_strategy else None,
            "dry_run": self.dry_run,
            "validate_only": self.validate_only,
            "backup": self.backup,
            "backup_dir": str(self.backup_dir) if self.backup_dir else None,
            "keep_backup": self.keep_backup,
            "continue_on_error": self.continue_on_error,
            "lock_timeout": self.lock_timeout,
            "max_concurrency": self.max_concurrency,
        }
