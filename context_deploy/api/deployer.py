"""Deployer API for deployment operations"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from ..constants import Platform
from ..core.performance_optimizer import PerformanceOptimizer, TTLCache
from ..models.backup import BackupManifest
from ..models.config import DeployConfig
from ..models.context import Context
from ..models.options import DeploymentOptions, TargetContext
from ..models.result import DeploymentResult, RollbackResult
from ..services.backup_service import BackupService
from ..services.conflict_resolver import Prompter
from ..services.deploy_service import DeployService
from ..services.lock_service import LockService
from ..utils.async_utils import run_async
from .exceptions import InvalidOptionsError, ValidationError

logger = logging.getLogger(__name__)

ContextSource = Union[Context, Dict[str, Any], str, Path]


class Deployer:
    """Deployer class for deployment operations"""

    def __init__(self,
                 config: Optional[DeployConfig] = None,
                 home_dir: Optional[Path] = None,
                 project_dir: Optional[Path] = None,
                 prompter: Optional[Prompter] = None):
        """
        Initialize deployer

        Args:
            config: Engine configuration (defaults when omitted)
            home_dir: User home to deploy into (defaults to the current user's)
            project_dir: Project directory to deploy into (defaults to the cwd)
            prompter: Interactive chooser for the ``prompt`` conflict strategy
        """
        self.config = config or DeployConfig()
        target_args = {}
        if home_dir is not None:
            target_args["home_dir"] = home_dir
        if project_dir is not None:
            target_args["project_dir"] = project_dir
        self.target = TargetContext(**target_args)

        self.cache = TTLCache(ttl=self.config.cache_ttl, max_entries=self.config.cache_max_entries)
        self.lock_service = LockService(
            self.config.lock_path,
            retry_interval=self.config.lock_retry_interval,
            stale_after=self.config.lock_stale_after
        )
        self.backup_service = BackupService(self.config.backup_path, chunk_size=self.config.chunk_size)
        self.optimizer = PerformanceOptimizer(
            streaming_threshold=self.config.streaming_threshold,
            parallel_threshold=self.config.parallel_threshold,
            max_concurrency=self.config.max_concurrency,
            chunk_size=self.config.chunk_size,
            cache=self.cache
        )
        self.deploy_service = DeployService(
            self.target,
            self.lock_service,
            self.backup_service,
            optimizer=self.optimizer,
            cache=self.cache,
            prompter=prompter,
            retry_attempts=self.config.retry_attempts,
            retry_delay=self.config.retry_delay
        )

    def load_context(self, path: Union[str, Path]) -> Context:
        """
        Load a context file (JSON, or YAML for .yaml/.yml)

        Parsed contexts are cached by path and modification time.

        Raises:
            ValidationError: If the file is missing or not a valid context
        """
        path = Path(path).expanduser().resolve()
        try:
            mtime = path.stat().st_mtime_ns
        except OSError as e:
            raise ValidationError(f"Cannot read context file {path}: {e}")

        return self.cache.get_or_compute(("context", str(path), mtime), lambda: self._parse_context(path))

    def _parse_context(self, path: Path) -> Context:
        try:
            with open(path, "r", encoding="utf-8") as f:
                if path.suffix.lower() in (".yaml", ".yml"):
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
        except (OSError, UnicodeDecodeError) as e:
            raise ValidationError(f"Cannot read context file {path}: {e}")
        except (ValueError, yaml.YAMLError) as e:
            raise ValidationError(f"Context file {path} is not valid: {e}")

        try:
            context = Context.from_dict(data)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Context file {path} is not valid: {e}")
        logger.debug(f"Loaded context '{context.metadata.title}' from {path}")
        return context

    def resolve_context(self, source: ContextSource) -> Context:
        if isinstance(source, Context):
            return source
        if isinstance(source, dict):
            try:
                return Context.from_dict(source)
            except (TypeError, ValueError) as e:
                raise ValidationError(f"Invalid context: {e}")
        return self.load_context(source)

    def resolve_platform(self, context: Context, platform: Optional[Union[Platform, str]]) -> Platform:
        """Explicit platform, or the context's only target platform"""
        if platform is not None:
            if isinstance(platform, Platform):
                return platform
            try:
                return Platform(platform)
            except ValueError:
                raise InvalidOptionsError(f"Unsupported platform: {platform}")

        targets = context.metadata.target_platforms
        if len(targets) == 1:
            try:
                return Platform(targets[0])
            except ValueError:
                raise InvalidOptionsError(f"Unsupported platform: {targets[0]}")
        raise InvalidOptionsError("A target platform is required")

    def build_options(self, platform: Platform, **overrides) -> DeploymentOptions:
        """Deployment options with configuration defaults, overridden by explicit values"""
        values = {
            "lock_timeout": self.config.lock_timeout,
            "streaming_threshold": self.config.streaming_threshold,
            "chunk_size": self.config.chunk_size,
            "parallel_threshold": self.config.parallel_threshold,
            "max_concurrency": self.config.max_concurrency,
            "keep_backup": self.config.keep_backups,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return DeploymentOptions(platform=platform, **values)

    async def deploy_async(self, context: ContextSource,
                           platform: Optional[Union[Platform, str]] = None,
                           **options) -> DeploymentResult:
        """
        Deploy a context onto a platform

        Args:
            context: Context object, context dictionary or context file path
            platform: Target platform (may be omitted when the context targets exactly one)
            **options: DeploymentOptions fields

        Returns:
            DeploymentResult: Deployment result

        Raises:
            ValidationError: If the context cannot be loaded
            InvalidOptionsError: If the options are inconsistent
        """
        context = self.resolve_context(context)
        deployment_options = self.build_options(self.resolve_platform(context, platform), **options)
        return await self.deploy_service.deploy(context, deployment_options)

    def deploy(self, context: ContextSource,
               platform: Optional[Union[Platform, str]] = None,
               **options) -> DeploymentResult:
        """Synchronous wrapper around :meth:`deploy_async`"""
        return run_async(self.deploy_async(context, platform, **options))

    def rollback(self, backup_dir: Union[str, Path]) -> RollbackResult:
        """
        Restore a kept backup set

        Raises:
            BackupError: If the backup manifest cannot be read
        """
        manifest = self.backup_service.load_manifest(Path(backup_dir).expanduser())
        return run_async(self.backup_service.rollback(manifest))

    def list_backups(self) -> List[BackupManifest]:
        return self.backup_service.list_backups()

    def cleanup_backups(self, retention_days: Optional[int] = None) -> List[Path]:
        days = self.config.backup_retention_days if retention_days is None else retention_days
        return self.backup_service.cleanup_old_backups(days)

    def cleanup_locks(self) -> List[str]:
        return self.lock_service.cleanup_stale_locks()


def deploy(context: ContextSource,
           platform: Optional[Union[Platform, str]] = None,
           home_dir: Optional[Path] = None,
           project_dir: Optional[Path] = None,
           config: Optional[DeployConfig] = None,
           **options) -> DeploymentResult:
    """
    Deploy a context

    This is a convenience function that creates a Deployer instance
    and performs the deployment.

    Args:
        context: Context object, context dictionary or context file path
        platform: Target platform
        home_dir: User home to deploy into
        project_dir: Project directory to deploy into
        config: Engine configuration
        **options: Additional deployment options

    Returns:
        DeploymentResult: Deployment result
    """
    deployer = Deployer(config=config, home_dir=home_dir, project_dir=project_dir)
    return deployer.deploy(context, platform, **options)
