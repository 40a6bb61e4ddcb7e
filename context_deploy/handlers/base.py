# context_deploy/handlers/base.py
"""Component handler base class

Every handler follows the same write protocol for each file it plans:
ensure the directory, load what is there, resolve conflicts, write. Handlers
only differ in how they turn component data into planned files.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from ..api.exceptions import BackupError
from ..constants import (
    Platform,
    ConflictStrategy,
    ContentKind,
    ErrorCode,
    WarningCode,
    FRONT_MATTER_DELIMITER,
    DEFAULT_RETRY_COUNT,
    DEFAULT_RETRY_DELAY,
)
from ..core import diff_engine
from ..core.path_resolver import PathResolver, get_layout
from ..core.performance_optimizer import ExecutionPlan
from ..models.backup import BackupManifest
from ..models.options import DeploymentOptions, TargetContext
from ..models.result import HandlerResult, Resolution
from ..services.backup_service import BackupService
from ..services.conflict_resolver import ConflictResolver
from ..utils.async_utils import retry_async
from ..utils.file_utils import read_text_async, write_text_async

logger = logging.getLogger(__name__)

TRANSIENT_WRITE_ERRORS = (BlockingIOError, InterruptedError)


@dataclass
class PlannedFile:
    """One file a handler intends to write

    ``data`` is a mapping for structured files and the body text for prose.
    ``header`` becomes YAML front matter on prose files.
    """

    path: Path
    kind: ContentKind
    data: Any
    header: Dict[str, Any] = field(default_factory=dict)
    label: str = ""


def render_front_matter(header: Dict[str, Any], body: str) -> str:
    if not body.endswith("\n"):
        body += "\n"
    if not header:
        return body
    block = yaml.safe_dump(header, sort_keys=False, allow_unicode=True, default_flow_style=False)
    return f"{FRONT_MATTER_DELIMITER}\n{block}{FRONT_MATTER_DELIMITER}\n\n{body}"


def split_front_matter(text: str) -> Tuple[Dict[str, Any], str]:
    """Separate YAML front matter from a prose document"""
    opening = f"{FRONT_MATTER_DELIMITER}\n"
    if not text.startswith(opening):
        return {}, text
    end = text.find(f"\n{FRONT_MATTER_DELIMITER}\n", len(opening) - 1)
    if end == -1:
        return {}, text
    try:
        header = yaml.safe_load(text[len(opening):end + 1]) or {}
    except yaml.YAMLError:
        return {}, text
    if not isinstance(header, dict):
        return {}, text
    body = text[end + len(FRONT_MATTER_DELIMITER) + 2:]
    if body.startswith("\n"):
        body = body[1:]
    return header, body


class ComponentHandler(ABC):
    """Deploys one component of one platform"""

    def __init__(self, platform: Platform, component: str,
                 resolver: ConflictResolver,
                 backup_service: Optional[BackupService] = None,
                 retry_attempts: int = DEFAULT_RETRY_COUNT,
                 retry_delay: float = DEFAULT_RETRY_DELAY):
        self.platform = platform
        self.component = component
        self.layout = get_layout(platform, component)
        self.resolver = resolver
        self.backup_service = backup_service
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay

    @abstractmethod
    def plan(self, data: Any, paths: PathResolver) -> List[PlannedFile]:
        """
        Turn component data into planned files

        Raises:
            ValueError: If the data cannot be mapped onto files
        """

    def plan_files(self, data: Any, target: TargetContext) -> List[PlannedFile]:
        return self.plan(data, PathResolver(target.home_dir, target.project_dir))

    def render(self, planned: PlannedFile, body: Optional[str] = None) -> str:
        """Full file content for a planned file, optionally with a replacement body"""
        if planned.kind == ContentKind.STRUCTURED:
            return body if body is not None else diff_engine.dump_structured(planned.data)
        return render_front_matter(planned.header, body if body is not None else planned.data)

    def incoming_body(self, planned: PlannedFile) -> str:
        """Content handed to conflict resolution (prose without its header)"""
        if planned.kind == ContentKind.STRUCTURED:
            return diff_engine.dump_structured(planned.data)
        body = planned.data
        return body if body.endswith("\n") else body + "\n"

    async def read(self, path: Path) -> Any:
        """
        Read a deployed file back

        Returns:
            Parsed mapping for structured files, (header, body) for prose,
            or None if the file does not exist
        """
        text = await read_text_async(Path(path))
        if text is None:
            return None
        if Path(path).suffix.lower() == ".json":
            return diff_engine.load_structured(text)
        return split_front_matter(text)

    async def deploy(self, data: Any, target: TargetContext, options: DeploymentOptions,
                     manifest: Optional[BackupManifest] = None,
                     plan: Optional[ExecutionPlan] = None) -> HandlerResult:
        """
        Deploy component data

        Args:
            data: Component data from the context
            target: Home and project roots
            options: Deployment options
            manifest: Active backup manifest, if backups are kept for this run
            plan: Execution plan (streaming mode and chunk size)

        Returns:
            HandlerResult; failures are reported in it, not raised
        """
        result = HandlerResult(component=self.component)
        started = time.perf_counter()

        try:
            planned_files = self.plan_files(data, target)
        except ValueError as e:
            result.add_error(ErrorCode.COMPONENT_DEPLOYMENT_ERROR, f"{self.component}: {e}",
                             component=self.component)
            return result

        for planned in planned_files:
            try:
                await self._deploy_file(planned, options, manifest, plan, result)
            except (OSError, UnicodeDecodeError) as e:
                logger.error(f"Failed to deploy {planned.path}: {e}")
                result.add_error(ErrorCode.FILE_SYSTEM_ERROR, f"{planned.path}: {e}",
                                 path=str(planned.path), component=self.component)

        result.duration = time.perf_counter() - started
        return result

    async def _deploy_file(self, planned: PlannedFile, options: DeploymentOptions,
                           manifest: Optional[BackupManifest], plan: Optional[ExecutionPlan],
                           result: HandlerResult) -> None:
        path = planned.path
        if not options.dry_run:
            path.parent.mkdir(parents=True, exist_ok=True)

        raw = await read_text_async(path)
        incoming = self.incoming_body(planned)

        if raw is not None and raw == self.render(planned):
            logger.debug(f"{path} is up to date")
            result.deployed_files.append(path)
            return

        existing = None
        if raw is not None:
            existing = raw if planned.kind == ContentKind.STRUCTURED else split_front_matter(raw)[1]

        if existing is None:
            final = incoming
        elif options.conflict_strategy == ConflictStrategy.OVERWRITE:
            conflict = self.resolver.detect_conflict(path, existing, incoming, self.component)
            if conflict is not None:
                conflict.resolution = Resolution.OVERWRITTEN
                result.conflicts.append(conflict)
            final = incoming
        else:
            resolution = await self.resolver.resolve(
                path, incoming, self.component,
                options.conflict_strategy, options.merge_strategy,
                existing_content=existing, manifest=manifest, dry_run=options.dry_run
            )
            result.errors.extend(resolution.errors)
            result.warnings.extend(resolution.warnings)
            if resolution.conflict is not None:
                result.conflicts.append(resolution.conflict)
            final = resolution.final_content

        if final is None:
            result.skipped_files.append(path)
            return

        if options.dry_run:
            result.deployed_files.append(path)
            return

        if manifest is not None and self.backup_service is not None:
            if raw is not None and not manifest.on_demand:
                try:
                    await self.backup_service.snapshot(manifest, path)
                except BackupError as e:
                    result.add_warning(WarningCode.BACKUP_FAILED, str(e), path=str(path))
            else:
                self.backup_service.record_created(manifest, path)

        streaming = plan.streaming if plan else False
        chunk_size = plan.chunk_size if plan else options.chunk_size
        await retry_async(
            write_text_async, path, self.render(planned, final),
            streaming=streaming, chunk_size=chunk_size,
            max_attempts=self.retry_attempts, delay=self.retry_delay,
            exceptions=TRANSIENT_WRITE_ERRORS
        )
        logger.debug(f"Wrote {path}")
        result.deployed_files.append(path)
