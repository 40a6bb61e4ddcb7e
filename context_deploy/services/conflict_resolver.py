# context_deploy/services/conflict_resolver.py
"""Conflict resolution service"""

import inspect
import json
import logging
from collections import Counter
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..api.exceptions import BackupError
from ..constants import (
    ConflictStrategy,
    MergeStrategy,
    ContentKind,
    ErrorCode,
    WarningCode,
    STRUCTURED_MERGE_STRATEGIES,
    PROSE_MERGE_STRATEGIES,
)
from ..core import diff_engine
from ..models.backup import BackupManifest
from ..models.result import ConflictKind, ConflictRecord, Resolution, ResolutionResult
from ..utils.file_utils import read_text_async
from .backup_service import BackupService

logger = logging.getLogger(__name__)

# Prompter: called with a conflict, returns the strategy to apply (or None to leave it unresolved)
Prompter = Callable[[ConflictRecord], Any]

_READ_FROM_DISK = object()

DEFAULT_MERGE = {
    ContentKind.STRUCTURED: MergeStrategy.DEEP_MERGE,
    ContentKind.PROSE: MergeStrategy.SECTION_MERGE,
}

SUGGESTED_STRATEGIES: Dict[str, Tuple[ConflictStrategy, Optional[MergeStrategy]]] = {
    "settings": (ConflictStrategy.MERGE, MergeStrategy.DEEP_MERGE),
    "extensions": (ConflictStrategy.MERGE, MergeStrategy.ARRAY_APPEND),
    "agents": (ConflictStrategy.BACKUP, None),
    "commands": (ConflictStrategy.BACKUP, None),
    "templates": (ConflictStrategy.BACKUP, None),
    "specs": (ConflictStrategy.MERGE, MergeStrategy.TASK_STATUS_PRESERVE),
    "steering": (ConflictStrategy.MERGE, MergeStrategy.SECTION_MERGE),
    "project": (ConflictStrategy.MERGE, None),
}


def content_kind(path: Path) -> ContentKind:
    """Structured for .json destinations, prose otherwise"""
    return ContentKind.STRUCTURED if Path(path).suffix.lower() == ".json" else ContentKind.PROSE


class ConflictResolver:
    """Compare incoming content with what is on disk and apply a strategy"""

    def __init__(self, backup_service: Optional[BackupService] = None,
                 prompter: Optional[Prompter] = None):
        """Initialize conflict resolver

        Args:
            backup_service: Used by the ``backup`` strategy
            prompter: Interactive chooser for the ``prompt`` strategy
        """
        self.backup_service = backup_service
        self.prompter = prompter

    @property
    def interactive(self) -> bool:
        return self.prompter is not None

    def contents_equal(self, path: Path, existing: str, incoming: str) -> bool:
        """Compare after normalization (parsed data for structured files)"""
        if content_kind(path) == ContentKind.STRUCTURED:
            try:
                return diff_engine.load_structured(existing) == diff_engine.load_structured(incoming)
            except ValueError:
                return False
        return existing.strip() == incoming.strip()

    def detect_conflict(self, path: Path, existing: Optional[str], incoming: str,
                        component: Optional[str] = None) -> Optional[ConflictRecord]:
        """
        Classify the discrepancy at a path

        Returns:
            ConflictRecord with an ``unresolved`` resolution, or None when
            there is nothing on disk or the contents are equivalent
        """
        if existing is None or self.contents_equal(path, existing, incoming):
            return None

        details: Dict[str, int] = {}
        kind = ConflictKind.MODIFICATION
        try:
            if content_kind(path) == ContentKind.STRUCTURED:
                changes = diff_engine.diff(diff_engine.load_structured(existing),
                                           diff_engine.load_structured(incoming))
            else:
                changes = diff_engine.diff(existing, incoming)
            details = changes.counts()
            if changes.additions and not changes.modifications and not changes.deletions:
                kind = ConflictKind.ADDITION
            elif changes.deletions and not changes.modifications and not changes.additions:
                kind = ConflictKind.DELETION
        except ValueError:
            details = {"unparsable": 1}

        return ConflictRecord(
            path=Path(path),
            kind=kind,
            existing_content=existing,
            incoming_content=incoming,
            resolution=Resolution.UNRESOLVED,
            component=component,
            details=details
        )

    async def resolve(self,
                      path: Path,
                      incoming_content: str,
                      category: str,
                      strategy: ConflictStrategy,
                      merge_strategy: Optional[MergeStrategy] = None,
                      *,
                      existing_content: Any = _READ_FROM_DISK,
                      manifest: Optional[BackupManifest] = None,
                      dry_run: bool = False) -> ResolutionResult:
        """
        Resolve incoming content against the current content at ``path``

        Nothing is written here; the caller writes ``final_content`` when it
        is not None.

        Args:
            path: Destination file
            incoming_content: Content that would be written
            category: Component name, used in messages and records
            strategy: Conflict strategy
            merge_strategy: Sub-strategy for ``merge``
            existing_content: Current content if already loaded (None means absent)
            manifest: Active backup manifest for the ``backup`` strategy
            dry_run: Do not take snapshots

        Returns:
            ResolutionResult
        """
        path = Path(path)
        if existing_content is _READ_FROM_DISK:
            existing_content = await read_text_async(path)

        conflict = self.detect_conflict(path, existing_content, incoming_content, category)
        if conflict is None:
            return ResolutionResult(resolved=True, final_content=incoming_content)

        result = ResolutionResult(resolved=False, conflict=conflict)

        if strategy == ConflictStrategy.PROMPT:
            chosen = await self._ask(conflict)
            if chosen is None or chosen == ConflictStrategy.PROMPT:
                result.add_warning(
                    WarningCode.CONFLICT_PROMPT_REQUIRED,
                    f"Conflict at {path} needs a decision; left unchanged",
                    path=str(path), component=category
                )
                return result
            strategy = chosen

        if strategy == ConflictStrategy.SKIP:
            conflict.resolution = Resolution.SKIPPED
            result.resolved = True
            result.add_warning(WarningCode.CONFLICT_SKIPPED, f"Kept existing {path}",
                               path=str(path), component=category)

        elif strategy == ConflictStrategy.OVERWRITE:
            conflict.resolution = Resolution.OVERWRITTEN
            result.resolved = True
            result.final_content = incoming_content
            result.add_warning(WarningCode.FILE_OVERWRITTEN, f"Overwrote {path}",
                               path=str(path), component=category)

        elif strategy == ConflictStrategy.BACKUP:
            if not dry_run:
                await self._snapshot(path, manifest, result)
            conflict.resolution = Resolution.BACKED_UP
            result.resolved = True
            result.final_content = incoming_content
            result.add_warning(WarningCode.FILE_BACKED_UP, f"Backed up and overwrote {path}",
                               path=str(path), component=category,
                               backup=str(result.backup_path) if result.backup_path else None)

        elif strategy == ConflictStrategy.MERGE:
            merged = self.merge(path, existing_content, incoming_content, merge_strategy, result)
            if merged is not None:
                conflict.resolution = Resolution.MERGED
                result.resolved = True
                result.final_content = merged

        return result

    async def _ask(self, conflict: ConflictRecord) -> Optional[ConflictStrategy]:
        if self.prompter is None:
            return None
        answer = self.prompter(conflict)
        if inspect.isawaitable(answer):
            answer = await answer
        return answer

    async def _snapshot(self, path: Path, manifest: Optional[BackupManifest],
                        result: ResolutionResult) -> None:
        """Back up ``path`` before it is overwritten; failures become warnings"""
        if self.backup_service is None:
            result.add_warning(WarningCode.BACKUP_FAILED, f"No backup location configured for {path}",
                               path=str(path))
            return
        try:
            if manifest is None:
                manifest = await self.backup_service.create_backup([path])
                result.backup_path = manifest.backup_paths[0] if manifest.backup_paths else None
            else:
                result.backup_path = (await self.backup_service.snapshot(manifest, path)
                                      or manifest.backup_for(path))
        except BackupError as e:
            logger.warning(str(e))
            result.add_warning(WarningCode.BACKUP_FAILED, str(e), path=str(path))

    def merge(self, path: Path, existing: str, incoming: str,
              merge_strategy: Optional[MergeStrategy],
              result: ResolutionResult) -> Optional[str]:
        """
        Merge existing and incoming content

        Returns:
            Merged content, or None if merging failed (an error is added)
        """
        kind = content_kind(path)
        allowed = STRUCTURED_MERGE_STRATEGIES if kind == ContentKind.STRUCTURED else PROSE_MERGE_STRATEGIES
        if merge_strategy is None:
            merge_strategy = DEFAULT_MERGE[kind]
        elif merge_strategy not in allowed:
            fallback = DEFAULT_MERGE[kind]
            result.add_warning(
                WarningCode.MERGE_STRATEGY_FALLBACK,
                f"{merge_strategy.value} does not apply to {kind.value} content at {path}; "
                f"using {fallback.value}",
                path=str(path)
            )
            merge_strategy = fallback

        if kind == ContentKind.PROSE:
            if merge_strategy == MergeStrategy.TASK_STATUS_PRESERVE:
                return diff_engine.preserve_task_status(existing, incoming)
            return diff_engine.section_merge(existing, incoming)

        try:
            existing_data = diff_engine.load_structured(existing)
            incoming_data = diff_engine.load_structured(incoming)
        except ValueError as e:
            result.add_error(ErrorCode.MERGE_ERROR, f"Cannot merge {path}: invalid JSON ({e})",
                             path=str(path))
            return None

        if merge_strategy == MergeStrategy.ARRAY_APPEND:
            merged = diff_engine.array_append_merge(existing_data, incoming_data)
        else:
            merged = diff_engine.deep_merge(existing_data, incoming_data)
        return diff_engine.dump_structured(merged)

    def suggest_strategy(self, component: str) -> Tuple[ConflictStrategy, Optional[MergeStrategy]]:
        """Recommended strategy for a component type"""
        return SUGGESTED_STRATEGIES.get(component, (ConflictStrategy.OVERWRITE, None))

    def conflict_report(self, records: List[ConflictRecord]) -> Dict[str, Any]:
        """Summarize conflicts by kind, resolution and component"""
        return {
            "total": len(records),
            "by_kind": dict(Counter(r.kind.value for r in records)),
            "by_resolution": dict(Counter(r.resolution.value for r in records)),
            "by_component": dict(Counter(r.component or "unknown" for r in records)),
            "unresolved": [str(r.path) for r in records if r.resolution == Resolution.UNRESOLVED],
            "suggestions": {
                component: {
                    "strategy": strategy.value,
                    "merge_strategy": merge.value if merge else None
                }
                for component in sorted({r.component for r in records if r.component})
                for strategy, merge in [self.suggest_strategy(component)]
            }
        }

    def format_conflict(self, record: ConflictRecord) -> str:
        """Render a conflict's changes as text"""
        try:
            if content_kind(record.path) == ContentKind.STRUCTURED:
                changes = diff_engine.diff(json.loads(record.existing_content or "{}"),
                                           json.loads(record.incoming_content or "{}"))
            else:
                changes = diff_engine.diff(record.existing_content or "", record.incoming_content or "")
        except ValueError:
            return "(unparsable existing content)"
        return diff_engine.format_diff(changes)
