"""Operation result models"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Any

from ..constants import Platform, Severity


class OperationStatus(Enum):
    """Operation status"""
    SUCCESS = "success"
    FAILED = "failed"
    PARTIAL = "partial"
    SKIPPED = "skipped"
    ROLLED_BACK = "rolled_back"
    IN_PROGRESS = "in_progress"


class ConflictKind(Enum):
    ADDITION = "addition"
    MODIFICATION = "modification"
    DELETION = "deletion"


class Resolution(Enum):
    SKIPPED = "skipped"
    OVERWRITTEN = "overwritten"
    BACKED_UP = "backed_up"
    MERGED = "merged"
    UNRESOLVED = "unresolved"


@dataclass
class ErrorDetail:
    """Detailed error information"""

    code: str
    message: str
    severity: Severity = Severity.ERROR
    context: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "context": self.context,
            "timestamp": self.timestamp.isoformat()
        }


@dataclass
class WarningDetail:
    """Non-fatal notice attached to a result"""

    code: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "context": self.context}


@dataclass
class ConflictRecord:
    """Discrepancy between incoming and existing content at one path"""

    path: Path
    kind: ConflictKind
    existing_content: Optional[str]
    incoming_content: Optional[str]
    resolution: Resolution
    component: Optional[str] = None
    details: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (content omitted, it can be large)"""
        return {
            "path": str(self.path),
            "kind": self.kind.value,
            "resolution": self.resolution.value,
            "component": self.component,
            "details": dict(self.details)
        }


class _IssueCollector:
    """Mixin for results that collect errors and warnings"""

    errors: List[ErrorDetail]
    warnings: List[WarningDetail]

    def add_error(self, code: str, message: str,
                  severity: Severity = Severity.ERROR, **context) -> None:
        """Add an error"""
        self.errors.append(ErrorDetail(code=code, message=message,
                                       severity=severity, context=context))

    def add_warning(self, code: str, message: str, **context) -> None:
        """Add a warning"""
        self.warnings.append(WarningDetail(code=code, message=message, context=context))


@dataclass
class ValidationResult(_IssueCollector):
    """Validation result"""

    is_valid: bool = True
    errors: List[ErrorDetail] = field(default_factory=list)
    warnings: List[WarningDetail] = field(default_factory=list)

    def add_error(self, code: str, message: str,
                  severity: Severity = Severity.ERROR, **context) -> None:
        super().add_error(code, message, severity, **context)
        self.is_valid = False

    def merge(self, other: "ValidationResult") -> None:
        """Merge another validation result"""
        self.is_valid = self.is_valid and other.is_valid
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)


@dataclass
class ResolutionResult(_IssueCollector):
    """Outcome of resolving one path

    ``final_content`` is None when nothing must be written (skipped, or
    left unresolved).
    """

    resolved: bool
    final_content: Optional[str] = None
    conflict: Optional[ConflictRecord] = None
    backup_path: Optional[Path] = None
    errors: List[ErrorDetail] = field(default_factory=list)
    warnings: List[WarningDetail] = field(default_factory=list)

    @property
    def skipped(self) -> bool:
        return self.final_content is None


@dataclass
class HandlerResult(_IssueCollector):
    """Outcome of deploying one component"""

    component: str
    deployed_files: List[Path] = field(default_factory=list)
    skipped_files: List[Path] = field(default_factory=list)
    conflicts: List[ConflictRecord] = field(default_factory=list)
    errors: List[ErrorDetail] = field(default_factory=list)
    warnings: List[WarningDetail] = field(default_factory=list)
    duration: float = 0.0

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "component": self.component,
            "success": self.success,
            "deployed_files": [str(p) for p in self.deployed_files],
            "skipped_files": [str(p) for p in self.skipped_files],
            "conflicts": [c.to_dict() for c in self.conflicts],
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "duration": self.duration
        }


@dataclass
class DeploymentSummary:
    """Counters reported with every deployment"""

    files_deployed: int = 0
    files_skipped: int = 0
    conflicts_resolved: int = 0
    backup_created: bool = False
    duration_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "files_deployed": self.files_deployed,
            "files_skipped": self.files_skipped,
            "conflicts_resolved": self.conflicts_resolved,
            "backup_created": self.backup_created,
            "duration_ms": self.duration_ms
        }


@dataclass
class DeploymentResult(_IssueCollector):
    """Result of one deployment run"""

    platform: Platform
    success: bool = False
    status: OperationStatus = OperationStatus.IN_PROGRESS
    deployed_components: List[str] = field(default_factory=list)
    skipped_components: List[str] = field(default_factory=list)
    conflicts: List[ConflictRecord] = field(default_factory=list)
    errors: List[ErrorDetail] = field(default_factory=list)
    warnings: List[WarningDetail] = field(default_factory=list)
    summary: DeploymentSummary = field(default_factory=DeploymentSummary)
    component_results: Dict[str, HandlerResult] = field(default_factory=dict)
    states: List[str] = field(default_factory=list)
    backup_path: Optional[Path] = None
    dry_run: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None

    @property
    def duration(self) -> Optional[float]:
        """Get operation duration in seconds"""
        if self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return None

    @property
    def unresolved_conflicts(self) -> List[ConflictRecord]:
        return [c for c in self.conflicts if c.resolution == Resolution.UNRESOLVED]

    @property
    def failed_components(self) -> List[str]:
        return [name for name, r in self.component_results.items() if not r.success]

    def has_error(self, code: str) -> bool:
        return any(e.code == code for e in self.errors)

    def add_component_result(self, result: HandlerResult) -> None:
        """Fold one handler result into the deployment result"""
        self.component_results[result.component] = result
        if result.success:
            self.deployed_components.append(result.component)
        else:
            self.skipped_components.append(result.component)
        self.conflicts.extend(result.conflicts)
        self.errors.extend(result.errors)
        self.warnings.extend(result.warnings)
        self.summary.files_skipped += len(result.skipped_files)
        self.summary.conflicts_resolved += sum(
            1 for c in result.conflicts if c.resolution != Resolution.UNRESOLVED
        )
        if not self.dry_run:
            self.summary.files_deployed += len(result.deployed_files)

    def complete(self, status: OperationStatus) -> None:
        """Mark operation as complete"""
        self.end_time = datetime.now()
        self.status = status
        self.success = status in (OperationStatus.SUCCESS, OperationStatus.PARTIAL)
        self.summary.duration_ms = int((self.end_time - self.start_time).total_seconds() * 1000)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "success": self.success,
            "status": self.status.value,
            "platform": self.platform.value,
            "dry_run": self.dry_run,
            "deployed_components": list(self.deployed_components),
            "skipped_components": list(self.skipped_components),
            "conflicts": [c.to_dict() for c in self.conflicts],
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "summary": self.summary.to_dict(),
            "components": {k: v.to_dict() for k, v in self.component_results.items()},
            "states": list(self.states),
            "backup_path": str(self.backup_path) if self.backup_path else None,
            "metadata": self.metadata
        }


@dataclass
class RollbackResult(_IssueCollector):
    """Result of restoring a backup manifest"""

    files_restored: List[Path] = field(default_factory=list)
    files_removed: List[Path] = field(default_factory=list)
    errors: List[ErrorDetail] = field(default_factory=list)
    warnings: List[WarningDetail] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Rollback never fails outright; warnings mean it was partial"""
        return not self.warnings

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "files_restored": [str(p) for p in self.files_restored],
            "files_removed": [str(p) for p in self.files_removed],
            "warnings": [w.to_dict() for w in self.warnings]
        }
