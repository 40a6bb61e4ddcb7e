# context_deploy/models/__init__.py
"""Data models for context-deploy"""

from .context import Context, ContextMetadata, PlatformBundle
from .options import DeploymentOptions, TargetContext
from .result import (
    OperationStatus,
    ConflictKind,
    Resolution,
    ErrorDetail,
    WarningDetail,
    ConflictRecord,
    ValidationResult,
    ResolutionResult,
    HandlerResult,
    DeploymentSummary,
    DeploymentResult,
    RollbackResult,
)
from .lock import Lock
from .backup import BackupManifest
from .config import DeployConfig

__all__ = [
    # Context models
    "Context",
    "ContextMetadata",
    "PlatformBundle",

    # Option models
    "DeploymentOptions",
    "TargetContext",

    # Result models
    "OperationStatus",
    "ConflictKind",
    "Resolution",
    "ErrorDetail",
    "WarningDetail",
    "ConflictRecord",
    "ValidationResult",
    "ResolutionResult",
    "HandlerResult",
    "DeploymentSummary",
    "DeploymentResult",
    "RollbackResult",

    # Infrastructure models
    "Lock",
    "BackupManifest",
    "DeployConfig",
]
