"""Context Deploy - deploy normalized AI assistant context onto IDE and CLI platforms.

A context bundle (settings, agents, commands, steering documents, specs,
hooks and so on) is validated, scanned for secrets and unsafe commands, and
written onto the on-disk layout of claude-code, kiro-ide or cursor-ide under
a cross-process lock, with conflict resolution and rollback.
"""

from .__version__ import __version__, __version_info__, __author__, __email__, __license__

# Core API
from .api.deployer import Deployer, deploy

# Constants
from .constants import Platform, ConflictStrategy, MergeStrategy

# Data models
from .models.context import Context, ContextMetadata
from .models.options import DeploymentOptions, TargetContext
from .models.result import DeploymentResult, OperationStatus, RollbackResult
from .models.config import DeployConfig

# Exceptions
from .api.exceptions import (
    ContextDeployError,
    ValidationError,
    InvalidOptionsError,
    ConfigError,
    SecurityError,
    LockError,
    LockTimeoutError,
    ComponentDeployError,
    BackupError,
    FileSystemError,
)

__all__ = [
    # Version information
    "__version__",
    "__version_info__",
    "__author__",
    "__email__",
    "__license__",

    # Main classes
    "Deployer",

    # Core API functions
    "deploy",

    # Constants
    "Platform",
    "ConflictStrategy",
    "MergeStrategy",

    # Data models
    "Context",
    "ContextMetadata",
    "DeploymentOptions",
    "TargetContext",
    "DeploymentResult",
    "OperationStatus",
    "RollbackResult",
    "DeployConfig",

    # Exceptions
    "ContextDeployError",
    "ValidationError",
    "InvalidOptionsError",
    "ConfigError",
    "SecurityError",
    "LockError",
    "LockTimeoutError",
    "ComponentDeployError",
    "BackupError",
    "FileSystemError",
]
