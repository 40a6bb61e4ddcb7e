# context_deploy/api/__init__.py
"""API layer for context-deploy"""

from .exceptions import (
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
