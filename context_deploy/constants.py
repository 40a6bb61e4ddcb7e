"""Global constants for context-deploy"""

from enum import Enum
import re

APP_NAME = "context-deploy"
LOG_FORMAT = "%(message)s"

# Context schema versions this engine understands (major must match)
CONTEXT_SPEC_VERSION = "1.0.0"

# Configuration
PROJECT_CONFIG_FILE = ".context-deploy.yaml"
USER_CONFIG_DIR = ".context-deploy"
USER_CONFIG_FILE = "config.yaml"
DEFAULT_BACKUP_DIR = "~/.context-deploy/backups"
DEFAULT_LOCK_DIR = "~/.context-deploy/locks"
BACKUP_MANIFEST_FILE = "manifest.json"
BACKUP_DIR_PREFIX = "backup_"
LOCK_FILE_SUFFIX = ".lock"

# Lock defaults (seconds)
DEFAULT_LOCK_TIMEOUT = 30.0
DEFAULT_LOCK_RETRY_INTERVAL = 0.1
DEFAULT_LOCK_STALE_AFTER = 300.0

# Performance defaults
DEFAULT_STREAMING_THRESHOLD = 10 * 1024 * 1024  # 10MB
DEFAULT_CHUNK_SIZE = 64 * 1024  # 64KB
DEFAULT_PARALLEL_THRESHOLD = 2  # components
DEFAULT_MAX_CONCURRENCY = 4
DEFAULT_CACHE_TTL = 300.0  # seconds
DEFAULT_CACHE_MAX_ENTRIES = 100

# Retry
DEFAULT_RETRY_COUNT = 3
DEFAULT_RETRY_DELAY = 0.05  # seconds

# Backups
DEFAULT_BACKUP_RETENTION_DAYS = 30

# Prose documents
SECTION_DIVIDER = "\n\n---\n\n"
FRONT_MATTER_DELIMITER = "---"
FILTERED_VALUE = "[FILTERED]"

# Environment variables
ENV_CONFIG_PATH = "CONTEXT_DEPLOY_CONFIG"
ENV_LOG_LEVEL = "CONTEXT_DEPLOY_LOG_LEVEL"

# Validation patterns
ILLEGAL_FILENAME_CHARS = re.compile(r'["*/:<>?\\|]')


class Platform(Enum):
    CLAUDE_CODE = "claude-code"
    KIRO_IDE = "kiro-ide"
    CURSOR_IDE = "cursor-ide"


class ConflictStrategy(Enum):
    SKIP = "skip"
    OVERWRITE = "overwrite"
    MERGE = "merge"
    BACKUP = "backup"
    PROMPT = "prompt"


class MergeStrategy(Enum):
    DEEP_MERGE = "deep-merge"
    ARRAY_APPEND = "array-append"
    SECTION_MERGE = "section-merge"
    TASK_STATUS_PRESERVE = "task-status-preserve"


STRUCTURED_MERGE_STRATEGIES = (MergeStrategy.DEEP_MERGE, MergeStrategy.ARRAY_APPEND)
PROSE_MERGE_STRATEGIES = (MergeStrategy.SECTION_MERGE, MergeStrategy.TASK_STATUS_PRESERVE)


class ContentKind(Enum):
    STRUCTURED = "structured"
    PROSE = "prose"


class Severity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ExitCode:
    SUCCESS = 0
    GENERAL_ERROR = 1
    VALIDATION_ERROR = 2
    SECURITY_ERROR = 4
    LOCK_ERROR = 5
    CONFLICT_ERROR = 6
    ROLLBACK_ERROR = 7


class ErrorCode:
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_OPTIONS = "INVALID_OPTIONS"
    CONFIG_ERROR = "CONFIG_ERROR"
    SECURITY_CHECK_FAILED = "SECURITY_CHECK_FAILED"
    LOCK_TIMEOUT = "LOCK_TIMEOUT"
    LOCK_ERROR = "LOCK_ERROR"
    COMPONENT_DEPLOYMENT_ERROR = "COMPONENT_DEPLOYMENT_ERROR"
    FILE_SYSTEM_ERROR = "FILE_SYSTEM_ERROR"
    MERGE_ERROR = "MERGE_ERROR"
    BACKUP_FAILED = "BACKUP_FAILED"
    ROLLBACK_PARTIAL = "ROLLBACK_PARTIAL"
    ROLLED_BACK = "ROLLED_BACK"


class WarningCode:
    CONFLICT_SKIPPED = "CONFLICT_SKIPPED"
    CONFLICT_PROMPT_REQUIRED = "CONFLICT_PROMPT_REQUIRED"
    FILE_OVERWRITTEN = "FILE_OVERWRITTEN"
    FILE_BACKED_UP = "FILE_BACKED_UP"
    MERGE_STRATEGY_FALLBACK = "MERGE_STRATEGY_FALLBACK"
    BACKUP_FAILED = "BACKUP_FAILED"
    ROLLBACK_PARTIAL = "ROLLBACK_PARTIAL"
    COMPONENT_NOT_PRESENT = "COMPONENT_NOT_PRESENT"
    UNKNOWN_FIELDS = "UNKNOWN_FIELDS"
    NEWER_SCHEMA_VERSION = "NEWER_SCHEMA_VERSION"


# Display constants
EMOJI_SUCCESS = "✓"
EMOJI_ERROR = "✗"
EMOJI_WARNING = "⚠"
