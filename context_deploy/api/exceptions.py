"""Exception definitions for context-deploy"""

from ..constants import ErrorCode, Severity


class ContextDeployError(Exception):
    """Base exception for context-deploy"""

    def __init__(self, message: str, error_code: str = None,
                 severity: Severity = Severity.ERROR):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.severity = severity


class ValidationError(ContextDeployError):
    """Context shape or content validation error"""

    def __init__(self, message: str, errors: list = None):
        super().__init__(message, ErrorCode.VALIDATION_ERROR)
        self.errors = errors or []


class InvalidOptionsError(ContextDeployError):
    """Invalid combination of deployment options"""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.INVALID_OPTIONS)


class ConfigError(ContextDeployError):
    """Configuration error"""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.CONFIG_ERROR)


class SecurityError(ContextDeployError):
    """Unsafe content detected in a context"""

    def __init__(self, message: str, blockers: list = None):
        super().__init__(message, ErrorCode.SECURITY_CHECK_FAILED, Severity.CRITICAL)
        self.blockers = blockers or []


class LockError(ContextDeployError):
    """Lock acquisition or release error"""

    def __init__(self, message: str, resource: str = None, error_code: str = ErrorCode.LOCK_ERROR):
        super().__init__(message, error_code)
        self.resource = resource


class LockTimeoutError(LockError):
    """A valid lock was held by someone else for the whole timeout"""

    def __init__(self, resource: str, timeout: float, holder_pid: int = None):
        message = f"Timed out after {timeout:.1f}s waiting for lock: {resource}"
        if holder_pid:
            message += f" (held by pid {holder_pid})"
        super().__init__(message, resource, ErrorCode.LOCK_TIMEOUT)
        self.timeout = timeout
        self.holder_pid = holder_pid


class ComponentDeployError(ContextDeployError):
    """Failure isolated to a single component"""

    def __init__(self, component: str, message: str):
        super().__init__(f"{component}: {message}", ErrorCode.COMPONENT_DEPLOYMENT_ERROR)
        self.component = component


class BackupError(ContextDeployError):
    """Snapshot or restore failure"""

    def __init__(self, message: str, path: str = None):
        super().__init__(message, ErrorCode.BACKUP_FAILED, Severity.WARNING)
        self.path = path


class FileSystemError(ContextDeployError):
    """Permission or I/O failure on a single file"""

    def __init__(self, message: str, path: str = None):
        super().__init__(message, ErrorCode.FILE_SYSTEM_ERROR)
        self.path = path
