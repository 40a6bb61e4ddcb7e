# context_deploy/services/__init__.py
"""Business logic services for context-deploy

The deployment orchestrator lives in ``services.deploy_service``; it depends
on the component handlers, which in turn use the services exported here.
"""

from .backup_service import BackupService
from .config_service import ConfigService
from .conflict_resolver import ConflictResolver
from .lock_service import LockService

__all__ = [
    "BackupService",
    "ConfigService",
    "ConflictResolver",
    "LockService",
]
