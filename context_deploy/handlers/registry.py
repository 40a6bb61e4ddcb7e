# context_deploy/handlers/registry.py
"""Handler lookup per platform component"""

from typing import Dict, Optional, Type

from ..constants import Platform
from ..core.path_resolver import Layout, get_layout
from ..services.backup_service import BackupService
from ..services.conflict_resolver import ConflictResolver
from .base import ComponentHandler
from .prose import ProseCollectionHandler, ClaudeProjectHandler
from .structured import StructuredFileHandler, ScopedSettingsHandler, StructuredCollectionHandler

HANDLER_CLASSES: Dict[Layout, Type[ComponentHandler]] = {
    Layout.STRUCTURED_FILE: StructuredFileHandler,
    Layout.SCOPED_SETTINGS: ScopedSettingsHandler,
    Layout.STRUCTURED_COLLECTION: StructuredCollectionHandler,
    Layout.PROSE_COLLECTION: ProseCollectionHandler,
    Layout.CLAUDE_PROJECT: ClaudeProjectHandler,
}


def create_handler(platform: Platform, component: str,
                   resolver: ConflictResolver,
                   backup_service: Optional[BackupService] = None,
                   **kwargs) -> ComponentHandler:
    """
    Build the handler for one component of a platform

    Raises:
        KeyError: If the platform has no such component
    """
    layout = get_layout(platform, component)
    handler_class = HANDLER_CLASSES[layout.layout]
    return handler_class(platform, component, resolver, backup_service, **kwargs)
