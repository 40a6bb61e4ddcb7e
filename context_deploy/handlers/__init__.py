# context_deploy/handlers/__init__.py
"""Component handlers"""

from .base import ComponentHandler, PlannedFile, render_front_matter, split_front_matter
from .structured import StructuredFileHandler, ScopedSettingsHandler, StructuredCollectionHandler
from .prose import ProseCollectionHandler, ClaudeProjectHandler
from .registry import HANDLER_CLASSES, create_handler

__all__ = [
    "ComponentHandler",
    "PlannedFile",
    "render_front_matter",
    "split_front_matter",
    "StructuredFileHandler",
    "ScopedSettingsHandler",
    "StructuredCollectionHandler",
    "ProseCollectionHandler",
    "ClaudeProjectHandler",
    "HANDLER_CLASSES",
    "create_handler",
]
