# context_deploy/handlers/structured.py
"""Handlers for structured (JSON) configuration components"""

from typing import Any, List

from ..constants import ContentKind
from ..core.path_resolver import PathResolver
from ..core.validation_engine import normalize_collection, split_scoped_settings
from .base import ComponentHandler, PlannedFile


class StructuredFileHandler(ComponentHandler):
    """A single settings-like file (settings, extensions, tasks, launch)"""

    def plan(self, data: Any, paths: PathResolver) -> List[PlannedFile]:
        if not isinstance(data, dict):
            raise ValueError(f"expected a mapping, got {type(data).__name__}")
        path = paths.targets(self.platform, self.component)[0]
        return [PlannedFile(path, ContentKind.STRUCTURED, data, label=self.component)]


class ScopedSettingsHandler(ComponentHandler):
    """Settings split into a global (home) file and a project file"""

    def plan(self, data: Any, paths: PathResolver) -> List[PlannedFile]:
        if not isinstance(data, dict):
            raise ValueError(f"expected a mapping, got {type(data).__name__}")
        global_path, project_path = paths.targets(self.platform, self.component)
        destinations = {"global": global_path, "project": project_path}

        planned = []
        for scope, values in split_scoped_settings(data).items():
            if not isinstance(values, dict):
                raise ValueError(f"{scope} settings must be a mapping")
            if values:
                planned.append(PlannedFile(destinations[scope], ContentKind.STRUCTURED, values, label=scope))
        return planned


class StructuredCollectionHandler(ComponentHandler):
    """One JSON file per named item (hooks, agents, templates, snippets)"""

    def plan(self, data: Any, paths: PathResolver) -> List[PlannedFile]:
        planned = []
        for name, item in normalize_collection(data):
            document = item if "name" in item else {"name": name, **item}
            path = paths.item_path(self.platform, self.component, name)
            planned.append(PlannedFile(path, ContentKind.STRUCTURED, document, label=name))
        return planned
