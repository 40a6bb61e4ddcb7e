# context_deploy/handlers/prose.py
"""Handlers for prose (markdown) components"""

from typing import Any, List

from ..constants import ContentKind
from ..core.path_resolver import PathResolver
from ..core.validation_engine import normalize_collection, PROJECT_KEYS
from .base import ComponentHandler, PlannedFile


class ProseCollectionHandler(ComponentHandler):
    """One markdown document per named item (steering, specs, agents, commands, prompts)

    The item's ``content`` is the document body; its remaining fields become
    the front matter header.
    """

    def plan(self, data: Any, paths: PathResolver) -> List[PlannedFile]:
        planned = []
        for name, item in normalize_collection(data):
            body = item.get("content", "")
            if not isinstance(body, str):
                raise ValueError(f"item '{name}' content must be text")
            header = {"name": name}
            header.update({k: v for k, v in item.items() if k not in ("name", "content")})
            path = paths.item_path(self.platform, self.component, name)
            planned.append(PlannedFile(path, ContentKind.PROSE, body, header=header, label=name))
        return planned


class ClaudeProjectHandler(ComponentHandler):
    """Project-level files: .claude/settings.json, CLAUDE.md and .mcp.json"""

    def plan(self, data: Any, paths: PathResolver) -> List[PlannedFile]:
        if not isinstance(data, dict):
            raise ValueError(f"expected a mapping, got {type(data).__name__}")
        unknown = sorted(set(data) - set(PROJECT_KEYS))
        if unknown:
            raise ValueError(f"unknown keys {', '.join(unknown)}")

        settings_path, instructions_path, mcp_path = paths.targets(self.platform, self.component)
        planned = []
        if data.get("settings"):
            planned.append(PlannedFile(settings_path, ContentKind.STRUCTURED, data["settings"], label="settings"))
        if data.get("instructions"):
            planned.append(PlannedFile(instructions_path, ContentKind.PROSE, data["instructions"],
                                       label="instructions"))
        if data.get("mcp"):
            planned.append(PlannedFile(mcp_path, ContentKind.STRUCTURED, data["mcp"], label="mcp"))
        return planned
