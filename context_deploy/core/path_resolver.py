"""Per-platform on-disk layout and path resolution"""

import hashlib
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Tuple

from ..constants import Platform
from ..utils.file_utils import sanitize_file_name


class Scope(Enum):
    HOME = "home"
    PROJECT = "project"


class Layout(Enum):
    """How a component maps onto files"""
    STRUCTURED_FILE = "structured-file"
    SCOPED_SETTINGS = "scoped-settings"
    STRUCTURED_COLLECTION = "structured-collection"
    PROSE_COLLECTION = "prose-collection"
    CLAUDE_PROJECT = "claude-project"


@dataclass(frozen=True)
class ComponentLayout:
    """Where and how one component is written

    ``targets`` holds (scope, relative path) pairs. Collections use a single
    directory target and write ``<name><suffix>`` files inside it.
    """

    name: str
    layout: Layout
    targets: Tuple[Tuple[Scope, str], ...]
    suffix: str = ""


def _layouts(*items: ComponentLayout) -> Dict[str, ComponentLayout]:
    return {item.name: item for item in items}


PLATFORM_LAYOUTS: Dict[Platform, Dict[str, ComponentLayout]] = {
    Platform.CLAUDE_CODE: _layouts(
        ComponentLayout("settings", Layout.STRUCTURED_FILE,
                        ((Scope.HOME, ".claude/settings.json"),)),
        ComponentLayout("agents", Layout.PROSE_COLLECTION,
                        ((Scope.HOME, ".claude/agents"),), ".md"),
        ComponentLayout("commands", Layout.PROSE_COLLECTION,
                        ((Scope.HOME, ".claude/commands"),), ".md"),
        ComponentLayout("project", Layout.CLAUDE_PROJECT,
                        ((Scope.PROJECT, ".claude/settings.json"),
                         (Scope.PROJECT, "CLAUDE.md"),
                         (Scope.PROJECT, ".mcp.json"))),
    ),
    Platform.KIRO_IDE: _layouts(
        ComponentLayout("settings", Layout.SCOPED_SETTINGS,
                        ((Scope.HOME, ".kiro/settings.json"),
                         (Scope.PROJECT, ".kiro/settings.json"))),
        ComponentLayout("steering", Layout.PROSE_COLLECTION,
                        ((Scope.PROJECT, ".kiro/steering"),), ".md"),
        ComponentLayout("specs", Layout.PROSE_COLLECTION,
                        ((Scope.PROJECT, ".kiro/specs"),), ".md"),
        ComponentLayout("hooks", Layout.STRUCTURED_COLLECTION,
                        ((Scope.PROJECT, ".kiro/hooks"),), ".json"),
        ComponentLayout("agents", Layout.STRUCTURED_COLLECTION,
                        ((Scope.HOME, ".kiro/agents"),), ".json"),
        ComponentLayout("templates", Layout.STRUCTURED_COLLECTION,
                        ((Scope.HOME, ".kiro/templates"),), ".json"),
    ),
    Platform.CURSOR_IDE: _layouts(
        ComponentLayout("settings", Layout.SCOPED_SETTINGS,
                        ((Scope.HOME, ".cursor/User/settings.json"),
                         (Scope.PROJECT, ".cursor/settings.json"))),
        ComponentLayout("extensions", Layout.STRUCTURED_FILE,
                        ((Scope.PROJECT, ".cursor/extensions.json"),)),
        ComponentLayout("snippets", Layout.STRUCTURED_COLLECTION,
                        ((Scope.HOME, ".cursor/User/snippets"),), ".json"),
        ComponentLayout("ai-prompts", Layout.PROSE_COLLECTION,
                        ((Scope.PROJECT, ".cursor/ai/prompts"),), ".md"),
        ComponentLayout("tasks", Layout.STRUCTURED_FILE,
                        ((Scope.PROJECT, ".cursor/tasks.json"),)),
        ComponentLayout("launch", Layout.STRUCTURED_FILE,
                        ((Scope.PROJECT, ".cursor/launch.json"),)),
    ),
}


def available_components(platform: Platform) -> List[str]:
    """Component names supported by a platform, in deployment order"""
    return list(PLATFORM_LAYOUTS[platform])


def get_layout(platform: Platform, component: str) -> ComponentLayout:
    try:
        return PLATFORM_LAYOUTS[platform][component]
    except KeyError:
        raise KeyError(f"Unknown component '{component}' for platform {platform.value}")


class PathResolver:
    """Resolves component destinations against a home and a project root"""

    def __init__(self, home_dir: Path, project_dir: Path):
        """Initialize path resolver

        Args:
            home_dir: User home directory
            project_dir: Project root directory
        """
        self.home_dir = Path(home_dir)
        self.project_dir = Path(project_dir)

    def root_for(self, scope: Scope) -> Path:
        return self.home_dir if scope == Scope.HOME else self.project_dir

    def resolve(self, scope: Scope, relative: str) -> Path:
        """Resolve a layout-relative path"""
        return self.root_for(scope) / relative

    def targets(self, platform: Platform, component: str) -> List[Path]:
        """All fixed destinations of a component (directories for collections)"""
        layout = get_layout(platform, component)
        return [self.resolve(scope, relative) for scope, relative in layout.targets]

    def item_path(self, platform: Platform, component: str, item_name: str) -> Path:
        """Destination of one item of a collection component

        The item name is sanitized, and the resulting path is guaranteed to
        stay inside the collection directory.
        """
        layout = get_layout(platform, component)
        scope, relative = layout.targets[0]
        directory = self.resolve(scope, relative)
        path = directory / f"{sanitize_file_name(item_name)}{layout.suffix}"
        if path.resolve().parent != directory.resolve():
            raise ValueError(f"Item name escapes its directory: {item_name!r}")
        return path

    def lock_resource(self, platform: Platform) -> str:
        """Lock name for a (platform, target directories) pair"""
        roots = f"{self.home_dir.resolve()}|{self.project_dir.resolve()}"
        digest = hashlib.sha1(roots.encode("utf-8")).hexdigest()[:12]
        return f"{platform.value}-{digest}"
