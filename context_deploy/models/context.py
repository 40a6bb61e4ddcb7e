# context_deploy/models/context.py
"""Context bundle models

A Context is the normalized, platform-agnostic configuration bundle handed to
the engine. It is treated as read-only: accessors hand out deep copies.
"""

import copy
import hashlib
import json
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Tuple

from ..constants import Platform, CONTEXT_SPEC_VERSION

KNOWN_SECTIONS = ("metadata", "personal", "project", "prompts", "tools", "platforms")


@dataclass(frozen=True)
class ContextMetadata:
    """Descriptive information about a context bundle"""

    title: str = ""
    version: str = "1.0.0"
    created_at: Optional[str] = None
    source_platform: Optional[str] = None
    target_platforms: Tuple[str, ...] = ()
    spec_version: str = CONTEXT_SPEC_VERSION

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContextMetadata":
        """Create from dictionary (accepts camelCase keys)"""
        if not isinstance(data, dict):
            raise TypeError(f"metadata must be a mapping, got {type(data).__name__}")
        targets = data.get("target_platforms", data.get("targetPlatforms", ()))
        return cls(
            title=data.get("title", ""),
            version=str(data.get("version", "1.0.0")),
            created_at=data.get("created_at", data.get("createdAt")),
            source_platform=data.get("source_platform", data.get("sourcePlatform")),
            target_platforms=tuple(targets or ()),
            spec_version=str(data.get("spec_version", data.get("specVersion", CONTEXT_SPEC_VERSION)))
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "title": self.title,
            "version": self.version,
            "created_at": self.created_at,
            "source_platform": self.source_platform,
            "target_platforms": list(self.target_platforms),
            "spec_version": self.spec_version
        }


@dataclass(frozen=True)
class PlatformBundle:
    """Component data for one platform

    ``components`` is keyed by component name. Keys of the platform subtree
    that are not components of that platform are kept in ``extras``.
    """

    platform: Platform
    components: Dict[str, Any] = field(default_factory=dict)
    extras: Dict[str, Any] = field(default_factory=dict)

    def component_names(self) -> List[str]:
        return list(self.components)

    def get(self, component: str) -> Any:
        """Return a private copy of a component's data"""
        return copy.deepcopy(self.components.get(component))


@dataclass(frozen=True)
class Context:
    """Immutable deployment input bundle"""

    metadata: ContextMetadata = field(default_factory=ContextMetadata)
    personal: Dict[str, Any] = field(default_factory=dict)
    project: Dict[str, Any] = field(default_factory=dict)
    prompts: Dict[str, Any] = field(default_factory=dict)
    tools: Dict[str, Any] = field(default_factory=dict)
    platforms: Dict[Platform, PlatformBundle] = field(default_factory=dict)
    extras: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Context":
        """Build a context from a plain mapping

        Unknown top-level keys and unknown platform names are preserved in
        ``extras`` instead of being dropped.

        Args:
            data: Parsed context document

        Returns:
            Context instance
        """
        if not isinstance(data, dict):
            raise TypeError(f"Context must be a mapping, got {type(data).__name__}")

        data = copy.deepcopy(data)
        extras = {k: v for k, v in data.items() if k not in KNOWN_SECTIONS}

        platforms = {}
        raw_platforms = data.get("platforms") or {}
        if isinstance(raw_platforms, dict):
            unknown_platforms = {}
            for name, subtree in raw_platforms.items():
                try:
                    platform = Platform(name)
                except ValueError:
                    unknown_platforms[name] = subtree
                    continue
                platforms[platform] = _build_bundle(platform, subtree)
            if unknown_platforms:
                extras["platforms"] = unknown_platforms
        else:
            extras["platforms"] = raw_platforms

        return cls(
            metadata=ContextMetadata.from_dict(data.get("metadata") or {}),
            personal=data.get("personal") or {},
            project=data.get("project") or {},
            prompts=data.get("prompts") or {},
            tools=data.get("tools") or {},
            platforms=platforms,
            extras=extras
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to a plain mapping"""
        platforms = {
            platform.value: {**copy.deepcopy(bundle.components), **copy.deepcopy(bundle.extras)}
            for platform, bundle in self.platforms.items()
        }
        data = copy.deepcopy(self.extras)
        unknown = data.pop("platforms", None)
        if isinstance(unknown, dict):
            platforms.update(unknown)
        data.update({
            "metadata": self.metadata.to_dict(),
            "personal": copy.deepcopy(self.personal),
            "project": copy.deepcopy(self.project),
            "prompts": copy.deepcopy(self.prompts),
            "tools": copy.deepcopy(self.tools),
            "platforms": platforms
        })
        return data

    def bundle(self, platform: Platform) -> Optional[PlatformBundle]:
        return self.platforms.get(platform)

    def component_data(self, platform: Platform, component: str) -> Any:
        """Return a private copy of one component's data, or None"""
        bundle = self.platforms.get(platform)
        if bundle is None:
            return None
        return bundle.get(component)

    def fingerprint(self) -> str:
        """Stable SHA-256 of the context content"""
        payload = json.dumps(self.to_dict(), sort_keys=True, default=str)
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    def size_bytes(self, platform: Optional[Platform] = None) -> int:
        """Approximate serialized size, optionally for a single platform"""
        if platform is not None:
            bundle = self.platforms.get(platform)
            source = bundle.components if bundle else {}
        else:
            source = self.to_dict()
        return len(json.dumps(source, default=str).encode("utf-8"))


def _build_bundle(platform: Platform, subtree: Any) -> PlatformBundle:
    if not isinstance(subtree, dict):
        return PlatformBundle(platform=platform, extras={"_value": subtree})

    # core imports models, so the layout table is resolved lazily
    from ..core.path_resolver import PLATFORM_LAYOUTS

    known = PLATFORM_LAYOUTS[platform]
    components = {k: v for k, v in subtree.items() if k in known}
    extras = {k: v for k, v in subtree.items() if k not in known}
    return PlatformBundle(platform=platform, components=components, extras=extras)
