# context_deploy/core/validation_engine.py
"""Boundary validation of contexts against a target platform"""

from typing import Any, Dict, List, Tuple

from packaging.version import parse, InvalidVersion

from ..constants import Platform, ErrorCode, WarningCode, CONTEXT_SPEC_VERSION
from ..models.context import Context
from ..models.result import ValidationResult
from .path_resolver import Layout, PLATFORM_LAYOUTS

SCOPED_SETTINGS_KEYS = ("global", "project")
PROJECT_KEYS = ("settings", "instructions", "mcp")


def normalize_collection(data: Any) -> List[Tuple[str, Dict[str, Any]]]:
    """
    Turn collection data into (name, item) pairs

    Accepts a list of items carrying a ``name`` or a mapping of name to item.
    A bare string item is taken as the item's ``content``.

    Raises:
        ValueError: If an item has no usable name
    """
    pairs = []
    if isinstance(data, dict):
        for name, item in data.items():
            if isinstance(item, str):
                item = {"content": item}
            elif not isinstance(item, dict):
                raise ValueError(f"Item '{name}' must be a mapping or text")
            pairs.append((str(name), item))
    elif isinstance(data, list):
        for index, item in enumerate(data):
            if not isinstance(item, dict):
                raise ValueError(f"Item #{index} must be a mapping")
            name = item.get("name")
            if not isinstance(name, str) or not name.strip():
                raise ValueError(f"Item #{index} has no name")
            pairs.append((name, item))
    else:
        raise ValueError(f"Expected a list or mapping, got {type(data).__name__}")
    return pairs


def split_scoped_settings(data: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Split settings into global/project parts; plain settings are global"""
    if data and set(data) <= set(SCOPED_SETTINGS_KEYS):
        return {scope: data.get(scope) or {} for scope in SCOPED_SETTINGS_KEYS if scope in data}
    return {"global": data}


class ValidationEngine:
    """Execute context validation"""

    def validate_spec_version(self, version: str) -> ValidationResult:
        """
        Check that a context schema version is understood

        Args:
            version: Version string from context metadata

        Returns:
            ValidationResult
        """
        result = ValidationResult()
        try:
            parsed = parse(version)
        except InvalidVersion:
            result.add_error(ErrorCode.VALIDATION_ERROR, f"Invalid context schema version: '{version}'")
            return result

        supported = parse(CONTEXT_SPEC_VERSION)
        if parsed.major != supported.major:
            result.add_error(
                ErrorCode.VALIDATION_ERROR,
                f"Unsupported context schema version {version} (supported: {supported.major}.x)"
            )
        elif parsed > supported:
            result.add_warning(
                WarningCode.NEWER_SCHEMA_VERSION,
                f"Context schema version {version} is newer than {CONTEXT_SPEC_VERSION}"
            )
        return result

    def validate(self, context: Context, platform: Platform) -> ValidationResult:
        """
        Validate a context for deployment to one platform

        Args:
            context: Context to validate
            platform: Target platform

        Returns:
            ValidationResult
        """
        result = self.validate_spec_version(context.metadata.spec_version)

        targets = context.metadata.target_platforms
        if targets and platform.value not in targets:
            result.add_error(
                ErrorCode.VALIDATION_ERROR,
                f"Context targets {', '.join(targets)}, not {platform.value}"
            )

        bundle = context.bundle(platform)
        if bundle is None or not bundle.components:
            result.add_error(
                ErrorCode.VALIDATION_ERROR,
                f"Context has no components for {platform.value}"
            )
            return result

        if bundle.extras:
            result.add_warning(
                WarningCode.UNKNOWN_FIELDS,
                f"Unrecognized {platform.value} fields preserved: {', '.join(sorted(bundle.extras))}"
            )

        layouts = PLATFORM_LAYOUTS[platform]
        for name, data in bundle.components.items():
            result.merge(self.validate_component(layouts[name].layout, name, data))

        return result

    def validate_component(self, layout: Layout, component: str, data: Any) -> ValidationResult:
        """Validate the shape of one component's data"""
        result = ValidationResult()

        def error(message: str) -> None:
            result.add_error(ErrorCode.VALIDATION_ERROR, f"{component}: {message}", component=component)

        if layout in (Layout.STRUCTURED_COLLECTION, Layout.PROSE_COLLECTION):
            try:
                items = normalize_collection(data)
            except ValueError as e:
                error(str(e))
                return result
            seen = set()
            for name, item in items:
                if name in seen:
                    error(f"duplicate item name '{name}'")
                seen.add(name)
                if layout == Layout.PROSE_COLLECTION and not isinstance(item.get("content", ""), str):
                    error(f"item '{name}' content must be text")
            return result

        if not isinstance(data, dict):
            error(f"expected a mapping, got {type(data).__name__}")
            return result

        if layout == Layout.SCOPED_SETTINGS:
            for scope, values in split_scoped_settings(data).items():
                if not isinstance(values, dict):
                    error(f"{scope} settings must be a mapping")
        elif layout == Layout.CLAUDE_PROJECT:
            unknown = sorted(set(data) - set(PROJECT_KEYS))
            if unknown:
                error(f"unknown keys {', '.join(unknown)}")
            if "settings" in data and not isinstance(data["settings"], dict):
                error("settings must be a mapping")
            if "mcp" in data and not isinstance(data["mcp"], dict):
                error("mcp must be a mapping")
            if "instructions" in data and not isinstance(data["instructions"], str):
                error("instructions must be text")

        return result
