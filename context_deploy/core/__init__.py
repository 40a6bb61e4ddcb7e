"""Core functionality for context-deploy"""

from .path_resolver import (
    PathResolver,
    PLATFORM_LAYOUTS,
    ComponentLayout,
    Layout,
    Scope,
    available_components,
    get_layout,
)
from .validation_engine import ValidationEngine, normalize_collection, split_scoped_settings
from .security_scanner import SecurityScanner, SecurityScanResult, SecurityFinding
from .performance_optimizer import (
    PerformanceOptimizer,
    TTLCache,
    Workload,
    ExecutionPlan,
    DispatchMode,
    IOMode,
)
from . import diff_engine

__all__ = [
    "PathResolver",
    "PLATFORM_LAYOUTS",
    "ComponentLayout",
    "Layout",
    "Scope",
    "available_components",
    "get_layout",
    "ValidationEngine",
    "normalize_collection",
    "split_scoped_settings",
    "SecurityScanner",
    "SecurityScanResult",
    "SecurityFinding",
    "PerformanceOptimizer",
    "TTLCache",
    "Workload",
    "ExecutionPlan",
    "DispatchMode",
    "IOMode",
    "diff_engine",
]
