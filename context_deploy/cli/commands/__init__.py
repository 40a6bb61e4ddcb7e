# context_deploy/cli/commands/__init__.py
"""CLI commands"""

from . import deploy
from . import backup
from . import locks

__all__ = [
    "deploy",
    "backup",
    "locks",
]
