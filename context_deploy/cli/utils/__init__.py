"""CLI utility functions"""

from .output import (
    console,
    format_deploy_result,
    format_rollback_result,
    format_backup_list,
)
from .interactive import ConflictPrompter

__all__ = [
    'console',
    'format_deploy_result',
    'format_rollback_result',
    'format_backup_list',
    'ConflictPrompter',
]
