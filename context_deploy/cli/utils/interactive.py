# context_deploy/cli/utils/interactive.py
"""Interactive conflict resolution"""

from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt

from ...constants import ConflictStrategy
from ...models.result import ConflictRecord
from ...services.conflict_resolver import ConflictResolver

CHOICES = [
    ConflictStrategy.SKIP.value,
    ConflictStrategy.OVERWRITE.value,
    ConflictStrategy.MERGE.value,
    ConflictStrategy.BACKUP.value,
]


class ConflictPrompter:
    """Ask the user how to resolve each conflict

    Used as the prompter of the ``prompt`` conflict strategy. Answers can be
    applied to all remaining conflicts.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self.resolver = ConflictResolver()
        self.remembered: Optional[ConflictStrategy] = None

    def __call__(self, conflict: ConflictRecord) -> ConflictStrategy:
        if self.remembered is not None:
            return self.remembered

        suggested, _ = self.resolver.suggest_strategy(conflict.component or "")
        self.console.print(Panel(
            self.resolver.format_conflict(conflict) or "(whitespace only)",
            title=f"Conflict: {conflict.path}",
            subtitle=f"{conflict.component or 'unknown'} / {conflict.kind.value}",
            border_style="yellow"
        ))

        answer = Prompt.ask(
            "How should this conflict be resolved?",
            choices=CHOICES + ["all"],
            default=suggested.value if suggested.value in CHOICES else ConflictStrategy.SKIP.value,
            console=self.console
        )
        if answer == "all":
            answer = Prompt.ask("Strategy for all remaining conflicts", choices=CHOICES,
                                default=ConflictStrategy.SKIP.value, console=self.console)
            self.remembered = ConflictStrategy(answer)
        return ConflictStrategy(answer)
