"""Diagnostic sinks used by the command-line front end."""

from __future__ import annotations

import json
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from .models import Diagnostic, DiagnosticKind


class ConsoleReporter:
    """Prints each diagnostic as ``file:line:column: message`` when received."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console(highlight=False, soft_wrap=True)
        self.count = 0

    def __call__(self, diagnostic: Diagnostic) -> None:
        self.count += 1
        color = "red" if diagnostic.kind is DiagnosticKind.UNSAFE_LAUNCH else "yellow"
        self.console.print(
            f"[bold]{escape(str(diagnostic.position))}[/bold]: "
            f"[{color}]{escape(diagnostic.message)}[/{color}]"
        )

    def summary(self, files: int) -> None:
        if self.count == 0:
            self.console.print(f"[green]✓[/green] No unrecovered goroutines in {files} file(s).")
        else:
            self.console.print(f"\n[bold red]{self.count} issue(s)[/bold red] found in {files} file(s).")


class JsonReporter:
    """Collects diagnostics and renders them as one JSON array."""

    def __init__(self) -> None:
        self.diagnostics: List[Diagnostic] = []

    def __call__(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)

    @property
    def count(self) -> int:
        return len(self.diagnostics)

    def render(self) -> str:
        return json.dumps([d.to_dict() for d in self.diagnostics], indent=2)
