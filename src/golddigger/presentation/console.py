"""Rich-based console output with a plain-text mode.

:class:`ConsoleRenderer` renders chat replies as markdown panels and the
diagnostic views (governance decisions, scores, memory, config, health) as
tables.  Plain mode prints the same information with ``print()`` and is
used when the output is not a terminal or ``--plain`` is given.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Mapping, Sequence
from typing import Any

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from golddigger.domain.enums import AgentLabel
from golddigger.domain.values import GovernanceDecision, OpportunityScore

_LABEL_STYLES: dict[AgentLabel, str] = {
    AgentLabel.INVESTMENT: "green",
    AgentLabel.RESEARCH: "cyan",
    AgentLabel.GENERAL: "magenta",
}



class ConsoleRenderer:
    """Console presentation for CLI results.

    Parameters
    ----------
    use_rich:
        ``True``/``False`` forces the mode; ``None`` uses rich only when
        *file* is a terminal.
    file:
        Output stream.  Defaults to ``sys.stdout``.
    """

    def __init__(self, use_rich: bool | None = None, file: Any = None) -> None:
        self._file = file or sys.stdout
        if use_rich is None:
            isatty = getattr(self._file, "isatty", None)
            use_rich = bool(isatty and isatty())
        self._use_rich = use_rich
        self._console = Console(file=self._file) if use_rich else None

    @property
    def use_rich(self) -> bool:
        return self._use_rich

    # -- helpers -----------------------------------------------------------

    def _plain_print(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("file", self._file)
        print(*args, **kwargs)

    def _kv_table(self, title: str, rows: Mapping[str, Any]) -> None:
        if self._console is None:
            self._plain_print(title)
            for key, value in rows.items():
                self._plain_print(f"  {key}: {value}")
            return
        table = Table(title=title, show_header=False)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        for key, value in rows.items():
            table.add_row(str(key), str(value))
        self._console.print(table)

    # -- public API --------------------------------------------------------

    def print_json(self, data: Any) -> None:
        self._plain_print(json.dumps(data, indent=2, default=str))

    def print_reply(self, reply: str, agent_label: AgentLabel, stage: str) -> None:
        """Print an assistant reply under a header naming the agent and stage."""
        header = f"{agent_label.value} ({stage})"
        if self._console is None:
            self._plain_print(f"[{header}]")
            self._plain_print(reply)
            return
        style = _LABEL_STYLES.get(agent_label, "white")
        self._console.print(Panel(Markdown(reply), title=header, border_style=style))

    def print_decision(self, decision: GovernanceDecision) -> None:
        rows: dict[str, Any] = {
            "approved": decision.approved,
            "risk level": decision.risk_level.value,
            "reason": decision.reason,
        }
        if decision.block_reason:
            rows["block reason"] = decision.block_reason
        for name, value in decision.flags.to_dict().items():
            rows[name] = value
        if decision.warnings:
            rows["warnings"] = "; ".join(decision.warnings)
        self._kv_table("Governance decision", rows)

        if decision.violations and self._console is not None:
            table = Table(title="Violations")
            table.add_column("Type")
            table.add_column("Severity")
            table.add_column("Action")
            table.add_column("Description")
            for violation in decision.violations:
                table.add_row(
                    violation.violation_type.value,
                    violation.severity.value,
                    violation.action_taken.value,
                    violation.description,
                )
            self._console.print(table)
        elif decision.violations:
            for violation in decision.violations:
                self._plain_print(
                    f"  - {violation.violation_type.value} [{violation.severity.value}]: "
                    f"{violation.description}"
                )

    def print_score(self, score: OpportunityScore) -> None:
        rows = {
            "score": f"{score.score:g}/100",
            "tier": score.tier.value,
            **{key: f"{value:+g}" for key, value in score.breakdown.to_dict().items()},
        }
        self._kv_table("Opportunity score", rows)

    def print_stats(self, title: str, stats: Mapping[str, Any]) -> None:
        self._kv_table(title, stats)

    def print_conversations(self, records: Sequence[Any]) -> None:
        """Print conversation memories, newest first."""
        if not records:
            self._plain_print("No conversations found.")
            return
        if self._console is None:
            for record in records:
                self._plain_print(f"{record.timestamp}  [{record.agent_type}]  {record.user_query}")
            return
        table = Table(title="Conversations")
        table.add_column("When", no_wrap=True)
        table.add_column("Agent")
        table.add_column("Query")
        table.add_column("Tags")
        for record in records:
            table.add_row(
                record.timestamp,
                record.agent_type,
                record.user_query,
                ", ".join(record.tags[:6]),
            )
        self._console.print(table)

    def print_health(self, health: Mapping[str, Any]) -> None:
        backends = health.get("backends", {})
        summary = {k: v for k, v in health.items() if k != "backends"}
        self._kv_table("Gold Digger health", summary)
        for kind, info in backends.items():
            self._kv_table(f"Backend: {kind}", info)

    def print_error(self, message: str) -> None:
        if self._console is None:
            print(f"Error: {message}", file=sys.stderr)
            return
        self._console.print(f"[bold red]Error:[/bold red] {message}")


