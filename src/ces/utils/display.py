"""Human-readable console output for session operations."""

from typing import Any, Dict, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..models.project import (
    AgentPriority,
    HealthTier,
    ServerPriority,
    StartupHookResult,
)
from ..models.session import Checkpoint, Session
from .formatting import format_datetime


HEALTH_EMOJI = {
    HealthTier.HEALTHY: "🟢",
    HealthTier.WARNING: "🟡",
    HealthTier.ERROR: "🔴",
}


class SessionReporter:
    """Prints lifecycle summaries with rich markup."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def info(self, message: str) -> None:
        self.console.print(f"[cyan]ℹ[/cyan] {message}")

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠[/yellow] {message}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]Error:[/red] {message}")

    def session_started(self, session: Session, hook_result: Optional[StartupHookResult] = None) -> None:
        env = session.environment
        servers = session.mcp_servers
        critical = sum(1 for s in servers if s.priority == ServerPriority.CRITICAL)
        high = sum(1 for s in servers if s.priority == ServerPriority.HIGH)
        high_agents = sum(1 for a in session.agents if a.priority == AgentPriority.HIGH)

        table = Table(show_header=False, box=None, pad_edge=False)
        table.add_column(style="bold")
        table.add_column()
        table.add_row("Project", env.project_name)
        table.add_row("Session", session.id)
        table.add_row("Started", format_datetime(session.start_time))
        table.add_row(
            "Languages",
            ", ".join(f"{lang.emoji} {lang.name}" for lang in env.languages) or "none detected"
        )
        table.add_row("Frameworks", ", ".join(env.frameworks) or "none detected")
        table.add_row("MCP servers", f"{len(servers)} ({critical} critical, {high} high)")
        table.add_row("Agents", f"{len(session.agents)} ({high_agents} high priority)")

        if hook_result is not None:
            overall = hook_result.health.overall
            table.add_row("Health", f"{HEALTH_EMOJI[overall]} {overall.value}")

        self.console.print(Panel(table, title="[bold green]Session started[/bold green]", expand=False))

        if hook_result is not None and not hook_result.success:
            for line in hook_result.logs:
                self.warning(line)

    def checkpoint_created(self, checkpoint: Checkpoint) -> None:
        label = f" ({checkpoint.message})" if checkpoint.message else ""
        self.success(f"Checkpoint created: {checkpoint.id}{label}")

    def session_closed(self, session: Session) -> None:
        self.success(f"Session closed: {session.id}")
        self.console.print(f"  Duration: {session.duration}")

    def status(self, status: Dict[str, Any], session: Optional[Session] = None) -> None:
        if not status["active"] or session is None:
            self.info("No active session")
            return

        table = Table(title="Session status", show_header=False)
        table.add_column(style="bold")
        table.add_column()
        table.add_row("Session", status["sessionId"])
        table.add_row("Name", session.name)
        table.add_row("Status", session.status.value)
        table.add_row("Started", format_datetime(session.start_time))
        table.add_row("Duration", session.duration)
        table.add_row("Checkpoints", str(len(session.checkpoints)))
        table.add_row("MCP servers", str(len(session.mcp_servers)))
        table.add_row("Agents", str(len(session.agents)))
        self.console.print(table)

    def clean_history(self, result) -> None:
        if result.confirmation_required or result.nothing_to_clean:
            self.warning(result.message)
        else:
            self.success(result.message)


__all__ = [
    'SessionReporter',
    'HEALTH_EMOJI',
]
