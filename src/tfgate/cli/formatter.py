# src/tfgate/cli/formatter.py
from typing import Any, Dict, List

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

console = Console()


class GateFormatter:
    """
    Renders engine results: rendered Terraform, reconcile reports and
    delete decisions.
    """

    def __init__(self, out: Console = None):
        self.console = out or console

    def show_rendered(self, report: Dict[str, Any]):
        """Shows the final Terraform text and the backend descriptor of one pass."""
        syntax = Syntax(report["rendered"].rstrip(), "terraform", theme="monokai", line_numbers=True)
        self.console.print(Panel(
            syntax,
            title=f"Rendered: {report['key']}",
            subtitle=f"{report['type']} / backend {report['backend_type']}",
            border_style="green",
        ))

        table = Table(show_header=False, box=None)
        table.add_column("Field", style="bold cyan")
        table.add_column("Value")
        table.add_row("Custom backend", "yes" if report["use_custom"] else "no")
        table.add_row("Region", report.get("region") or "-")
        if report.get("remote_url"):
            table.add_row("Remote source", report["remote_url"])
        for name, keys in (report.get("secrets") or {}).items():
            table.add_row("Backend secret", f"{name} [dim]({', '.join(keys)})[/dim]")
        self.console.print(table)
        self.show_notes(report.get("notes", []))

    def show_notes(self, notes: List[str]):
        for note in notes:
            self.console.print(f"[bold cyan]ℹ[/bold cyan] {note}")

    def show_error(self, report: Dict[str, Any]):
        self.console.print(f"[bold red]{report['status']}[/bold red] {report['key']}: {report.get('error')}")

    def print_final_table(self, reports: List[Dict[str, Any]]):
        table = Table(title="TFGate Reconcile Report", show_lines=True, header_style="bold magenta")
        table.add_column("Configuration", style="cyan")
        table.add_column("Type")
        table.add_column("Backend")
        table.add_column("Region")
        table.add_column("Status", style="bold")
        table.add_column("Result", justify="center")

        for r in reports:
            success = r.get("success", False)
            color = "green" if success else "red"
            table.add_row(
                str(r.get("key")), str(r.get("type", "Unknown")),
                str(r.get("backend_type", "-")), r.get("region") or "-",
                f"[{color}]{r.get('status')}[/{color}]",
                "✅" if success else "❌",
            )
        self.console.print(table)

    def print_summary(self, summary: Dict[str, Any]):
        self.console.print(Panel(
            f"[bold white]Summary Report[/bold white]\n"
            f"════════════════════════════════════════\n"
            f"Configurations:  {summary['total']}\n"
            f"Resolved:        [green]{summary['resolved']}[/green]\n"
            f"Failed:          [red]{summary['failed']}[/red]\n"
            f"Regions pinned:  {summary['regions_pinned']}",
            border_style="dim",
        ))

    def show_decision(self, decision: Dict[str, Any]):
        color = "green" if decision["deletable"] else "yellow"
        self.console.print(Panel(
            f"[bold {color}]{decision['outcome']}[/bold {color}]\n{decision['reason']}",
            title=f"Delete check: {decision['key']}",
            border_style=color,
        ))
