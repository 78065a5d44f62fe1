#!/usr/bin/env python3
"""
TFGATE CLI
----------
Operator front end over a workspace of manifests:

  render        show the Terraform text a Configuration resolves to
  reconcile     run resolution passes over every Configuration
  check-delete  ask the DeletionGate about one Configuration
  mirror        show how a remote source is rewritten

Author: TFGate Team
Date: 2026-10-18
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from tfgate.cli.formatter import GateFormatter
from tfgate.core.engine import ReconcileEngine
from tfgate.core.errors import StoreError, TFGateError
from tfgate.core.settings import Settings
from tfgate.rules.mirror import replace_source

console = Console()

VERSION = "tfgate v0.1.0"


class TFGateCLI:
    """
    Translates user commands into engine calls and renders the results.
    """

    def __init__(self):
        self.parser = argparse.ArgumentParser(
            prog="tfgate",
            description="TFGate - Terraform Configuration resolution and deletion gating",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.formatter = GateFormatter(console)
        self._setup_args()

    def _setup_args(self):
        self.parser.add_argument("-V", "--version", action="version", version=VERSION)
        self.parser.add_argument("--settings", help="YAML settings file")
        self.parser.add_argument("--backend-namespace", help="Namespace holding Terraform state")
        self.parser.add_argument("--github-blocked", help="Rewrite GitHub sources to Gitee (true/false)")
        self.parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
        subparsers = self.parser.add_subparsers(dest="command", metavar="Command")

        render_parser = subparsers.add_parser("render", help="Render one Configuration")
        render_parser.add_argument("path", help="Workspace directory of manifests")
        render_parser.add_argument("--name", required=True)
        render_parser.add_argument("--namespace", default="default")

        reconcile_parser = subparsers.add_parser("reconcile", help="Resolve all Configurations")
        reconcile_parser.add_argument("path", help="Workspace directory of manifests")
        reconcile_parser.add_argument("--namespace", help="Only this namespace")

        delete_parser = subparsers.add_parser("check-delete", help="Ask whether a Configuration can be deleted")
        delete_parser.add_argument("path", help="Workspace directory of manifests")
        delete_parser.add_argument("--name", required=True)
        delete_parser.add_argument("--namespace", default="default")

        mirror_parser = subparsers.add_parser("mirror", help="Rewrite a remote source URL")
        mirror_parser.add_argument("url")
        mirror_parser.add_argument("--blocked", help="Override the GitHub-blocked flag")

    def print_header(self, subtitle: str):
        console.print(Panel.fit(f"[bold cyan]{VERSION}[/bold cyan]",
                                title=f"[bold white]{subtitle}[/bold white]", border_style="cyan"))

    def _settings(self, args: argparse.Namespace) -> Settings:
        return Settings.load(args.settings).with_overrides(
            backend_namespace=args.backend_namespace,
            github_blocked=args.github_blocked,
        )

    def _engine(self, args: argparse.Namespace) -> ReconcileEngine:
        workspace = Path(args.path).resolve()
        if not workspace.is_dir():
            raise StoreError(f"Workspace '{args.path}' is not a directory")
        return ReconcileEngine(str(workspace), settings=self._settings(args))

    def cmd_render(self, args: argparse.Namespace) -> int:
        report = self._engine(args).reconcile(args.namespace, args.name)
        if not report["success"]:
            self.formatter.show_error(report)
            return 1
        self.formatter.show_rendered(report)
        return 0

    def cmd_reconcile(self, args: argparse.Namespace) -> int:
        engine = self._engine(args)
        with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"),
                      BarColumn(bar_width=40), TaskProgressColumn(), console=console) as progress:
            task_id = progress.add_task("Reconciling...", total=None)

            def advance(done: int, total: int):
                progress.update(task_id, completed=done, total=total)

            reports = engine.reconcile_all(args.namespace, progress_callback=advance)

        for r in reports:
            if not r["success"]:
                self.formatter.show_error(r)
        self.formatter.print_final_table(reports)
        self.formatter.print_summary(engine.generate_summary(reports))
        return 0 if all(r["success"] for r in reports) else 1

    def cmd_check_delete(self, args: argparse.Namespace) -> int:
        decision = self._engine(args).check_delete(args.namespace, args.name)
        self.formatter.show_decision(decision)
        return 0 if decision["deletable"] else 2

    def cmd_mirror(self, args: argparse.Namespace) -> int:
        blocked = args.blocked if args.blocked is not None else self._settings(args).github_blocked
        console.print(replace_source(args.url, blocked))
        return 0

    def run(self, argv: Optional[List[str]] = None) -> int:
        args = self.parser.parse_args(argv)
        logging.getLogger("tfgate").setLevel(logging.DEBUG if args.verbose else logging.INFO)

        handlers = {
            "render": self.cmd_render,
            "reconcile": self.cmd_reconcile,
            "check-delete": self.cmd_check_delete,
            "mirror": self.cmd_mirror,
        }
        handler = handlers.get(args.command)
        if handler is None:
            self.print_header("Terraform Configuration Gate")
            self.parser.print_help()
            return 0

        try:
            return handler(args)
        except (TFGateError, StoreError) as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            return 1


def main():
    try:
        sys.exit(TFGateCLI().run())
    except KeyboardInterrupt:
        console.print("\n[bold red]Terminated by user.[/bold red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
