"""
Command Line Interface Module

Submits pending timesheet entries from a CSV file and lists the configured
quarter forms.
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import List, Optional

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, TextColumn, TimeElapsedColumn
from rich.prompt import Prompt
from rich.table import Table

from .config import AutomationConfig
from .models.form import Credentials
from .models.results import AggregateResult
from .services.automation.abort import AbortController
from .services.automation_service import AutomationService
from .services.credentials import SMARTSHEET_SERVICE, EnvCredentialProvider, StaticCredentialProvider
from .services.quarter_router import QuarterRegistry
from .services.repository import CsvRowRepository
from .services.submission_workflow import SubmissionWorkflow

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130


def setup_logging(verbose: bool = False, console: Optional[Console] = None):
    """Route all logging through a rich handler"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # Playwright and asyncio internals are noisy at DEBUG
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("transitions").setLevel(logging.WARNING)


class CLIHandler:
    """CLI Handler Class"""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(stderr=True)
        self.abort_controller: Optional[AbortController] = None

    def create_argument_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            description="Timesheet Bot - submit timesheet entries to quarterly Smartsheet forms",
            prog="main.py",
            formatter_class=argparse.RawDescriptionHelpFormatter
        )
        subparsers = parser.add_subparsers(dest="command", required=True)

        submit = subparsers.add_parser("submit", help="Submit pending entries from a CSV file")
        submit.add_argument("--csv", required=True, help="CSV file holding timesheet entries")
        submit.add_argument("--backend", choices=["playwright", "mock"], default="playwright",
                            help="Submission backend to use (default: playwright)")
        submit.add_argument("--mock-website", action="store_true",
                            help="Submit to the local mock website instead of Smartsheet")
        submit.add_argument("--headless", action="store_true", help="Run the browser without a window")
        submit.add_argument("--email", help="Login email (default: SMARTSHEET_EMAIL)")
        submit.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging output")
        submit.add_argument("--json", action="store_true", help="Print the result as JSON")

        quarters = subparsers.add_parser("quarters", help="List configured quarter forms")
        quarters.add_argument("--json", action="store_true", help="Print as JSON")

        return parser

    # =================== Commands ===================

    def list_quarters(self, as_json: bool = False) -> int:
        registry = QuarterRegistry()
        if as_json:
            print(json.dumps([
                {"id": q.id, "name": q.name, "startDate": q.start_date, "endDate": q.end_date,
                 "formUrl": q.form_url, "formId": q.form_id}
                for q in registry.definitions
            ], indent=2))
            return EXIT_OK

        table = Table(title="Quarter forms", box=box.ROUNDED)
        table.add_column("Quarter", style="cyan")
        table.add_column("From")
        table.add_column("To")
        table.add_column("Form", style="dim")
        for q in registry.definitions:
            table.add_row(q.id, q.start_date, q.end_date, q.form_url)
        self.console.print(table)
        return EXIT_OK

    def resolve_credentials(self, email: Optional[str]):
        env_provider = EnvCredentialProvider()
        stored = env_provider.get(SMARTSHEET_SERVICE)
        if email is None:
            return env_provider
        if stored is not None and stored.identity == email:
            return env_provider
        password = Prompt.ask(f"Password for {email}", password=True, console=self.console)
        return StaticCredentialProvider({SMARTSHEET_SERVICE: Credentials(identity=email, secret=password)})

    def _install_signal_handler(self):
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, self.cancel)
        except (NotImplementedError, RuntimeError):
            # Windows event loops do not support signal handlers
            pass

    def cancel(self):
        if self.abort_controller is not None:
            self.console.print("[yellow]Cancelling submission...[/yellow]")
            self.abort_controller.abort("Cancelled by user")

    async def submit(self, args: argparse.Namespace) -> AggregateResult:
        config = AutomationConfig.from_env()
        if args.headless:
            config = config.with_overrides(browser_headless=True)

        service = AutomationService(backend_type=args.backend, config=config)
        workflow = SubmissionWorkflow(CsvRowRepository(args.csv), self.resolve_credentials(args.email), service)
        self.abort_controller = AbortController()
        self._install_signal_handler()

        with Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            console=self.console,
            transient=args.json,
        ) as progress:
            task = progress.add_task("Submitting timesheet", total=100)

            def on_progress(percent: int, message: str):
                progress.update(task, completed=percent, description=message)

            result = await workflow.run(
                progress_callback=on_progress,
                abort_signal=self.abort_controller.signal,
                use_mock_website=args.mock_website,
            )
            progress.update(task, completed=100)

        await service.cleanup()
        return result

    def print_result(self, result: AggregateResult, as_json: bool = False):
        if as_json:
            print(json.dumps(result.to_dict(), indent=2))
            return

        table = Table(title="Submission result", box=box.ROUNDED)
        table.add_column("Outcome", style="cyan")
        table.add_column("Count", justify="right")
        table.add_column("Ids", style="dim")
        table.add_row("Submitted", str(result.success_count), ", ".join(map(str, result.submitted_ids)))
        table.add_row("Failed", str(result.removed_count), ", ".join(map(str, result.removed_ids)))
        table.add_row("Total", str(result.total_processed), "")
        self.console.print(table)

        if result.cancelled:
            self.console.print("[yellow]Submission was cancelled[/yellow]")
        elif result.ok:
            self.console.print("[green]All entries submitted[/green]")
        else:
            self.console.print(f"[red]{result.error or 'Submission failed'}[/red]")


def exit_code_for(result: AggregateResult) -> int:
    if result.cancelled:
        return EXIT_CANCELLED
    return EXIT_OK if result.ok else EXIT_FAILED


def main(argv: Optional[List[str]] = None) -> int:
    """CLI main entry point"""
    cli_handler = CLIHandler()
    parser = cli_handler.create_argument_parser()
    args = parser.parse_args(argv)

    config = AutomationConfig.from_env()
    setup_logging(getattr(args, "verbose", False) or config.debug_logging, cli_handler.console)

    if args.command == "quarters":
        return cli_handler.list_quarters(args.json)

    try:
        result = asyncio.run(cli_handler.submit(args))
    except KeyboardInterrupt:
        cli_handler.console.print("\nOperation cancelled by user")
        return EXIT_CANCELLED

    cli_handler.print_result(result, args.json)
    return exit_code_for(result)


if __name__ == "__main__":
    sys.exit(main())
