"""Command line interface for following scans and reading their reports."""

import asyncio
import json
import sys
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, BarColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from . import __version__
from .api import HttpScanAPI, ScanAPI
from .core.config import ConfigManager, TrackerConfig
from .core.exceptions import VulnWatchException
from .core.logger import LoggerManager
from .progress import ScanStatus, ScanTracker, ScanView, encode
from .reporting import ScanReport, Severity


console = Console()

STATUS_COLORS = {
    ScanStatus.PENDING: "white",
    ScanStatus.IN_PROGRESS: "yellow",
    ScanStatus.COMPLETED: "green",
    ScanStatus.FAILED: "red",
}

SEVERITY_COLORS = {
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "cyan",
    Severity.INFO: "white",
}


class WatchCLI:
    """Console front end for ScanTracker."""

    def __init__(self, api: ScanAPI, config: TrackerConfig):
        self.api = api
        self.config = config

    async def watch(self, scan_id: str, show_report: bool = True) -> int:
        """Follow a scan until it reaches a terminal status."""
        tracker = ScanTracker(scan_id, self.api, self.config)
        done = asyncio.Event()

        with Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            console=console,
        ) as progress_bar:
            bar = progress_bar.add_task(f"Scan {scan_id}", total=100)

            def on_view(view: ScanView) -> None:
                phase = tracker.current_phase
                description = phase.message if phase and not view.status.is_terminal else encode(view.status)
                progress_bar.update(bar, completed=view.progress, description=description)
                if view.status.is_terminal:
                    done.set()

            try:
                await tracker.start()
                tracker.subscribe(on_view)
                await done.wait()
            except VulnWatchException as e:
                console.print(f"[red]{e}[/red]")
                await tracker.close()
                return 1

        try:
            view = tracker.get_current_view()
            self._print_view(view)
            if view.status == ScanStatus.FAILED:
                return 1
            if show_report:
                report = await tracker.wait_for_report()
                self._print_report(report)
            return 0
        except VulnWatchException as e:
            console.print(f"[red]Report unavailable: {e}[/red]")
            return 1
        finally:
            await tracker.close()

    async def report(self, scan_id: str, as_json: bool = False) -> int:
        """Print the report of a completed scan."""
        tracker = ScanTracker(scan_id, self.api, self.config)
        try:
            await tracker.start()
            view = tracker.get_current_view()
            if view.status != ScanStatus.COMPLETED:
                console.print(f"[yellow]Scan {scan_id} is {encode(view.status)}, no report yet[/yellow]")
                return 1
            report = await tracker.wait_for_report()
        except VulnWatchException as e:
            console.print(f"[red]Report unavailable: {e}[/red]")
            return 1
        finally:
            await tracker.close()

        if as_json:
            click.echo(json.dumps(report.to_dict(), indent=2))
        else:
            self._print_report(report)
        return 0

    async def start(self, url: str) -> Optional[str]:
        """Request a scan and return its identifier."""
        try:
            scan_id = await self.api.start_scan(url)
        except VulnWatchException as e:
            console.print(f"[red]Failed to start scan: {e}[/red]")
            return None
        console.print(f"[green]Scan {scan_id} started for {url}[/green]")
        return scan_id

    async def list_scans(self) -> int:
        """List the scans of the current user."""
        try:
            scans = await self.api.list_scans()
        except VulnWatchException as e:
            console.print(f"[red]Failed to list scans: {e}[/red]")
            return 1

        if not scans:
            console.print("[yellow]No scans found[/yellow]")
            return 0

        table = Table(title="Scans")
        table.add_column("Scan ID", style="cyan", no_wrap=True)
        table.add_column("URL", style="green")
        table.add_column("Status", style="magenta")
        table.add_column("Progress", style="yellow")
        table.add_column("Last Update", style="white")

        for view in scans:
            color = STATUS_COLORS[view.status]
            table.add_row(
                view.scan_id,
                view.url,
                f"[{color}]{encode(view.status)}[/{color}]",
                f"{view.progress}%",
                view.updated_at.strftime("%Y-%m-%d %H:%M"),
            )

        console.print(table)
        return 0

    def _print_view(self, view: ScanView) -> None:
        color = STATUS_COLORS[view.status]
        console.print(f"Scan {view.scan_id} ({view.url}): [{color}]{encode(view.status)}[/{color}] {view.progress}%")

    def _print_report(self, report: ScanReport) -> None:
        info_text = f"""
[bold]Scan ID:[/bold] {report.scan_id}
[bold]Risk score:[/bold] {report.risk_score}/100 - {report.risk_level.value.title()}
[bold]Findings:[/bold] {report.breakdown.total}

{report.summary}
        """
        console.print(Panel(info_text.strip(), title="Risk Summary"))

        table = Table(title="Vulnerabilities")
        table.add_column("Severity", style="magenta")
        table.add_column("Name", style="cyan")
        table.add_column("Remediation", style="white")

        for severity in Severity:
            color = SEVERITY_COLORS[severity]
            for vulnerability in report.vulnerabilities(severity):
                table.add_row(
                    f"[{color}]{severity.value.upper()}[/{color}]",
                    vulnerability.name,
                    vulnerability.remediation,
                )

        if report.breakdown.total:
            console.print(table)

        console.print("[bold]Recommended actions:[/bold]")
        for action in report.recommendations:
            console.print(f"  - {action}")


async def _run(config: TrackerConfig, operation) -> int:
    api = HttpScanAPI(config)
    try:
        return await operation(WatchCLI(api, config))
    finally:
        await api.close()


# Click CLI commands

@click.group()
@click.version_option(__version__, prog_name='vuln-watch')
@click.option('--config', '-c', 'config_path', type=click.Path(dir_okay=False),
              help='Path to configuration file (overrides default config)')
@click.option('--log-level', '-l', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
              help='Logging level (overrides config)')
@click.pass_context
def main(ctx, config_path, log_level):
    """Follow security scans and read their risk reports."""
    ctx.ensure_object(dict)

    try:
        config_manager = ConfigManager(config_path)
        if log_level:
            config_manager.set('logging.level', log_level)

        config_manager.validate_or_raise()
    except VulnWatchException as e:
        console.print(f"[red]{e}[/red]")
        for error in e.details.get('validation_errors', []):
            console.print(f"  - {error}")
        sys.exit(2)

    LoggerManager(config_manager.to_dict())
    ctx.obj['config'] = TrackerConfig.from_config(config_manager)


@main.command()
@click.argument('scan_id')
@click.option('--no-report', is_flag=True, help='Do not fetch the report once the scan completes')
@click.pass_context
def watch(ctx, scan_id, no_report):
    """Follow a scan in real-time."""
    config = ctx.obj['config']
    sys.exit(asyncio.run(_run(config, lambda cli: cli.watch(scan_id, show_report=not no_report))))


@main.command()
@click.argument('scan_id')
@click.option('--json', 'as_json', is_flag=True, help='Print the report as JSON')
@click.pass_context
def report(ctx, scan_id, as_json):
    """Show the risk report of a completed scan."""
    config = ctx.obj['config']
    sys.exit(asyncio.run(_run(config, lambda cli: cli.report(scan_id, as_json))))


@main.command()
@click.argument('url')
@click.option('--follow', '-f', is_flag=True, help='Follow the scan once started')
@click.pass_context
def start(ctx, url, follow):
    """Start a scan of URL."""
    config = ctx.obj['config']

    async def operation(cli: WatchCLI) -> int:
        scan_id = await cli.start(url)
        if scan_id is None:
            return 1
        if follow:
            return await cli.watch(scan_id)
        return 0

    sys.exit(asyncio.run(_run(config, operation)))


@main.command('list')
@click.pass_context
def list_scans(ctx):
    """List your scans."""
    config = ctx.obj['config']
    sys.exit(asyncio.run(_run(config, lambda cli: cli.list_scans())))


if __name__ == '__main__':
    main()
