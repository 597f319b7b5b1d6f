import asyncio
import json as json_lib
from pathlib import Path

from rich.console import Console
from rich.table import Table
import typer

from vadis_intake.analysis.aggregator import AnalysisAggregator
from vadis_intake.analysis.features import describe, parse_feature_keys
from vadis_intake.cli.client import get_api_client, get_config
from vadis_intake.contracts.analysis import (
    ALL_FEATURES,
    AnalysisReport,
    AnalysisResultSet,
    FeatureKey,
    FeatureStatus,
)
from vadis_intake.contracts.project import ProjectId, coerce_project_id
from vadis_intake.errors import APIError, IntakeError
from vadis_intake.logging_config import get_logger
from vadis_intake.workflow import ProductionWorkflow

app = typer.Typer()
console = Console()
logger = get_logger(__name__)

STATUS_STYLES = {
    FeatureStatus.COMPLETED: "green",
    FeatureStatus.PROCESSING: "yellow",
    FeatureStatus.FAILED: "red",
    FeatureStatus.PENDING: "dim",
}


async def run_analysis_command(
    project_id: str,
    features: list[FeatureKey] | None = None,
    with_report: bool = False,
    notify_start: bool = False,
) -> tuple[AnalysisAggregator, AnalysisReport | None]:
    pid = coerce_project_id(project_id)
    async with ProductionWorkflow(
        get_api_client(), settings=get_config(), owns_api=True
    ) as session:
        if notify_start:
            session.aggregator.notify_start = True
        await session.analyze(features or None, project_id=pid)
        report = None
        if with_report:
            report = session.aggregator.report(await _report_title(session, pid))
        return session.aggregator, report


async def _report_title(session: ProductionWorkflow, pid: ProjectId) -> str:
    """Project title for the report, or a placeholder when it cannot be fetched."""
    try:
        project = await session.repository.get(pid)
    except APIError as e:
        logger.warning("report_title_unavailable", project_id=pid, error=e.message)
        return f"Project #{pid}"
    return project.title


async def analysis_status_command(project_id: str) -> AnalysisAggregator:
    pid = coerce_project_id(project_id)
    async with ProductionWorkflow(
        get_api_client(), settings=get_config(), owns_api=True
    ) as session:
        snapshot = await session.repository.analysis(pid)
        session.aggregator.load_snapshot(pid, snapshot)
        return session.aggregator


async def watch_analysis_command(
    project_id: str, interval: float | None = None, timeout: float | None = None
) -> int:
    pid = coerce_project_id(project_id)
    config = get_config()

    def on_update(snapshot):
        done = sum(1 for key in ALL_FEATURES if snapshot.get(key) is not None)
        console.print(f"[cyan]{done}/{len(ALL_FEATURES)}[/cyan] features completed")

    async with ProductionWorkflow(get_api_client(), settings=config, owns_api=True) as session:
        watcher = session.watch(project_id=pid, on_update=on_update)
        if interval:
            watcher.interval = interval
        async with watcher:
            await watcher.wait(timeout or config.watch_timeout)
        return watcher.polls


def _status_table(aggregator: AnalysisAggregator, title: str) -> Table:
    table = Table(title=title)
    table.add_column("Feature", style="cyan", no_wrap=True)
    table.add_column("Status")
    table.add_column("Error", style="red")

    for key in ALL_FEATURES:
        status = aggregator.feature_status(key)
        style = STATUS_STYLES[status]
        table.add_row(
            describe(key).title,
            f"[{style}]{status.value}[/{style}]",
            aggregator.errors.get(key, ""),
        )
    return table


def _dump_result_set(result_set: AnalysisResultSet) -> str:
    return json_lib.dumps(
        {
            "projectId": result_set.project_id,
            "requested": [key.value for key in result_set.requested],
            "completed": [key.value for key in result_set.completed],
            "failed": {key.value: msg for key, msg in result_set.errors.items()},
            "results": {key.value: value for key, value in result_set.results.items()},
        },
        indent=2,
        default=str,
    )


@app.command()
def features(json_output: bool = typer.Option(False, "--json", help="Output as JSON")):
    """List the available analysis features."""
    if json_output:
        typer.echo(
            json_lib.dumps(
                [{"key": key.value, **describe(key)._asdict()} for key in ALL_FEATURES],
                indent=2,
            )
        )
        return

    table = Table(title="Analysis features")
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Title", style="magenta")
    table.add_column("Estimated time", style="green")
    for key in ALL_FEATURES:
        info = describe(key)
        table.add_row(key.value, info.title, info.estimated_time)
    console.print(table)


@app.command()
def run(
    project_id: str,
    feature: list[str] | None = typer.Option(
        None, "--feature", "-f", help="Feature key to run (repeatable, default: all)"
    ),
    report: Path | None = typer.Option(
        None, "--report", "-r", dir_okay=False, help="Write the analysis report to this file"
    ),
    notify_start: bool = typer.Option(
        False, "--notify-start", help="Announce the run to the backend before it starts"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Run script analysis features for a project."""
    try:
        keys = parse_feature_keys(feature) if feature else None
        aggregator, analysis_report = asyncio.run(
            run_analysis_command(
                project_id, keys, with_report=report is not None, notify_start=notify_start
            )
        )
    except (IntakeError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1) from None

    if report is not None and analysis_report is not None:
        report.write_text(analysis_report.model_dump_json(indent=2), encoding="utf-8")

    if json_output:
        typer.echo(_dump_result_set(aggregator.result_set()))
        return

    console.print(_status_table(aggregator, f"Analysis for project #{project_id}"))
    console.print(f"Completion: [bold]{aggregator.completion_percentage()}%[/bold]")
    if report is not None:
        console.print(f"Report written to [cyan]{report}[/cyan]")


@app.command()
def status(
    project_id: str,
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show the analysis results the backend currently has for a project."""
    try:
        aggregator = asyncio.run(analysis_status_command(project_id))
    except (IntakeError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1) from None

    if json_output:
        typer.echo(
            json_lib.dumps(
                {
                    "completion": aggregator.completion_percentage(),
                    "features": {
                        key.value: aggregator.feature_status(key).value for key in ALL_FEATURES
                    },
                },
                indent=2,
            )
        )
        return

    console.print(_status_table(aggregator, f"Analysis for project #{project_id}"))
    console.print(f"Completion: [bold]{aggregator.completion_percentage()}%[/bold]")


@app.command()
def watch(
    project_id: str,
    interval: float | None = typer.Option(None, "--interval", help="Seconds between polls"),
    timeout: float | None = typer.Option(None, "--timeout", help="Seconds before giving up"),
):
    """Poll a project's analysis until every feature has a result."""
    try:
        polls = asyncio.run(watch_analysis_command(project_id, interval, timeout))
    except TimeoutError:
        console.print("[bold red]Error:[/bold red] analysis did not complete in time")
        raise typer.Exit(1) from None
    except (IntakeError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1) from None

    console.print(f"[bold green]✓ Analysis complete[/bold green] after {polls} poll(s)")
