import asyncio
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table
import typer

from vadis_intake.cli.client import get_api_client, get_config
from vadis_intake.cli.validation import validate
from vadis_intake.contracts.project import (
    ProjectDTO,
    ProjectStatus,
    ProjectUpdate,
    coerce_project_id,
)
from vadis_intake.contracts.script import ScriptFile
from vadis_intake.errors import DraftValidationError, IntakeError
from vadis_intake.intake.flows import FLOWS, get_flow
from vadis_intake.repository import ProjectRepository
from vadis_intake.workflow import ProductionWorkflow

app = typer.Typer()
console = Console()


async def create_project_command(
    fields: dict[str, Any],
    script: Path | None = None,
    flow: str = "script_analysis",
) -> ProjectDTO:
    """Walk the intake flow up to its submit step and create the project."""
    variant = get_flow(flow)
    config = get_config()
    async with ProductionWorkflow(get_api_client(), variant, config, owns_api=True) as session:
        intake = session.intake
        for name, value in fields.items():
            if value is not None:
                intake.set_field(name, value)

        if script is not None:
            script_file = ScriptFile.from_path(script, max_bytes=config.max_script_bytes)
            rejection = intake.select_file(script_file)
            if rejection:
                raise IntakeError(f"Script file rejected ({rejection.value}): {script.name}")

        while intake.step is not variant.submit_step:
            outcome = intake.advance_step()
            if not outcome.advanced:
                raise DraftValidationError(outcome.issues)

        project = await session.submit()
        if project is None:
            raise intake.error or IntakeError("Project was not created")
        await session.save_progress({"flow": variant.name})
        return project


async def show_project_command(project_id: str) -> ProjectDTO:
    api = get_api_client()
    try:
        return await ProjectRepository(api).get(coerce_project_id(project_id))
    finally:
        await api.close()


async def update_project_command(project_id: str, update: ProjectUpdate) -> ProjectDTO:
    api = get_api_client()
    try:
        return await ProjectRepository(api).update(coerce_project_id(project_id), update)
    finally:
        await api.close()


async def finalize_project_command(project_id: str, publish: bool) -> ProjectDTO:
    api = get_api_client()
    try:
        return await ProjectRepository(api).finalize(coerce_project_id(project_id), publish)
    finally:
        await api.close()


def _print_project(project: ProjectDTO) -> None:
    table = Table(title=f"Project #{project.id}", show_header=False)
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value", style="magenta")

    table.add_row("Title", project.title)
    table.add_row("Status", project.status.value)
    for label, value in (
        ("Logline", project.logline),
        ("Genre", project.genre),
        ("Budget", project.budget_range),
        ("Funding goal", f"{project.funding_goal:,}" if project.funding_goal else None),
        ("Timeline", project.production_timeline),
        ("Script", project.script_file_name),
    ):
        if value:
            table.add_row(label, value)
    table.add_row("Published", "yes" if project.is_published else "no")
    console.print(table)


def _print_error(e: Exception) -> None:
    if isinstance(e, DraftValidationError):
        console.print("[bold red]Error:[/bold red] project draft is invalid")
        for issue in e.issues:
            console.print(f"  ✗ {issue.reason}")
    else:
        console.print(f"[bold red]Error:[/bold red] {e}")


def _echo_json(project: ProjectDTO) -> None:
    typer.echo(project.model_dump_json(by_alias=True, indent=2))


@app.command()
def create(
    title: str = typer.Option(..., "--title", "-t", help="Project title"),
    logline: str | None = typer.Option(None, "--logline", "-l", help="One-sentence pitch"),
    synopsis: str | None = typer.Option(None, "--synopsis", help="Longer story summary"),
    genre: str | None = typer.Option(None, "--genre", "-g"),
    budget_range: str | None = typer.Option(None, "--budget-range", "-b"),
    funding_goal: int | None = typer.Option(None, "--funding-goal", help="Funding goal in USD"),
    production_timeline: str | None = typer.Option(None, "--timeline"),
    target_genres: list[str] | None = typer.Option(
        None, "--target-genre", help="Target genre (repeatable)"
    ),
    script_content: str | None = typer.Option(None, "--script-content"),
    script: Path | None = typer.Option(
        None, "--script", "-s", exists=True, dir_okay=False, help="Script PDF to upload"
    ),
    flow: str = typer.Option(
        "script_analysis", "--flow", help=f"Intake flow ({', '.join(FLOWS)})"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Create a new project through the intake flow."""
    fields = {
        "title": title,
        "logline": logline,
        "synopsis": synopsis,
        "genre": genre,
        "budget_range": budget_range,
        "funding_goal": funding_goal,
        "production_timeline": production_timeline,
        "target_genres": target_genres or None,
        "script_content": script_content,
    }
    try:
        project = asyncio.run(create_project_command(fields, script, flow))
    except (IntakeError, ValueError) as e:
        _print_error(e)
        raise typer.Exit(1) from None

    if json_output:
        _echo_json(project)
        return

    console.print("[bold green]✓ Project created successfully![/bold green]")
    console.print(f"ID: [cyan]{project.id}[/cyan]")
    console.print(f"Title: [magenta]{project.title}[/magenta]")


@app.command()
def show(
    project_id: str,
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show a project."""
    try:
        project = asyncio.run(show_project_command(project_id))
    except (IntakeError, ValueError) as e:
        _print_error(e)
        raise typer.Exit(1) from None

    if json_output:
        _echo_json(project)
        return
    _print_project(project)


@app.command()
@validate(ProjectUpdate)
def update(
    project_id: str,
    title: str | None = typer.Option(None, "--title", "-t"),
    logline: str | None = typer.Option(None, "--logline", "-l"),
    synopsis: str | None = typer.Option(None, "--synopsis"),
    genre: str | None = typer.Option(None, "--genre", "-g"),
    budget_range: str | None = typer.Option(None, "--budget-range", "-b"),
    funding_goal: int | None = typer.Option(None, "--funding-goal"),
    production_timeline: str | None = typer.Option(None, "--timeline"),
    status: ProjectStatus | None = typer.Option(None, "--status"),
    tier: str | None = typer.Option(None, "--tier"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Update project fields. Only the given options are changed."""
    changes = {
        "title": title,
        "logline": logline,
        "synopsis": synopsis,
        "genre": genre,
        "budget_range": budget_range,
        "funding_goal": funding_goal,
        "production_timeline": production_timeline,
        "status": status,
        "tier": tier,
    }
    update_model = ProjectUpdate(**{k: v for k, v in changes.items() if v is not None})
    if not update_model.model_fields_set:
        console.print("[bold red]Error:[/bold red] nothing to update")
        raise typer.Exit(1)

    try:
        project = asyncio.run(update_project_command(project_id, update_model))
    except (IntakeError, ValueError) as e:
        _print_error(e)
        raise typer.Exit(1) from None

    if json_output:
        _echo_json(project)
        return
    console.print(f"[bold green]✓ Project #{project.id} updated[/bold green]")


@app.command()
def finalize(
    project_id: str,
    publish: bool = typer.Option(False, "--publish", help="Publish to the marketplace"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Finalize a project, optionally publishing it to the marketplace."""
    try:
        project = asyncio.run(finalize_project_command(project_id, publish))
    except (IntakeError, ValueError) as e:
        _print_error(e)
        raise typer.Exit(1) from None

    if json_output:
        _echo_json(project)
        return
    console.print(f"[bold green]✓ Project #{project.id} finalized[/bold green]")
    if publish:
        console.print("Published to the marketplace")
