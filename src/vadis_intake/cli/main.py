import typer

from vadis_intake.cli.client import get_config
from vadis_intake.cli.commands import analysis, project
from vadis_intake.logging_config import setup_logging

app = typer.Typer(
    name="vadis",
    help="Project intake and script analysis client",
    add_completion=False,
)

app.add_typer(project.app, name="project", help="Create and manage projects")
app.add_typer(analysis.app, name="analysis", help="Run and follow script analysis")


@app.callback()
def callback():
    """
    Vadis intake CLI
    """
    config = get_config()
    setup_logging(
        service_name=config.service_name,
        log_format=config.log_format,
        log_level=config.log_level,
    )


if __name__ == "__main__":
    app()
