import logging
import warnings

import dacite
import typer
from rich.console import Console
from rich.table import Table

from gcsflow import registry
from gcsflow.actions.delete import DeleteSummary
from gcsflow.config.pipeline_config import PIPELINE_CONFIG_FILE, PipelineConfig
from gcsflow.core.utils import configure_logging
from gcsflow.exceptions import (
    DestinationExistsException,
    PathNotFoundException,
    SourceIsDestinationException,
    SourceNotFoundException,
    UnknownPluginException,
    UnresolvedMacroException,
    ValidationException,
)
from gcsflow.gcs.transfer import TransferResult
from gcsflow.runner import PipelineRunner, StageOutcome

warnings.simplefilter("ignore", UserWarning)

GCSFLOW_HELP = """\
Validate and run Google Cloud Storage pipeline stages.
"""
app = typer.Typer(help=GCSFLOW_HELP, pretty_exceptions_enable=False)
console = Console()

PIPELINE_FILE_ARGUMENT = typer.Argument(
    PIPELINE_CONFIG_FILE, help="The pipeline file, or the directory holding it."
)
LOG_LEVEL_OPTION = typer.Option("WARNING", help="The log level to use.")


def _load(pipeline_file: str) -> PipelineConfig:
    try:
        return PipelineConfig.load(pipeline_file)
    except (PathNotFoundException, ValueError, dacite.DaciteError) as e:
        typer.echo(str(e))
        raise typer.Exit(1)


def _print_failures(stage_name: str, failures):
    table = Table(title=f"Stage {stage_name}")
    table.add_column("Field")
    table.add_column("Kind")
    table.add_column("Message")
    table.add_column("Corrective action")
    for failure in failures:
        table.add_row(
            ", ".join(str(cause) for cause in failure.causes),
            failure.kind.value,
            failure.message,
            failure.corrective_action or "",
        )
    console.print(table)


def _print_outcome(outcome: StageOutcome):
    result = outcome.result
    if isinstance(result, DeleteSummary):
        table = Table(title=f"Stage {outcome.stage_name}")
        table.add_column("Path")
        table.add_column("Status")
        table.add_column("Error")
        for path_result in result.results:
            table.add_row(
                path_result.path, path_result.status.value, path_result.error or ""
            )
        console.print(table)
    elif isinstance(result, TransferResult):
        verb = "Moved" if result.moved else "Copied"
        typer.echo(f"{outcome.stage_name}: {verb} {result.count} object(s).")
    elif result is None:
        typer.echo(f"{outcome.stage_name}: nothing written.")
    else:
        typer.echo(f"{outcome.stage_name}: wrote {result}")


@app.command(help="List the available plugins.")
def plugins():
    for name, plugin in sorted(registry.PLUGINS.items()):
        typer.echo(f"{name} ({plugin.plugin_type}): {plugin.description}")


@app.command(help="Validate every stage of a pipeline file.")
def validate(
    pipeline_file: str = PIPELINE_FILE_ARGUMENT,
    log_level: str = LOG_LEVEL_OPTION,
):
    configure_logging(log_level)
    runner = PipelineRunner(_load(pipeline_file))
    try:
        failures_by_stage = runner.validate()
    except UnknownPluginException as e:
        typer.echo(str(e))
        raise typer.Exit(1)
    failed = False
    for stage_name, failures in failures_by_stage.items():
        if failures:
            failed = True
            _print_failures(stage_name, failures)
        else:
            typer.echo(f"{stage_name}: OK")
    if failed:
        raise typer.Exit(1)


@app.command(help="Run every stage of a pipeline file in order.")
def run(
    pipeline_file: str = PIPELINE_FILE_ARGUMENT,
    log_level: str = LOG_LEVEL_OPTION,
):
    configure_logging(log_level)
    runner = PipelineRunner(_load(pipeline_file))
    for stage in runner.pipeline_config.stages:
        try:
            outcome = runner.run_stage(stage)
        except ValidationException as e:
            _print_failures(stage.name, e.failures)
            raise typer.Exit(1)
        except (
            DestinationExistsException,
            SourceIsDestinationException,
            SourceNotFoundException,
            UnknownPluginException,
            UnresolvedMacroException,
        ) as e:
            typer.echo(str(e))
            raise typer.Exit(1)
        _print_outcome(outcome)
    logging.info("Pipeline finished.")


def main():
    app()


if __name__ == "__main__":
    main()
