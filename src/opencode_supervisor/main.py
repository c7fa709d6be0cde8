"""CLI entrypoint for opencode-supervisor."""

import logging

import rich_click as click

from opencode_supervisor import __version__
from opencode_supervisor.http.client import SessionClientError
from opencode_supervisor.supervisor.controllers import (
    AbortSessionCommand,
    InspectSessionCommand,
    RunTaskCommand,
    SupervisorCliController,
)
from opencode_supervisor.supervisor.engine import TaskSetupError
from opencode_supervisor.supervisor.models import TaskStatus

click.rich_click.USE_MARKDOWN = True
SUPERVISOR_CONTROLLER = SupervisorCliController()


@click.group()
@click.version_option(version=__version__, prog_name="opencode-supervisor")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging level for diagnostics on stderr.",
)
def opencode_supervisor(log_level: str) -> None:
    """Drive an OpenCode agent until requested file changes are verified.

    Connection settings come from `OPENCODE_SUPERVISOR_*` environment variables.
    """

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@opencode_supervisor.command("run")
@click.argument("task")
@click.option(
    "--project-name",
    default=None,
    help="Project subdirectory in the sandbox. Defaults to the sandbox root.",
)
@click.option(
    "--max-iterations",
    type=click.IntRange(min=1),
    default=None,
    help="Iteration budget. If omitted, OPENCODE_SUPERVISOR_MAX_ITERATIONS is used.",
)
@click.option(
    "--continue-on-error/--stop-on-error",
    default=None,
    help="Re-prompt after tool failures and retry after request errors (default: on).",
)
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    default=False,
    help="Print the structured result as JSON instead of Markdown.",
)
def run_task(
    task: str,
    project_name: str | None,
    max_iterations: int | None,
    continue_on_error: bool | None,
    output_json: bool,
) -> None:
    """Execute a coding task and verify it through real file changes."""

    try:
        outcome = SUPERVISOR_CONTROLLER.run_task(
            RunTaskCommand(
                task=task,
                project_name=project_name,
                max_iterations=max_iterations,
                continue_on_error=continue_on_error,
                output_json=output_json,
            ),
        )
    except ValueError as error:
        raise click.UsageError(str(error)) from error
    except (TaskSetupError, SessionClientError) as error:
        raise click.ClickException(str(error)) from error

    _emit_lines(outcome.lines)
    if outcome.result.status is TaskStatus.FAILED:
        raise click.ClickException("Task failed due to tool errors.")


@opencode_supervisor.command("abort")
@click.argument("session_id")
def abort_session(session_id: str) -> None:
    """Abort a running OpenCode session (best effort)."""

    try:
        lines, aborted = SUPERVISOR_CONTROLLER.abort(AbortSessionCommand(session_id=session_id))
    except ValueError as error:
        raise click.UsageError(str(error)) from error
    _emit_lines(lines)
    if not aborted:
        raise click.ClickException("Abort request was not accepted.")


@opencode_supervisor.command("inspect")
@click.argument("session_id")
def inspect_session(session_id: str) -> None:
    """Show the change summary and diff of an existing session."""

    try:
        lines = SUPERVISOR_CONTROLLER.inspect(InspectSessionCommand(session_id=session_id))
    except ValueError as error:
        raise click.UsageError(str(error)) from error
    except SessionClientError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    opencode_supervisor()
