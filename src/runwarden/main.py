"""CLI entrypoint for runwarden."""

import logging
from pathlib import Path

import rich_click as click

from runwarden import __version__
from runwarden.controllers import (
    ExecutorCliController,
    RunCommand,
    RunOutcome,
    ValidateCommand,
)
from runwarden.errors import OutputPersistError, SpawnError, ValidationError

click.rich_click.USE_MARKDOWN = True
EXECUTOR_CONTROLLER = ExecutorCliController()


@click.group()
@click.version_option(version=__version__, prog_name="runwarden")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging level for supervisor diagnostics.",
)
def runwarden(log_level: str) -> None:
    """Run external programs with captured output and a kill deadline."""

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@runwarden.command("run", context_settings={"allow_interspersed_args": False})
@click.argument("application")
@click.argument("params", nargs=-1, type=click.UNPROCESSED)
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Seconds before the child is terminated. Non-positive means no limit.",
)
@click.option(
    "--kill-grace-ms",
    type=click.IntRange(min=0),
    default=None,
    help="Milliseconds between SIGTERM and SIGKILL after a timeout.",
)
@click.option("--stdout-path", type=click.Path(path_type=Path), default=None, help="File for stdout.")
@click.option("--stderr-path", type=click.Path(path_type=Path), default=None, help="File for stderr.")
@click.option(
    "--append/--overwrite",
    default=None,
    help="Append to or replace existing output files (default: append).",
)
@click.option(
    "--allow-unsafe-path",
    is_flag=True,
    default=False,
    help="Skip the whitespace / shell metacharacter check on APPLICATION.",
)
@click.option(
    "--replace",
    is_flag=True,
    default=False,
    help="Replace this process with APPLICATION instead of supervising it.",
)
@click.option(
    "--background",
    is_flag=True,
    default=False,
    help="Start APPLICATION and return immediately without capturing output.",
)
@click.pass_context
def run(  # noqa: PLR0913
    ctx: click.Context,
    application: str,
    params: tuple[str, ...],
    timeout: float | None,
    kill_grace_ms: int | None,
    stdout_path: Path | None,
    stderr_path: Path | None,
    append: bool | None,
    allow_unsafe_path: bool,
    replace: bool,
    background: bool,
) -> None:
    """Run APPLICATION with PARAMS and echo its captured output.

    Exits with the child's exit code, or **124** when the timeout expires.
    """

    try:
        outcome = EXECUTOR_CONTROLLER.run(
            RunCommand(
                application=application,
                params=params,
                timeout=timeout,
                kill_grace_ms=kill_grace_ms,
                stdout_path=stdout_path,
                stderr_path=stderr_path,
                append=append,
                protect_against_injection=not allow_unsafe_path,
                replace=replace,
                background=background,
            ),
        )
    except (ValidationError, SpawnError, OutputPersistError) as error:
        raise click.ClickException(str(error)) from error
    _emit_outcome(outcome)
    ctx.exit(outcome.exit_code)


@runwarden.command("validate")
@click.argument("application")
@click.option(
    "--allow-unsafe-path",
    is_flag=True,
    default=False,
    help="Skip the whitespace / shell metacharacter check on APPLICATION.",
)
@click.pass_context
def validate(ctx: click.Context, application: str, allow_unsafe_path: bool) -> None:
    """Check that APPLICATION exists, is executable and looks safe."""

    outcome = EXECUTOR_CONTROLLER.validate(
        ValidateCommand(
            application=application,
            protect_against_injection=not allow_unsafe_path,
        ),
    )
    _emit_outcome(outcome)
    ctx.exit(outcome.exit_code)


def _emit_outcome(outcome: RunOutcome) -> None:
    if outcome.stdout is not None:
        click.echo(outcome.stdout, nl=False)
    if outcome.stderr is not None:
        click.echo(outcome.stderr, nl=False, err=True)
    for line in outcome.lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    runwarden()
