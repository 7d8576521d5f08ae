"""CLI entry points for execrunner.

Implements click-based CLI
"""

import json
import sys

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from execrunner import __version__
from execrunner.core.config import load_config
from execrunner.core.exceptions import (
    ConfigurationError,
    ExecRunnerException,
    ExecutionFailure,
    format_error_for_user,
)
from execrunner.core.executor import Executor
from execrunner.core.options import ExecutionOptions
from execrunner.core.pipe import execute_pipe

# Load .env file from current directory or parent directories
load_dotenv()

console = Console()
err_console = Console(stderr=True)


def parse_env_pairs(pairs: tuple[str, ...]) -> dict[str, str]:
    """Turn NAME=VALUE strings into a mapping."""
    env: dict[str, str] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"expected NAME=VALUE, got {pair!r}", param_hint="--env")
        env[name] = value
    return env


def exit_for_error(error: ExecRunnerException) -> None:
    """Print a library error and exit with a matching status."""
    err_console.print(f"[bold red]Error:[/bold red] {escape(format_error_for_user(error))}")
    if isinstance(error, ExecutionFailure) and error.exit_code and error.exit_code > 0:
        sys.exit(error.exit_code)
    sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="execrunner")
def cli() -> None:
    """Run external commands with a scrubbed environment and captured output."""


@cli.command(context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False})
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@click.option("--squelch", is_flag=True, help="Discard all output")
@click.option("--combine", is_flag=True, help="Capture stderr together with stdout")
@click.option("--no-fail", is_flag=True, help="Do not fail when the command exits nonzero")
@click.option("--stdin", "stdin_file", type=click.Path(), help="File to use as standard input")
@click.option("--keep-locale", is_flag=True, help="Do not force LANG/LC_ALL to the neutral locale")
@click.option("--env", "-e", "env_pairs", multiple=True, help="Extra NAME=VALUE for the child")
@click.option("--profile", "-p", default="default", help="Configuration profile")
def run(
    command: tuple[str, ...],
    squelch: bool,
    combine: bool,
    no_fail: bool,
    stdin_file: str | None,
    keep_locale: bool,
    env_pairs: tuple[str, ...],
    profile: str,
) -> None:
    """Execute COMMAND and print its output.

    A single argument is run through the shell; several arguments are run
    directly as an argument vector.
    """
    try:
        config = load_config(profile)
        options = ExecutionOptions(
            fail_on_fail=not no_fail,
            squelch=squelch,
            combine=combine,
            stdin_file=stdin_file,
            override_locale=not keep_locale,
            custom_environment=parse_env_pairs(env_pairs),
        )
        target: str | list[str] = command[0] if len(command) == 1 else list(command)
        output = Executor(config=config).execute(target, options)
    except ExecRunnerException as e:
        exit_for_error(e)
        return

    if output:
        click.echo(output, nl=not output.endswith("\n"))


@cli.command()
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@click.option("--no-fail", is_flag=True, help="Do not fail when the command exits nonzero")
def pipe(command: tuple[str, ...], no_fail: bool) -> None:
    """Run COMMAND through the shell with stderr merged into stdout."""
    try:
        output = execute_pipe(list(command), fail_on_fail=not no_fail)
    except ExecRunnerException as e:
        exit_for_error(e)
        return

    if output:
        click.echo(output)


@cli.command("show-config")
@click.option("--profile", "-p", default="default", help="Configuration profile")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def show_config(profile: str, as_json: bool) -> None:
    """Show the effective execution configuration."""
    try:
        config = load_config(profile)
    except ConfigurationError as e:
        err_console.print(f"[bold red]Configuration error:[/bold red] {escape(str(e))}")
        sys.exit(1)

    data = config.to_dict()
    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    table = Table(title=f"execrunner configuration ({profile})")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for key, value in data.items():
        if isinstance(value, (list, tuple)):
            value = ", ".join(value)
        table.add_row(key, "" if value is None else str(value))
    console.print(table)


if __name__ == "__main__":
    cli()
