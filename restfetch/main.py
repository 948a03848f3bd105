"""Main entry point for the restfetch application.

Sets up the Typer CLI application, wires dependencies per invocation
(Composition Root), defines CLI commands, and delegates execution to the
CommandHandler.
"""

import asyncio
import logging
import signal
from dataclasses import dataclass
from typing import Any, Coroutine, Dict, List, Optional

import typer
from typing_extensions import Annotated

from restfetch import __version__
from restfetch.core.command_handler import CommandHandler
from restfetch.core.services.client_session import ClientSession, create_session
from restfetch.domain.models.common import Credential
from restfetch.domain.models.pagination import CancellationToken
from restfetch.infrastructure.cli.display import ConsoleDisplay
from restfetch.infrastructure.config.settings import (
    get_api_token, get_config, load_client_settings, load_configuration,
)
from restfetch.infrastructure.monitoring.logger_setup import resolve_level, setup_logging

logger = logging.getLogger(__name__)


@dataclass
class GlobalOptions:
    """Options given before the command name."""
    token: Optional[str] = None
    base_url: Optional[str] = None
    verbose: bool = False


# --- Dependency wiring ---

def create_command_handler(options: GlobalOptions) -> CommandHandler:
    """Creates and wires the session, display and handler for one command.

    This acts as the Composition Root. A fresh session (with its own tracker
    and cache) is built for every invocation.
    """
    load_configuration()
    log_level = resolve_level("DEBUG" if options.verbose else get_config("logging.level"))
    setup_logging(
        log_level=log_level,
        log_file=get_config("logging.file"),
        log_format=get_config("logging.format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
    )

    settings = load_client_settings(base_url=options.base_url)
    token = options.token or get_api_token()
    credential = Credential(token) if token else None
    logger.debug(f"Authenticated session: {bool(credential)}")
    session: ClientSession = create_session(settings, credential=credential)
    return CommandHandler(session=session, ui=ConsoleDisplay())


def parse_params(pairs: Optional[List[str]]) -> Dict[str, Any]:
    """Turns ['state=open', 'sort=created'] into a parameter mapping."""
    params: Dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"expected key=value, got '{pair}'", param_hint="--param")
        params[key.strip()] = value.strip()
    return params


def run_command(handler: CommandHandler, coro: Coroutine[Any, Any, int]) -> None:
    """Runs a handler coroutine, closes the session and exits with its code."""
    async def _run() -> int:
        try:
            return await coro
        finally:
            await handler.session.close()

    exit_code = asyncio.run(_run())
    if exit_code:
        raise typer.Exit(code=exit_code)


# --- Typer App Definition ---
app = typer.Typer(
    name="restfetch",
    help="Resilient client for paginated JSON REST APIs (GitHub by default).",
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"restfetch {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    token: Annotated[Optional[str], typer.Option("--token", "-t", envvar="RESTFETCH_API_TOKEN", show_envvar=False, help="Bearer token (defaults to RESTFETCH_API_TOKEN or GITHUB_TOKEN).")] = None,
    base_url: Annotated[Optional[str], typer.Option("--base-url", help="Service root URL.")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
    version: Annotated[Optional[bool], typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version and exit.")] = None,
):
    """Fetch single resources or whole paginated collections."""
    ctx.obj = GlobalOptions(token=token, base_url=base_url, verbose=verbose)


@app.command()
def get(
    ctx: typer.Context,
    path: Annotated[str, typer.Argument(help="Resource path, e.g. /repos/octocat/Hello-World")],
    raw: Annotated[bool, typer.Option("--raw", help="Print compact JSON without highlighting.")] = False,
):
    """Fetch a single resource and print it as JSON."""
    handler = create_command_handler(ctx.obj)
    run_command(handler, handler.handle_get(path, raw=raw))


@app.command(name="list")
def list_command(
    ctx: typer.Context,
    path: Annotated[str, typer.Argument(help="Collection path, e.g. /users/octocat/repos")],
    per_page: Annotated[Optional[int], typer.Option("--per-page", "-n", min=1, help="Items per page.")] = None,
    max_pages: Annotated[Optional[int], typer.Option("--max-pages", "-m", min=1, help="Stop after this many pages.")] = None,
    param: Annotated[Optional[List[str]], typer.Option("--param", "-p", help="Extra query parameter as key=value (repeatable).")] = None,
    items_key: Annotated[Optional[str], typer.Option("--items-key", help="Key holding the list in wrapped responses (e.g. 'items').")] = None,
    column: Annotated[Optional[List[str]], typer.Option("--column", "-c", help="Field to show in the table (repeatable).")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print items as a JSON array.")] = False,
):
    """Fetch every page of a collection. Ctrl-C stops at the next page boundary."""
    params = parse_params(param)
    handler = create_command_handler(ctx.obj)
    token = CancellationToken()

    async def _list() -> int:
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, token.cancel)
        except (NotImplementedError, RuntimeError):
            logger.debug("Signal handlers unavailable; Ctrl-C will abort immediately.")
        try:
            return await handler.handle_list(
                path,
                page_size=per_page,
                max_pages=max_pages,
                params=params,
                items_key=items_key,
                as_json=as_json,
                columns=column,
                cancel_token=token,
            )
        finally:
            try:
                loop.remove_signal_handler(signal.SIGINT)
            except (NotImplementedError, RuntimeError):
                pass

    run_command(handler, _list())


@app.command(name="rate-limit")
def rate_limit_command(ctx: typer.Context):
    """Show the current rate-limit quota for the configured credential."""
    handler = create_command_handler(ctx.obj)
    run_command(handler, handler.handle_rate_limit())


def cli_entry_point():
    """Function called by the console script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
