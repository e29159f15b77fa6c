"""Typer application and console entry point for srcomapi.

The ``srcomapi`` command is a thin browser over the client library: every
sub-command opens a client handle from the resolved configuration (config
file, then ``SRCOMAPI_*`` environment variables), fetches through the same
cache and rate limiter as library users get, and prints the result with
:mod:`srcomapi.output`.

The response cache is persisted to :func:`~srcomapi.config.default_cache_path`
unless a cache file is configured, so repeated invocations within a minute
do not hit the network again.

:func:`main` is the console-script entry point declared in
``pyproject.toml``.  It maps :class:`~srcomapi.exceptions.SrcomError` to
the error's exit code.
"""

from __future__ import annotations

import itertools
import logging
import signal
import sys
from typing import Any, Optional

import httpx
import typer

from srcomapi import __version__
from srcomapi.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="srcomapi",
    help="Browse the speedrun.com API from the command line.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

cache_app = typer.Typer(no_args_is_help=True)
app.add_typer(cache_app, name="cache", help="Inspect or clear the response cache.")

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"srcomapi {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output, including library logs."
    ),
    no_cache: bool = typer.Option(False, "--no-cache", help="Bypass the response cache."),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~srcomapi.output.OutputManager` and, with
    ``--verbose``, routes the library's :mod:`logging` records to stderr.
    Shared options are stored in ``ctx.obj``; an ``httpx`` transport placed
    there under ``"transport"`` is used for every request.
    """
    from srcomapi.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    if verbose:
        logging.basicConfig(level=logging.DEBUG, format=_LOG_FORMAT, stream=sys.stderr)
        # httpcore logs every socket event at DEBUG
        logging.getLogger("httpcore").setLevel(logging.INFO)

    ctx.ensure_object(dict)
    ctx.obj["no_cache"] = no_cache
    ctx.obj["verbose"] = verbose


# ------------------------------------------------------------------ #
# Helpers
# ------------------------------------------------------------------ #


def _resolve_config(ctx: typer.Context) -> Any:
    """Resolve the client config, defaulting the cache file for the CLI."""
    from srcomapi.config import default_cache_path, resolve_client_config

    config = resolve_client_config()
    cache = config.cache
    if ctx.obj.get("no_cache"):
        cache = cache.model_copy(update={"enabled": False})
    elif cache.path is None:
        cache = cache.model_copy(update={"path": default_cache_path()})
    return config.model_copy(update={"cache": cache})


def _open_client(ctx: typer.Context) -> Any:
    from srcomapi.client import build_client
    from srcomapi.output import debug

    config = _resolve_config(ctx)
    transport: Optional[httpx.BaseTransport] = ctx.obj.get("transport")
    client = build_client(config, transport=transport)
    debug(f"Using {client!r}, cache file {config.cache.path}")
    return client


def _record(resource: Any) -> dict[str, Any]:
    return resource.model_dump(mode="json", exclude={"links"})


def _take(items: Any, limit: int) -> list[Any]:
    return list(itertools.islice(items, limit))


def _limit_page_size(listing: Any, limit: int) -> None:
    """Request no more items per page than will be shown."""
    listing.page_size = max(1, min(limit, listing.max_page_size))


# ------------------------------------------------------------------ #
# Resource commands
# ------------------------------------------------------------------ #


@app.command("game")
def game_command(
    ctx: typer.Context,
    game_id: str = typer.Argument(..., help="Game ID or abbreviation."),
) -> None:
    """Show a game."""
    from srcomapi.output import print_record
    from srcomapi.resources import Game

    with _open_client(ctx) as client:
        print_record(_record(Game.from_id(client, game_id)))


@app.command("games")
def games_command(
    ctx: typer.Context,
    limit: int = typer.Option(20, "--limit", "-l", min=1, help="Number of games to list."),
) -> None:
    """List games in the order the API returns them."""
    from srcomapi.output import print_table
    from srcomapi.resources import Game

    with _open_client(ctx) as client:
        listing = Game.list(client)
        _limit_page_size(listing, limit)
        games = _take(listing, limit)
    print_table(
        ["ID", "Abbreviation", "Name"],
        [[g.id, g.abbreviation, str(g)] for g in games],
        title="Games",
    )


@app.command("categories")
def categories_command(
    ctx: typer.Context,
    game_id: str = typer.Argument(..., help="Game ID or abbreviation."),
) -> None:
    """List the speedrun categories of a game."""
    from srcomapi.output import print_table
    from srcomapi.resources import Game

    with _open_client(ctx) as client:
        game = Game.from_id(client, game_id)
        categories = game.categories()
    print_table(
        ["ID", "Name", "Type"],
        [[c.id, c.name, c.kind] for c in categories],
        title=f"Categories of {game}",
    )


@app.command("user")
def user_command(
    ctx: typer.Context,
    user_id: str = typer.Argument(..., help="User ID or name."),
) -> None:
    """Show a user."""
    from srcomapi.output import print_record
    from srcomapi.resources import User

    with _open_client(ctx) as client:
        print_record(_record(User.from_id(client, user_id)))


@app.command("users")
def users_command(
    ctx: typer.Context,
    limit: int = typer.Option(20, "--limit", "-l", min=1, help="Number of users to list."),
) -> None:
    """List users."""
    from srcomapi.output import print_table
    from srcomapi.resources import User

    with _open_client(ctx) as client:
        listing = User.list(client)
        _limit_page_size(listing, limit)
        users = _take(listing, limit)
    print_table(["ID", "Name"], [[u.id, str(u)] for u in users], title="Users")


@app.command("run")
def run_command(
    ctx: typer.Context,
    run_id: str = typer.Argument(..., help="Run ID."),
) -> None:
    """Show a run with its runners."""
    from srcomapi.output import print_record
    from srcomapi.resources import Run

    with _open_client(ctx) as client:
        run = Run.from_id(client, run_id)
        record = _record(run)
        record["runners"] = [str(runner) for runner in run.runners()]
    print_record(record)


@app.command("notifications")
def notifications_command(ctx: typer.Context) -> None:
    """List your notifications.  Needs an API key."""
    from srcomapi.output import print_table
    from srcomapi.resources import Notification

    with _open_client(ctx) as client:
        notifications = Notification.list(client)
    print_table(
        ["Created", "Status", "Text", "Link"],
        [[n.created.isoformat(), n.status, n.text, n.weblink] for n in notifications],
        title="Notifications",
    )


# ------------------------------------------------------------------ #
# Cache commands
# ------------------------------------------------------------------ #


def _open_store(ctx: typer.Context) -> Any:
    from srcomapi.cache import CacheStore

    config = _resolve_config(ctx)
    return CacheStore.from_config(config.cache, eviction_window=config.rate_limit.interval)


@cache_app.command("stats")
def cache_stats(ctx: typer.Context) -> None:
    """Show the size and location of the response cache."""
    from srcomapi.output import print_record

    store = _open_store(ctx)
    try:
        print_record(store.stats())
    finally:
        store.close()


@cache_app.command("clear")
def cache_clear(ctx: typer.Context) -> None:
    """Remove every cached response."""
    from srcomapi.output import info, success

    store = _open_store(ctx)
    try:
        count = len(store)
        store.clear()
        store.persist()
    finally:
        store.close()
    if store.path is None:
        info("No cache file configured.")
    else:
        success(f"Removed {count} cached responses from {store.path}")


# ------------------------------------------------------------------ #
# Entry point
# ------------------------------------------------------------------ #


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``srcomapi`` console script.

    :class:`~srcomapi.exceptions.SrcomError` exits with the error's
    ``exit_code``; authentication failures also print how to supply a key.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from srcomapi.config import ENV_API_KEY
        from srcomapi.exceptions import AuthError, SrcomError
        from srcomapi.output import error, suggest

        if isinstance(exc, SrcomError):
            error(str(exc))
            if isinstance(exc, AuthError):
                suggest(f"Set {ENV_API_KEY} to your speedrun.com API key.")
            sys.exit(exc.exit_code)
        error(f"Unexpected error: {exc!r}")
        sys.exit(EXIT_GENERIC_FAILURE)
