"""srcomapi -- a rate-limited, caching client for the speedrun.com REST API.

Every request goes through one shared fetch pipeline that serves repeated
requests from a cache, keeps the whole process under the API's request
quota, retries transient failures and turns paginated listings into lazy
iterators.

Typical usage::

    from srcomapi.client import Client
    from srcomapi.resources import Game

    with Client.create() as client:
        game = Game.from_id(client, "sms")
        for category in game.categories():
            print(category)

Modules:
    app: Typer application and CLI entry point.
    client: Client handles and the fetch pipeline.
    cache: Response cache store and expiry policy.
    ratelimit: Sliding-window rate limiter.
    paginated: Lazy iterator over paginated listings.
    resources: Typed accessors for games, runs, users and friends.
    models: Pydantic configuration and wire models.
    config: XDG-aware configuration loading.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting for the CLI.
"""

__version__ = "0.3.0"
