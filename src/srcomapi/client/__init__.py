"""Client handles and the fetch pipeline behind them.

Classes:
    :class:`Client` -- unauthenticated handle.
    :class:`AuthenticatedClient` -- handle that also sends an API key.
    :class:`FetchPipeline` -- shared cache / rate limit / retry machinery.

Example::

    from srcomapi.client import Client

    with Client.create() as client:
        game = client.get("/games/sms")
"""

from srcomapi.client.handle import (
    AnnotatedData,
    AuthenticatedClient,
    Client,
    build_client,
    require_auth,
)
from srcomapi.client.pipeline import FetchPipeline, normalize_url, unwrap

__all__ = [
    "AnnotatedData",
    "AuthenticatedClient",
    "Client",
    "FetchPipeline",
    "build_client",
    "normalize_url",
    "require_auth",
    "unwrap",
]
