"""Leaderboard queries shared by full-game categories and individual levels."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Optional

from pydantic import BaseModel, ValidationError

from srcomapi.client.handle import Client
from srcomapi.exceptions import MalformedResponseError

if TYPE_CHECKING:
    from srcomapi.resources.run import Run

Filter = Mapping[str, str]
"""Variable ID to value ID, e.g. ``{"wl3n9g8o": "4qyxop3l"}``."""


class LeaderboardEntry(BaseModel):
    place: int
    run: dict[str, Any]


class Leaderboard(BaseModel):
    runs: list[LeaderboardEntry]


def filter_query(filter: Optional[Filter]) -> dict[str, str]:
    """Turn a variable filter into ``var-<id>=<value>`` query parameters."""
    return {f"var-{variable}": value for variable, value in (filter or {}).items()}


def fetch_leaderboard(client: Client, path: str, filter: Optional[Filter]) -> Leaderboard:
    data = client.get_query(path, filter_query(filter))
    try:
        return Leaderboard.model_validate(data)
    except ValidationError as exc:
        raise MalformedResponseError(f"Unexpected leaderboard data from {path}: {exc}") from exc


def runs(client: Client, board: Leaderboard) -> list[Run]:
    from srcomapi.resources.run import Run

    return [Run.bind(entry.run, client) for entry in board.runs]


def wr(client: Client, board: Leaderboard) -> Optional[Run]:
    """First place, or ``None`` for an empty board.  Ties return whichever run is listed first."""
    from srcomapi.resources.run import Run

    if not board.runs:
        return None
    return Run.bind(board.runs[0].run, client)


def wr_is_tied(board: Leaderboard) -> bool:
    return len(board.runs) > 1 and board.runs[1].place == 1
