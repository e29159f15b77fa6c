"""Levels are the stages, worlds or maps within a game."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from srcomapi.client.handle import Client
from srcomapi.resources import leaderboard
from srcomapi.resources.base import Resource
from srcomapi.resources.leaderboard import Filter

if TYPE_CHECKING:
    from srcomapi.resources.category import Category
    from srcomapi.resources.game import Game
    from srcomapi.resources.run import Run


class Level(Resource):
    """An individual level of a game."""

    name: str
    weblink: Optional[str] = None

    @classmethod
    def from_id(cls, client: Client, level_id: str) -> Level:
        """Return the level with the given ID."""
        return cls.fetch(client, f"/levels/{level_id}")

    def game(self) -> Game:
        """Return the game this level belongs to, via its ``game`` link.

        Raises:
            MissingLinkError: If the level has no single ``game`` link.
        """
        from srcomapi.resources.game import Game

        return Game.bind(self.client.get_abs(self.link("game").uri), self.client)

    def leaderboard(self, category: Category, filter: Optional[Filter] = None) -> list[Run]:
        """Return the IL leaderboard for *category*, filtered by variable/value pairs."""
        return leaderboard.runs(self.client, self._board(category, filter))

    def wr(self, category: Category, filter: Optional[Filter] = None) -> Optional[Run]:
        """Return the IL world record for *category* and *filter*, if any."""
        return leaderboard.wr(self.client, self._board(category, filter))

    def wr_is_tied(self, category: Category, filter: Optional[Filter] = None) -> bool:
        return leaderboard.wr_is_tied(self._board(category, filter))

    def _board(self, category: Category, filter: Optional[Filter]) -> leaderboard.Leaderboard:
        path = f"/leaderboards/{self.game().id}/level/{self.id}/{category.id}"
        return leaderboard.fetch_leaderboard(self.client, path, filter)

    def __str__(self) -> str:
        return self.name
