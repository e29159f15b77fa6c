"""Categories are the different rulesets for speedruns."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from pydantic import Field

from srcomapi.client.handle import Client
from srcomapi.resources import leaderboard
from srcomapi.resources.base import Resource
from srcomapi.resources.leaderboard import Filter

if TYPE_CHECKING:
    from srcomapi.resources.game import Game
    from srcomapi.resources.run import Run
    from srcomapi.resources.variable import Variable


class Category(Resource):
    """A speedrun category.

    ``kind`` is ``"per-game"`` for full-game categories and
    ``"per-level"`` for individual-level categories.
    """

    name: str
    kind: str = Field(default="per-game", alias="type")
    weblink: Optional[str] = None

    @classmethod
    def from_id(cls, client: Client, category_id: str) -> Category:
        """Return the category with the given ID."""
        return cls.fetch(client, f"/categories/{category_id}")

    def game(self) -> Game:
        """Return the game this category belongs to, via its ``game`` link."""
        from srcomapi.resources.game import Game

        return Game.bind(self.client.get_abs(self.link("game").uri), self.client)

    def variables(self) -> list[Variable]:
        """Return the variables that apply to this category."""
        from srcomapi.resources.variable import Variable

        return self.client.get_collection(f"/categories/{self.id}/variables", Variable.bind)

    def leaderboard(self, filter: Optional[Filter] = None) -> list[Run]:
        """Return the full-game leaderboard, filtered by variable/value pairs."""
        return leaderboard.runs(self.client, self._board(filter))

    def wr(self, filter: Optional[Filter] = None) -> Optional[Run]:
        """Return the world record for this category and filter, if any run is verified."""
        return leaderboard.wr(self.client, self._board(filter))

    def wr_is_tied(self, filter: Optional[Filter] = None) -> bool:
        """Return True if first place is shared."""
        return leaderboard.wr_is_tied(self._board(filter))

    def _board(self, filter: Optional[Filter]) -> leaderboard.Leaderboard:
        path = f"/leaderboards/{self.game().id}/category/{self.id}"
        return leaderboard.fetch_leaderboard(self.client, path, filter)

    def __str__(self) -> str:
        return self.name
