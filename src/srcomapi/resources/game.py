"""Games are the things users do speedruns in."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel

from srcomapi.client.handle import Client
from srcomapi.paginated import MAX_BULK_PAGE_SIZE, PaginatedList
from srcomapi.resources.base import Resource

if TYPE_CHECKING:
    from srcomapi.resources.category import Category
    from srcomapi.resources.level import Level
    from srcomapi.resources.variable import Variable

LIST_URL = "/games?_bulk=yes"
"""The bulk listing of every game, the only endpoint allowing 1000 items per page."""


class GameNames(BaseModel):
    """The different names registered for a game."""

    international: str
    japanese: Optional[str] = None
    twitch: Optional[str] = None


class Game(Resource):
    """A game on speedrun.com.

    Games from :meth:`list` come from the bulk endpoint and carry only the
    fields declared here.
    """

    abbreviation: str
    names: GameNames
    weblink: str

    @classmethod
    def from_id(cls, client: Client, game_id: str) -> Game:
        """Return the game with the given ID or abbreviation."""
        return cls.fetch(client, f"/games/{game_id}")

    @classmethod
    def list(cls, client: Client) -> PaginatedList[Game]:
        """Return a lazy list of all games, fetched 1000 at a time."""
        return PaginatedList(client, LIST_URL, cls.bind, page_size=MAX_BULK_PAGE_SIZE)

    def categories(self) -> list[Category]:
        """Return every speedrun category defined for this game."""
        from srcomapi.resources.category import Category

        return self.client.get_collection(f"/games/{self.id}/categories", Category.bind)

    def levels(self) -> list[Level]:
        """Return the individual levels of this game."""
        from srcomapi.resources.level import Level

        return self.client.get_collection(f"/games/{self.id}/levels", Level.bind)

    def variables(self) -> list[Variable]:
        """Return the variables defined for this game."""
        from srcomapi.resources.variable import Variable

        return self.client.get_collection(f"/games/{self.id}/variables", Variable.bind)

    def __str__(self) -> str:
        return self.names.international
