"""Runs are the individual speedruns submitted to a leaderboard."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from srcomapi.client.handle import Client
from srcomapi.exceptions import MalformedResponseError, UnverifiedRunError
from srcomapi.resources.base import Resource
from srcomapi.resources.user import User


class Times(BaseModel):
    """The duration of a run in the documented timing methods.

    ``primary`` is the time the leaderboard ranks by and equals one of the
    others.
    """

    primary: dt.timedelta
    realtime: Optional[dt.timedelta] = None
    realtime_noloads: Optional[dt.timedelta] = None
    ingame: Optional[dt.timedelta] = None


class RunStatus(BaseModel):
    """Submission status: ``new``, ``verified`` or ``rejected``."""

    model_config = ConfigDict(populate_by_name=True)

    status: Literal["new", "verified", "rejected"]
    examiner: Optional[str] = None
    verify_date: Optional[dt.datetime] = Field(default=None, alias="verify-date")
    reason: Optional[str] = None

    def examiner_user(self, client: Client) -> User:
        """Return the moderator who verified or rejected the run.

        Raises:
            UnverifiedRunError: If the run is still new.
        """
        if self.status == "new" or self.examiner is None:
            raise UnverifiedRunError("Run has neither been verified nor rejected")
        return User.from_id(client, self.examiner)


class Player(BaseModel):
    """Entry of a run's ``players`` list: a registered user or a named guest."""

    rel: Literal["user", "guest"]
    id: Optional[str] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class Guest:
    """A runner without an account, known only by name."""

    name: str

    def __str__(self) -> str:
        return self.name


Runner = Union[User, Guest]


class Run(Resource):
    """A single speedrun."""

    weblink: str
    game_id: str = Field(alias="game")
    category_id: Optional[str] = Field(default=None, alias="category")
    level_id: Optional[str] = Field(default=None, alias="level")
    date: Optional[dt.date] = None
    submitted: Optional[dt.datetime] = None
    status: RunStatus
    times: Times
    players: list[Player] = Field(default_factory=list)

    @classmethod
    def from_id(cls, client: Client, run_id: str) -> Run:
        """Return the run with the given ID."""
        return cls.fetch(client, f"/runs/{run_id}")

    @property
    def time(self) -> dt.timedelta:
        """Duration in the leaderboard's primary timing method."""
        return self.times.primary

    def examiner(self) -> User:
        """Return the moderator who verified or rejected this run.

        Raises:
            UnverifiedRunError: If the run is still new.
        """
        return self.status.examiner_user(self.client)

    def runners(self) -> list[Runner]:
        """Return the players of this run, fetching registered users."""
        result: list[Runner] = []
        for player in self.players:
            if player.rel == "user":
                if player.id is None:
                    raise MalformedResponseError(f"Run {self.id} lists a user without an id")
                result.append(User.from_id(self.client, player.id))
            else:
                result.append(Guest(player.name or ""))
        return result
