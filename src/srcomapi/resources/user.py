"""Users are the people with an account on speedrun.com."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from srcomapi.client.handle import Client
from srcomapi.paginated import PaginatedList
from srcomapi.resources.base import Resource

LIST_URL = "/users"


class UserNames(BaseModel):
    """The names a user has registered."""

    international: str
    japanese: Optional[str] = None


class User(Resource):
    """A registered speedrun.com user."""

    names: UserNames
    signup: Optional[datetime] = None
    weblink: Optional[str] = None

    @classmethod
    def from_id(cls, client: Client, user_id: str) -> User:
        """Return the user with the given ID or username."""
        return cls.fetch(client, f"/users/{user_id}")

    @classmethod
    def list(cls, client: Client) -> PaginatedList[User]:
        """Return a lazy list of all users."""
        return PaginatedList(client, LIST_URL, cls.bind)

    def __str__(self) -> str:
        return self.names.international
