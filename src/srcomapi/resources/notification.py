"""Notifications are messages the site sends a user about events concerning them.

Only available to authenticated handles.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Literal

from pydantic import BaseModel

from srcomapi.client.handle import Client, require_auth
from srcomapi.resources.base import Resource


class Rel(str, enum.Enum):
    """What a notification's link points at."""

    POST = "post"
    RUN = "run"
    GAME = "game"
    GUIDE = "guide"


class NotificationItem(BaseModel):
    rel: Rel
    uri: str


class Notification(Resource):
    """A notification addressed to the authenticated user."""

    created: datetime
    status: Literal["read", "unread"]
    text: str
    item: NotificationItem

    @classmethod
    def list(cls, client: Client) -> list[Notification]:
        """Return the authenticated user's notifications.

        Raises:
            AuthError: If *client* has no API key; no request is sent.
        """
        auth_client = require_auth(client)
        return auth_client.get_collection("/notifications", cls.bind)

    @property
    def read(self) -> bool:
        return self.status == "read"

    @property
    def weblink(self) -> str:
        """The notification's link. May point to the homepage."""
        return self.item.uri

    @property
    def weblink_rel(self) -> Rel:
        return self.item.rel

    def __str__(self) -> str:
        return self.text
