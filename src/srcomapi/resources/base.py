"""Common base for resources returned by the API.

A resource is a Pydantic model of one JSON object, bound to the client
handle it was fetched through so that it can fetch related resources with
the same cache, quota and credentials.
"""

from __future__ import annotations

from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError

from srcomapi.client.handle import Client
from srcomapi.exceptions import MalformedResponseError, MissingLinkError
from srcomapi.models import Link

R = TypeVar("R", bound="Resource")


class Resource(BaseModel):
    """Base class for API resources.

    Subclasses declare the JSON fields they use; unknown fields are
    ignored.  Build instances with :meth:`bind` so they carry a client.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    links: list[Link] = Field(default_factory=list)

    _client: Optional[Client] = PrivateAttr(default=None)

    @classmethod
    def bind(cls: type[R], data: Any, client: Client) -> R:
        """Validate *data* and attach *client*.

        Matches the ``factory(item, client)`` signature used by
        :meth:`~srcomapi.client.handle.Client.get_collection` and
        :class:`~srcomapi.paginated.PaginatedList`.

        Raises:
            MalformedResponseError: If *data* does not fit the model.
        """
        try:
            resource = cls.model_validate(data)
        except ValidationError as exc:
            raise MalformedResponseError(f"Unexpected {cls.__name__} data: {exc}") from exc
        resource._client = client
        return resource

    @classmethod
    def fetch(cls: type[R], client: Client, path: str) -> R:
        """GET an API-relative *path* and bind its ``data`` as this resource."""
        return cls.bind(client.get(path), client)

    @property
    def client(self) -> Client:
        if self._client is None:
            raise RuntimeError(f"{type(self).__name__} {self.id} is not bound to a client")
        return self._client

    def link(self, rel: str) -> Link:
        """Return the single link with relation *rel*.

        Raises:
            MissingLinkError: If there is no such link or more than one.
        """
        matches = [link for link in self.links if link.rel == rel]
        if len(matches) != 1:
            raise MissingLinkError(
                f"{type(self).__name__} {self.id} has {len(matches)} '{rel}' links, expected 1"
            )
        return matches[0]
