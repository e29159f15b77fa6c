"""Typed accessors for the resources of the speedrun.com API.

Every resource is a Pydantic model bound to the client handle it came from,
so related resources are fetched through the same pipeline::

    game = Game.from_id(client, "sms")
    for category in game.categories():
        print(category, category.wr())
"""

from srcomapi.resources.base import Resource
from srcomapi.resources.category import Category
from srcomapi.resources.game import Game
from srcomapi.resources.level import Level
from srcomapi.resources.notification import Notification
from srcomapi.resources.run import Guest, Run
from srcomapi.resources.user import User
from srcomapi.resources.variable import Variable, VariableValue

__all__ = [
    "Category",
    "Game",
    "Guest",
    "Level",
    "Notification",
    "Resource",
    "Run",
    "User",
    "Variable",
    "VariableValue",
]
