"""Variables are custom criteria distinguishing runs in the same category or level."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, Field

from srcomapi.client.handle import Client
from srcomapi.resources.base import Resource


class ValueData(BaseModel):
    label: str
    rules: Optional[str] = None


class VariableValues(BaseModel):
    values: dict[str, ValueData] = Field(default_factory=dict)
    default: Optional[str] = None


@dataclass(frozen=True)
class VariableValue:
    """A possible value of a variable; ``rules`` is set for subcategories."""

    id: str
    label: str
    rules: Optional[str] = None

    def __str__(self) -> str:
        return self.label


class Variable(Resource):
    """A variable with its possible values."""

    name: str
    is_subcategory: bool = Field(default=False, alias="is-subcategory")
    values: VariableValues = Field(default_factory=VariableValues)

    @classmethod
    def from_id(cls, client: Client, variable_id: str) -> Variable:
        """Return the variable with the given ID."""
        return cls.fetch(client, f"/variables/{variable_id}")

    def value_list(self) -> list[VariableValue]:
        """Return every value this variable can take."""
        return [
            VariableValue(value_id, data.label, data.rules)
            for value_id, data in self.values.values.items()
        ]

    def default_value(self) -> Optional[VariableValue]:
        """Return the default value, if the variable has one."""
        default = self.values.default
        if default is None or default not in self.values.values:
            return None
        data = self.values.values[default]
        return VariableValue(default, data.label, data.rules)

    def __str__(self) -> str:
        return self.name
