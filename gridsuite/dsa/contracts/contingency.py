# gridsuite/dsa/contracts/contingency.py
"""Contingency definitions as exported by the actions server."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ContingencyElement(_CamelModel):
    id: str
    element_type: Optional[str] = Field(default=None, alias="type")


class Contingency(_CamelModel):
    id: str
    elements: list[ContingencyElement] = Field(default_factory=list)


class ContingencyInfos(_CamelModel):
    """A contingency plus the elements the actions server could not use."""

    id: str
    contingency: Optional[Contingency] = None
    not_found_elements: list[str] = Field(default_factory=list)
    not_connected_elements: list[str] = Field(default_factory=list)

    @property
    def resolved(self) -> bool:
        return self.contingency is not None
