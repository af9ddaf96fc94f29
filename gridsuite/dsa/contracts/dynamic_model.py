# gridsuite/dsa/contracts/dynamic_model.py
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class BasicProperty(BaseModel):
    name: str
    value: Optional[str] = None
    type: Optional[str] = None


class DynamicModelConfig(BaseModel):
    """Which behavioral model applies to which network elements."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    model: str
    group: str
    group_type: str = "FIXED"
    properties: list[BasicProperty] = Field(default_factory=list)
