# gridsuite/dsa/contracts/parameters.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_SCENARIO_DURATION = 50.0
DEFAULT_CONTINGENCIES_START_TIME = 5.0


class ParametersInfos(BaseModel):
    """A stored parameter set, as exchanged over HTTP and in run messages."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: Optional[UUID] = None
    provider: Optional[str] = None
    scenario_duration: float = Field(default=DEFAULT_SCENARIO_DURATION, ge=0)
    contingencies_start_time: float = Field(default=DEFAULT_CONTINGENCIES_START_TIME, ge=0)
    contingency_list_ids: list[str] = Field(default_factory=list)


class ParametersValues(BaseModel):
    """Parameter set resolved against a network, for display."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    contingencies_start_time: float
    contingencies: list[dict] = Field(default_factory=list)
