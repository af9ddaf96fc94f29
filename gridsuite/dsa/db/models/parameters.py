from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import JSON, Float, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from gridsuite.dsa.contracts.parameters import ParametersInfos
from gridsuite.dsa.db.base import Base


class ParametersEntity(Base):
    __tablename__ = "dynamic_security_analysis_parameters"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    provider: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    scenario_duration: Mapped[float] = mapped_column(Float, nullable=False)
    contingencies_start_time: Mapped[float] = mapped_column(Float, nullable=False)
    contingency_list_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    @classmethod
    def from_infos(cls, infos: ParametersInfos) -> "ParametersEntity":
        entity = cls(id=uuid.uuid4())
        entity.apply(infos)
        return entity

    def apply(self, infos: ParametersInfos) -> None:
        self.provider = infos.provider
        self.scenario_duration = infos.scenario_duration
        self.contingencies_start_time = infos.contingencies_start_time
        self.contingency_list_ids = list(infos.contingency_list_ids)

    def to_infos(self) -> ParametersInfos:
        return ParametersInfos(
            id=self.id,
            provider=self.provider,
            scenario_duration=self.scenario_duration,
            contingencies_start_time=self.contingencies_start_time,
            contingency_list_ids=list(self.contingency_list_ids or []),
        )
