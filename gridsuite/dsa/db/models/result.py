from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from gridsuite.dsa.db.base import Base


class ResultEntity(Base):
    __tablename__ = "dynamic_security_analysis_result"

    result_uuid: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    debug_file_location: Mapped[Optional[str]] = mapped_column(String, nullable=True)
