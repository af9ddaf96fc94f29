from __future__ import annotations

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

from gridsuite.dsa.core.config import settings


class Base(DeclarativeBase):
    """Shared SQLAlchemy declarative base."""

    metadata = MetaData(schema=settings.database_schema)
