"""Shared declarative base and enums for all models."""
from __future__ import annotations

import enum
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class SectionTypeEnum(str, enum.Enum):
    ACTIVE = "active"
    TAIL = "tail"
