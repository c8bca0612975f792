"""VesselContext entity: per-vessel pointer to the currently active project.

One row per vessel tag. This is the only record of which project is active;
projects carry no activity flag of their own.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from streamertrack.models.base import Base


class VesselContext(Base):
    __tablename__ = "vessel_context"

    vessel_tag: Mapped[str] = mapped_column(String(50), primary_key=True)
    active_project_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    active_project: Mapped[Optional["Project"]] = relationship("Project")  # noqa: F821
