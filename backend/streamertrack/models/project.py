"""Project entity: a unit of work owned by one vessel, with its own streamer geometry."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Integer, String, Float, Boolean, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from streamertrack.models.base import Base


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_number: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    project_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    vessel_tag: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    # Geometry overrides; NULL means "use the global default"
    num_cables: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    sections_per_cable: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    section_length: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    module_frequency: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    channels_per_section: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    use_rope_for_tail: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    deployments: Mapped[list] = relationship(
        "StreamerDeployment", back_populates="project", cascade="all, delete-orphan"
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "projectNumber": self.project_number,
            "projectName": self.project_name,
            "vesselTag": self.vessel_tag,
            "numCables": self.num_cables,
            "sectionsPerCable": self.sections_per_cable,
            "sectionLength": self.section_length,
            "moduleFrequency": self.module_frequency,
            "channelsPerSection": self.channels_per_section,
            "useRopeForTail": self.use_rope_for_tail,
            "comments": self.comments,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
