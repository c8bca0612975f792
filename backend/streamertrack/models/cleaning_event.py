"""CleaningEvent entity: one recorded cleaning pass over a section range."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import Integer, String, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column
from streamertrack.models.base import Base, SectionTypeEnum


class CleaningEvent(Base):
    __tablename__ = "cleaning_events"
    __table_args__ = (
        CheckConstraint("section_index_start <= section_index_end", name="ck_section_range_order"),
        CheckConstraint("section_type IN ('active', 'tail')", name="ck_section_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    streamer_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    section_index_start: Mapped[int] = mapped_column(Integer, nullable=False)
    section_index_end: Mapped[int] = mapped_column(Integer, nullable=False)
    section_type: Mapped[str] = mapped_column(
        String(10), nullable=False, default=SectionTypeEnum.ACTIVE.value
    )
    cleaning_method: Mapped[str] = mapped_column(String(100), nullable=False)
    # ISO 8601 string; lexical order is chronological order
    cleaned_at: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    cleaning_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    # Soft reference to projects.project_number
    project_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    vessel_tag: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "streamerId": self.streamer_id,
            "sectionIndexStart": self.section_index_start,
            "sectionIndexEnd": self.section_index_end,
            "sectionType": self.section_type,
            "cleaningMethod": self.cleaning_method,
            "cleanedAt": self.cleaned_at,
            "cleaningCount": self.cleaning_count,
            "projectNumber": self.project_number,
            "vesselTag": self.vessel_tag,
        }
