"""StreamerDeployment entity: per-project, per-streamer deployment details."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import Integer, String, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from streamertrack.models.base import Base


class StreamerDeployment(Base):
    __tablename__ = "streamer_deployments"
    __table_args__ = (
        UniqueConstraint("project_id", "streamer_id", name="uq_deployment_project_streamer"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    streamer_id: Mapped[int] = mapped_column(Integer, nullable=False)
    deployment_date: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    is_coated: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    project: Mapped["Project"] = relationship("Project", back_populates="deployments")  # noqa: F821
