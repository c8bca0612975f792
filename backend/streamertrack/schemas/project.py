"""Pydantic schemas for project and deployment operations."""
from __future__ import annotations

from typing import Optional
from pydantic import Field

from streamertrack.schemas.base import CamelModel


class ProjectCreateRequest(CamelModel):
    project_number: str = Field(..., min_length=1, max_length=100)
    project_name: Optional[str] = Field(None, max_length=255)
    vessel_tag: Optional[str] = Field(None, max_length=50)
    num_cables: Optional[int] = Field(None, ge=1)
    sections_per_cable: Optional[int] = Field(None, ge=1)
    section_length: Optional[float] = Field(None, gt=0)
    module_frequency: Optional[int] = Field(None, ge=1)
    channels_per_section: Optional[int] = Field(None, ge=1)
    use_rope_for_tail: Optional[bool] = None
    comments: Optional[str] = None


class ProjectUpdateRequest(CamelModel):
    project_name: Optional[str] = Field(None, max_length=255)
    vessel_tag: Optional[str] = Field(None, max_length=50)
    num_cables: Optional[int] = Field(None, ge=1)
    sections_per_cable: Optional[int] = Field(None, ge=1)
    section_length: Optional[float] = Field(None, gt=0)
    module_frequency: Optional[int] = Field(None, ge=1)
    channels_per_section: Optional[int] = Field(None, ge=1)
    use_rope_for_tail: Optional[bool] = None
    comments: Optional[str] = None


class DeploymentEntry(CamelModel):
    deployment_date: Optional[str] = None
    is_coated: Optional[bool] = None


class CleanupStreamersRequest(CamelModel):
    max_streamer_id: int
