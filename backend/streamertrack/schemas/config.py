"""Pydantic schemas for configuration updates."""
from __future__ import annotations

from typing import Optional
from pydantic import Field

from streamertrack.schemas.base import CamelModel


class ConfigUpdateRequest(CamelModel):
    num_cables: Optional[int] = Field(None, ge=1)
    sections_per_cable: Optional[int] = Field(None, ge=1)
    section_length: Optional[float] = Field(None, gt=0)
    module_frequency: Optional[int] = Field(None, ge=1)
    use_rope_for_tail: Optional[bool] = None
    channels_per_section: Optional[int] = Field(None, ge=1)
    vessel_tag: Optional[str] = Field(None, min_length=1, max_length=50)
