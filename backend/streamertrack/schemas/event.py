"""Pydantic schemas for cleaning event operations."""
from __future__ import annotations

from typing import Optional
from pydantic import Field

from streamertrack.schemas.base import CamelModel


class EventWriteRequest(CamelModel):
    streamer_id: int
    section_index_start: int
    section_index_end: int
    section_type: Optional[str] = None
    cleaning_method: str = Field(..., min_length=1, max_length=100)
    cleaned_at: str = Field(..., min_length=1, max_length=40)
    cleaning_count: Optional[int] = Field(None, ge=1)
    project_number: Optional[str] = None
    vessel_tag: Optional[str] = None
