"""Coverage aggregation over cleaning events.

Every function here takes an immutable list of events plus the effective
geometry and returns plain data. Events are anything exposing the
``CleaningEvent`` attributes; request handlers pass ``EventRecord``
snapshots so nothing is read from the session mid-computation.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Sequence

from streamertrack.models.base import SectionTypeEnum
from streamertrack.modules.geometry import StreamerGeometry
from streamertrack.modules.section_addressing import to_global_indices


@dataclass(frozen=True)
class EventRecord:
    streamer_id: int
    section_index_start: int
    section_index_end: int
    section_type: str
    cleaning_method: str
    cleaned_at: str
    cleaning_count: int = 1
    project_number: Optional[str] = None
    vessel_tag: Optional[str] = None
    id: Optional[int] = None

    @classmethod
    def from_model(cls, event: Any) -> "EventRecord":
        return cls(
            streamer_id=event.streamer_id,
            section_index_start=event.section_index_start,
            section_index_end=event.section_index_end,
            section_type=event.section_type,
            cleaning_method=event.cleaning_method,
            cleaned_at=event.cleaned_at,
            cleaning_count=event.cleaning_count or 1,
            project_number=event.project_number,
            vessel_tag=event.vessel_tag,
            id=event.id,
        )

    @property
    def section_count(self) -> int:
        return self.section_index_end - self.section_index_start + 1


@dataclass
class CoverageSummary:
    """Everything one pass over the events produces."""
    last_cleaned: dict[int, list]
    active: set = field(default_factory=set)
    tail: set = field(default_factory=set)
    event_count: int = 0
    total_sections: int = 0
    total_distance: float = 0
    by_method: dict[str, float] = field(default_factory=dict)
    last_cleaning: Optional[str] = None

    @property
    def unique_sections(self) -> int:
        return len(self.active) + len(self.tail)


def _chronological_key(cleaned_at: str) -> str:
    # "2024-05-01T10:00:00Z" and "2024-05-01 10:00:00" must order together
    return (cleaned_at or "").replace("T", " ").rstrip("Z")


def newest_first(events: Iterable[Any]) -> list:
    return sorted(events, key=lambda e: _chronological_key(e.cleaned_at), reverse=True)


def summarize(events: Iterable[Any], geometry: StreamerGeometry) -> CoverageSummary:
    """Fold events into last-cleaned map, unique coverage, totals and per-method length.

    Events are walked newest first and a last-cleaned slot is only written
    while empty, so the first write to a slot is its most recent cleaning.
    Unique coverage keeps every (streamer_id, global_index) pair, including
    streamers beyond ``num_cables``; the map only has rows for configured
    streamers.
    """
    total = geometry.total_sections
    length = geometry.section_length or 1
    summary = CoverageSummary(
        last_cleaned={sid: [None] * total for sid in range(1, geometry.num_cables + 1)}
    )
    by_method: dict[str, float] = defaultdict(float)

    for event in newest_first(events):
        if summary.last_cleaning is None:
            summary.last_cleaning = event.cleaned_at
        count = event.section_index_end - event.section_index_start + 1
        summary.event_count += 1
        summary.total_sections += count
        by_method[event.cleaning_method] += count * length

        is_tail = event.section_type == SectionTypeEnum.TAIL.value
        bucket = summary.tail if is_tail else summary.active
        slots = summary.last_cleaned.get(event.streamer_id)
        for idx in to_global_indices(event, geometry):
            bucket.add((event.streamer_id, idx))
            if slots is not None and 0 <= idx < total and slots[idx] is None:
                slots[idx] = event.cleaned_at

    summary.total_distance = summary.total_sections * length
    summary.by_method = dict(by_method)
    return summary


def compute_last_cleaned(events: Sequence[Any], geometry: StreamerGeometry) -> dict[int, list]:
    """Most recent ``cleaned_at`` per streamer (1..num_cables) and global section index."""
    return summarize(events, geometry).last_cleaned


def compute_stats(events: Sequence[Any], geometry: StreamerGeometry) -> dict:
    """Event totals, raw cleaning effort and unique coverage counts."""
    summary = summarize(events, geometry)
    return {
        "totalEvents": summary.event_count,
        "totalSections": summary.total_sections,
        "totalDistance": summary.total_distance,
        "uniqueCleanedSections": summary.unique_sections,
        "activeCleanedSections": len(summary.active),
        "tailCleanedSections": len(summary.tail),
        "totalAvailableSections": geometry.num_cables * geometry.sections_per_cable,
        "totalAvailableTail": geometry.num_cables * geometry.tail_sections,
    }


def compute_filtered_stats(events: Sequence[Any], geometry: StreamerGeometry) -> dict:
    """Stats for a filtered window, with covered length broken down by method."""
    summary = summarize(events, geometry)
    return {
        "events": summary.event_count,
        "totalSections": summary.total_sections,
        "totalDistance": summary.total_distance,
        "lastCleaning": summary.last_cleaning,
        "byMethod": summary.by_method,
        "uniqueCleanedSections": summary.unique_sections,
        "activeCleanedSections": len(summary.active),
        "tailCleanedSections": len(summary.tail),
    }
