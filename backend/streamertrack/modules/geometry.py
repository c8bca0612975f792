"""Effective streamer geometry for one vessel/project context."""
from __future__ import annotations

from dataclasses import dataclass, asdict, replace
from typing import Optional

# Tail sections fitted when rope-tail mode is off. Not configurable.
TAIL_SECTION_COUNT = 5

DEFAULT_GEOMETRY_VALUES: dict = {
    "num_cables": 12,
    "sections_per_cable": 107,
    "section_length": 75,
    "module_frequency": 4,
    "use_rope_for_tail": True,
    "channels_per_section": 6,
}

GEOMETRY_FIELDS: tuple[str, ...] = tuple(DEFAULT_GEOMETRY_VALUES)


@dataclass(frozen=True)
class StreamerGeometry:
    num_cables: int = 12
    sections_per_cable: int = 107
    section_length: float = 75
    module_frequency: int = 4
    use_rope_for_tail: bool = True
    channels_per_section: int = 6
    vessel_tag: Optional[str] = None
    active_project_number: Optional[str] = None

    @property
    def tail_sections(self) -> int:
        return 0 if self.use_rope_for_tail else TAIL_SECTION_COUNT

    @property
    def total_sections(self) -> int:
        return self.sections_per_cable + self.tail_sections

    def with_values(self, **values) -> "StreamerGeometry":
        return replace(self, **values)

    def to_dict(self) -> dict:
        data = asdict(self)
        return {
            "numCables": data["num_cables"],
            "sectionsPerCable": data["sections_per_cable"],
            "sectionLength": data["section_length"],
            "moduleFrequency": data["module_frequency"],
            "useRopeForTail": data["use_rope_for_tail"],
            "channelsPerSection": data["channels_per_section"],
            "vesselTag": data["vessel_tag"],
            "activeProjectNumber": data["active_project_number"],
            "tailSections": self.tail_sections,
            "totalSections": self.total_sections,
        }
