"""Section addressing: active vs. tail ranges and the global index space.

Active sections are numbered ``0..N-1``. When rope-tail mode is off the
cable also carries ``TAIL_SECTION_COUNT`` tail sections, stored with
tail-relative indices ``0..4`` and mapped into the global index space as
``N + tail_index``. The global index is the key every coverage calculation
uses.

Nothing here raises on well-typed input: out-of-capacity requests come back
as data (``SplitResult(None, None)``, ``RangeValidation(valid=False)``).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Optional

from streamertrack.models.base import SectionTypeEnum
from streamertrack.modules.geometry import StreamerGeometry


@dataclass(frozen=True)
class SectionRange:
    start: int
    end: int

    def __iter__(self) -> Iterator[int]:
        return iter(range(self.start, self.end + 1))

    def __len__(self) -> int:
        return self.end - self.start + 1


@dataclass(frozen=True)
class SplitResult:
    active: Optional[SectionRange]
    tail: Optional[SectionRange]

    @property
    def is_empty(self) -> bool:
        return self.active is None and self.tail is None


@dataclass(frozen=True)
class RangeValidation:
    valid: bool
    message: Optional[str] = None


def split_range(start: int, end: int, geometry: StreamerGeometry) -> SplitResult:
    """Split a global section range into active and tail parts.

    Each returned part is local to its own space. A range lying entirely in
    tail space on a cable without tail sections yields ``SplitResult(None, None)``.
    """
    n = geometry.sections_per_cable
    tail_count = geometry.tail_sections
    max_tail_global = n + tail_count - 1

    lo, hi = min(start, end), max(start, end)

    if hi < n:
        return SplitResult(SectionRange(lo, hi), None)

    if lo >= n:
        if tail_count == 0:
            return SplitResult(None, None)
        return SplitResult(None, SectionRange(lo - n, min(hi, max_tail_global) - n))

    active = SectionRange(lo, n - 1)
    if tail_count == 0:
        return SplitResult(active, None)
    return SplitResult(active, SectionRange(0, min(hi, max_tail_global) - n))


def validate_range_for_type(
    start: int, end: int, section_type: str, geometry: StreamerGeometry
) -> RangeValidation:
    """Check an explicitly typed, already-local range against the geometry."""
    n = geometry.sections_per_cable
    tail_count = geometry.tail_sections
    lo, hi = min(start, end), max(start, end)

    if section_type == SectionTypeEnum.ACTIVE.value:
        if lo < 0 or hi >= n:
            return RangeValidation(False, f"Active sections must be 0..{n - 1}")
        return RangeValidation(True)

    if section_type == SectionTypeEnum.TAIL.value:
        if tail_count == 0:
            return RangeValidation(False, "Tail sections not configured (useRopeForTail)")
        if lo < 0 or hi >= tail_count:
            return RangeValidation(False, f"Tail sections must be 0..{tail_count - 1}")
        return RangeValidation(True)

    return RangeValidation(False, "section_type must be 'active' or 'tail'")


def global_index(local_index: int, section_type: str, geometry: StreamerGeometry) -> int:
    if section_type == SectionTypeEnum.TAIL.value:
        return geometry.sections_per_cable + local_index
    return local_index


def to_global_indices(event: Any, geometry: StreamerGeometry) -> range:
    """Global indices covered by an event (anything with section_* attributes)."""
    base = global_index(0, event.section_type, geometry)
    return range(base + event.section_index_start, base + event.section_index_end + 1)


def is_tail_query(start: int, end: int, section_type: Optional[str], geometry: StreamerGeometry) -> bool:
    """True when a queried range belongs to tail space.

    Either the caller says so, or both bounds sit at or beyond the last
    active section in global numbering.
    """
    if section_type == SectionTypeEnum.TAIL.value:
        return True
    n = geometry.sections_per_cable
    return start >= n and end >= n
