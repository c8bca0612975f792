"""Equipment box (EB) labels for active section ranges.

Boxes sit at section 0 (EB01), then every ``module_frequency`` sections, with
a final box pinned to the last active section. A cleaned range is labelled by
the box at or before its start and the box at or after its end, tail-ward
number first (e.g. ``"EB05 - EB02"``).
"""
from __future__ import annotations

from dataclasses import dataclass

from streamertrack.modules.geometry import StreamerGeometry

# Label for ranges in tail space, where boxes are not defined.
TAIL_EB_SENTINEL = "—"
NO_EB = "-"


@dataclass(frozen=True)
class EquipmentBox:
    number: int
    position: int


def eb_positions(geometry: StreamerGeometry) -> list[EquipmentBox]:
    freq = geometry.module_frequency or 4
    n = geometry.sections_per_cable

    boxes = [EquipmentBox(1, 0)]
    for position in range(freq, n, freq):
        boxes.append(EquipmentBox(position // freq + 1, position))

    last_number = (n - 1) // freq + 1
    if all(box.number != last_number for box in boxes):
        boxes.append(EquipmentBox(last_number, n - 1))
    return boxes


def format_eb(number: int) -> str:
    return f"EB{number:02d}"


def calculate_eb_range(
    start_section: int, end_section: int, geometry: StreamerGeometry, *, is_tail: bool = False
) -> str:
    if is_tail:
        return TAIL_EB_SENTINEL

    start, end = min(start_section, end_section), max(start_section, end_section)
    boxes = eb_positions(geometry)

    before = max((b for b in boxes if b.position <= start), key=lambda b: b.position, default=None)
    after = min((b for b in boxes if b.position >= end), key=lambda b: b.position, default=None)

    if before and after:
        if before.number == after.number:
            return format_eb(before.number)
        high, low = max(before.number, after.number), min(before.number, after.number)
        return f"{format_eb(high)} - {format_eb(low)}"
    if before:
        return f"Tail Adaptor - {format_eb(before.number)}"
    if after:
        return format_eb(after.number)
    return NO_EB
