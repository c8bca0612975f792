"""Recording, editing and deleting cleaning events.

New events are checked against the effective geometry before they are
stored. A range with an explicit section type must already be local to
that type; an untyped range is read as global and split at the active/tail
boundary, which can produce two rows.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from streamertrack.errors import NotFound, ScopeViolation, ValidationError
from streamertrack.models.base import SectionTypeEnum
from streamertrack.models.cleaning_event import CleaningEvent
from streamertrack.modules import scope_resolver
from streamertrack.modules.config_resolver import effective_vessel_tag, resolve_config
from streamertrack.modules.geometry import StreamerGeometry
from streamertrack.modules.section_addressing import SectionRange, split_range, validate_range_for_type
from streamertrack.utils.scope import CallerScope

logger = logging.getLogger(__name__)

_SECTION_TYPES = {t.value for t in SectionTypeEnum}


def _check_common(streamer_id: int, cleaning_method: str, cleaned_at: str,
                  cleaning_count: Optional[int], geometry: StreamerGeometry) -> int:
    if not cleaning_method or not cleaning_method.strip():
        raise ValidationError("cleaning_method is required")
    if not cleaned_at or not cleaned_at.strip():
        raise ValidationError("cleaned_at is required")
    if streamer_id < 1 or streamer_id > geometry.num_cables:
        raise ValidationError(f"streamer_id must be 1..{geometry.num_cables}")
    count = 1 if cleaning_count is None else cleaning_count
    if count < 1:
        raise ValidationError("cleaning_count must be >= 1")
    return count


def create_events(
    db: Session,
    scope: CallerScope,
    *,
    streamer_id: int,
    section_index_start: int,
    section_index_end: int,
    cleaning_method: str,
    cleaned_at: str,
    section_type: Optional[str] = None,
    cleaning_count: Optional[int] = None,
    project_number: Optional[str] = None,
    vessel_tag: Optional[str] = None,
) -> list[CleaningEvent]:
    """Store one cleaning pass; returns the one or two rows created."""
    scope.require(scope.can_write_events, "Admin access required")

    if project_number is None:
        active = scope_resolver.resolve(db, effective_vessel_tag(db, scope))
        if active is None:
            raise ValidationError("No active project for this vessel. Set an active project first.")
        project_number = active.project_number
        final_vessel = active.vessel_tag
    else:
        final_vessel = vessel_tag or effective_vessel_tag(db, scope)
    if scope.vessel_scope:
        final_vessel = scope.vessel_scope

    geometry = resolve_config(db, scope, project_number)
    count = _check_common(streamer_id, cleaning_method, cleaned_at, cleaning_count, geometry)

    lo, hi = min(section_index_start, section_index_end), max(section_index_start, section_index_end)
    if lo < 0:
        raise ValidationError("Section indices must be >= 0")

    if section_type is not None:
        if section_type not in _SECTION_TYPES:
            raise ValidationError("section_type must be 'active' or 'tail'")
        check = validate_range_for_type(lo, hi, section_type, geometry)
        if not check.valid:
            raise ValidationError(check.message)
        parts = [(section_type, SectionRange(lo, hi))]
    else:
        split = split_range(lo, hi, geometry)
        if split.is_empty:
            raise ValidationError("Section range out of bounds or tail sections not configured")
        parts = []
        if split.active is not None:
            parts.append((SectionTypeEnum.ACTIVE.value, split.active))
        if split.tail is not None:
            parts.append((SectionTypeEnum.TAIL.value, split.tail))

    created = []
    for part_type, part in parts:
        event = CleaningEvent(
            streamer_id=streamer_id,
            section_index_start=part.start,
            section_index_end=part.end,
            section_type=part_type,
            cleaning_method=cleaning_method,
            cleaned_at=cleaned_at,
            cleaning_count=count,
            project_number=project_number,
            vessel_tag=final_vessel,
        )
        db.add(event)
        created.append(event)
    db.flush()
    logger.info(
        "Recorded %d cleaning event(s) for streamer %d (project=%s, vessel=%s)",
        len(created), streamer_id, project_number, final_vessel,
    )
    return created


def get_event(db: Session, event_id: int) -> CleaningEvent:
    event = db.get(CleaningEvent, event_id)
    if event is None:
        raise NotFound("Event not found")
    return event


def update_event(
    db: Session,
    scope: CallerScope,
    event_id: int,
    *,
    streamer_id: int,
    section_index_start: int,
    section_index_end: int,
    cleaning_method: str,
    cleaned_at: str,
    section_type: Optional[str] = None,
    cleaning_count: Optional[int] = None,
    project_number: Optional[str] = None,
    vessel_tag: Optional[str] = None,
) -> CleaningEvent:
    """Replace an event's fields. The range must be local to its section type."""
    scope.require(scope.can_write_events, "Admin access required")
    event = get_event(db, event_id)
    if scope.vessel_scope and event.vessel_tag and event.vessel_tag != scope.vessel_scope:
        raise ScopeViolation("Cannot modify events from another vessel")

    final_type = section_type or event.section_type or SectionTypeEnum.ACTIVE.value
    final_project = project_number if project_number is not None else event.project_number
    final_vessel = vessel_tag if vessel_tag is not None else event.vessel_tag
    if scope.vessel_scope:
        final_vessel = scope.vessel_scope

    geometry = resolve_config(db, scope, final_project)
    count = _check_common(streamer_id, cleaning_method, cleaned_at, cleaning_count, geometry)
    check = validate_range_for_type(section_index_start, section_index_end, final_type, geometry)
    if not check.valid:
        raise ValidationError(check.message)

    event.streamer_id = streamer_id
    event.section_index_start = min(section_index_start, section_index_end)
    event.section_index_end = max(section_index_start, section_index_end)
    event.section_type = final_type
    event.cleaning_method = cleaning_method
    event.cleaned_at = cleaned_at
    event.cleaning_count = count
    event.project_number = final_project
    event.vessel_tag = final_vessel
    db.flush()
    return event


def delete_event(db: Session, scope: CallerScope, event_id: int) -> None:
    scope.require(scope.can_write_events, "Admin access required")
    q = db.query(CleaningEvent).filter(CleaningEvent.id == event_id)
    if scope.vessel_scope:
        q = q.filter(CleaningEvent.vessel_tag == scope.vessel_scope)
    if q.delete(synchronize_session="fetch") == 0:
        raise NotFound("Event not found")


def delete_events(db: Session, scope: CallerScope, project: Optional[str] = None) -> int:
    """Delete a project's events (within the caller's vessel), or every event.

    Clearing every event needs an unrestricted superuser.
    """
    scope.require(scope.can_write_events, "Admin access required")
    q = db.query(CleaningEvent)
    if project:
        q = q.filter(CleaningEvent.project_number == project)
        if scope.vessel_scope:
            q = q.filter(CleaningEvent.vessel_tag == scope.vessel_scope)
    elif not scope.can_clear_all_events:
        raise ScopeViolation("Grand SuperUser access required for global clear")

    deleted = q.delete(synchronize_session="fetch")
    logger.info("Deleted %d cleaning event(s) (project=%s) by %s", deleted, project, scope.username)
    return deleted
