"""Cleaning event lookups filtered by project, date window and vessel scope."""
from __future__ import annotations

from datetime import date
from typing import Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from streamertrack.errors import ValidationError
from streamertrack.models.cleaning_event import CleaningEvent
from streamertrack.modules.coverage import EventRecord
from streamertrack.utils.scope import CallerScope

DateLike = Union[date, str, None]


def _as_date_str(value: DateLike, name: str) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value.isoformat()
    try:
        return date.fromisoformat(str(value)[:10]).isoformat()
    except ValueError:
        raise ValidationError(f"{name} must be a date (YYYY-MM-DD)")


def query_events(
    db: Session,
    scope: Optional[CallerScope] = None,
    project: Optional[str] = None,
    start: DateLike = None,
    end: DateLike = None,
) -> Query:
    """Events matching the filters, newest first. Dates compare on the day part."""
    start_str = _as_date_str(start, "start")
    end_str = _as_date_str(end, "end")
    if start_str and end_str and start_str > end_str:
        raise ValidationError("start must be <= end")

    q = db.query(CleaningEvent)
    if project:
        q = q.filter(CleaningEvent.project_number == project)
    if start_str:
        q = q.filter(func.date(CleaningEvent.cleaned_at) >= start_str)
    if end_str:
        q = q.filter(func.date(CleaningEvent.cleaned_at) <= end_str)
    vessel = scope.vessel_scope if scope is not None else None
    if vessel:
        q = q.filter(CleaningEvent.vessel_tag == vessel)
    return q.order_by(CleaningEvent.cleaned_at.desc(), CleaningEvent.id.desc())


def list_events(db: Session, scope: Optional[CallerScope] = None, project: Optional[str] = None) -> list[CleaningEvent]:
    return query_events(db, scope, project=project).all()


def fetch_snapshot(
    db: Session,
    scope: Optional[CallerScope] = None,
    project: Optional[str] = None,
    start: DateLike = None,
    end: DateLike = None,
) -> list[EventRecord]:
    """Detached, immutable copy of the matching events for aggregation."""
    return [EventRecord.from_model(e) for e in query_events(db, scope, project, start, end).all()]


def event_counts_by_project(db: Session, scope: Optional[CallerScope] = None) -> dict[str, int]:
    q = db.query(CleaningEvent.project_number, func.count(CleaningEvent.id)).filter(
        CleaningEvent.project_number.isnot(None)
    )
    vessel = scope.vessel_scope if scope is not None else None
    if vessel:
        q = q.filter(CleaningEvent.vessel_tag == vessel)
    return {number: count for number, count in q.group_by(CleaningEvent.project_number).all()}
