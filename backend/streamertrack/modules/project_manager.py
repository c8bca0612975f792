"""Project CRUD, streamer deployment records and streamer cleanup.

Mutations require the project-management capability and, for vessel-scoped
callers, ownership of the project's vessel. Functions flush; callers commit.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from streamertrack.errors import ConflictError, ScopeViolation, ValidationError
from streamertrack.models.cleaning_event import CleaningEvent
from streamertrack.models.project import Project
from streamertrack.models.streamer_deployment import StreamerDeployment
from streamertrack.models.vessel_context import VesselContext
from streamertrack.modules import scope_resolver
from streamertrack.modules.config_resolver import (
    check_geometry_values,
    effective_vessel_tag,
    load_global_defaults,
)
from streamertrack.modules.geometry import GEOMETRY_FIELDS
from streamertrack.utils.scope import CallerScope

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("project_name", "vessel_tag", "comments") + GEOMETRY_FIELDS


def project_to_dict(project: Project, active_ids: dict[int, str]) -> dict:
    data = project.to_dict()
    data["isActive"] = project.id in active_ids
    return data


def list_projects(db: Session, scope: CallerScope) -> list[dict]:
    q = db.query(Project)
    if scope.vessel_scope:
        q = q.filter(Project.vessel_tag == scope.vessel_scope)
    active_ids = scope_resolver.active_project_ids(db)
    return [project_to_dict(p, active_ids) for p in q.order_by(Project.created_at.desc(), Project.id.desc()).all()]


def get_active_project(db: Session, scope: CallerScope) -> Optional[Project]:
    return scope_resolver.resolve(db, effective_vessel_tag(db, scope))


def _check_vessel_change(scope: CallerScope, vessel_tag: Optional[str]) -> None:
    if vessel_tag is not None and not scope.can_access_vessel(vessel_tag):
        raise ScopeViolation("Cannot assign projects to another vessel")


def create_project(
    db: Session,
    scope: CallerScope,
    project_number: str,
    *,
    project_name: Optional[str] = None,
    vessel_tag: Optional[str] = None,
    comments: Optional[str] = None,
    **geometry,
) -> Project:
    """Create a project. Geometry fields not given are copied from the current global defaults."""
    scope.require(scope.can_manage_projects, "SuperUser access required")
    if not project_number or not project_number.strip():
        raise ValidationError("Project number is required")
    _check_vessel_change(scope, vessel_tag)
    overrides = {k: v for k, v in geometry.items() if v is not None}
    check_geometry_values(overrides)
    if "vessel_tag" in overrides:
        raise ValidationError("Unknown configuration keys: ['vessel_tag']")

    project_number = project_number.strip()
    if db.query(Project.id).filter(Project.project_number == project_number).first():
        raise ConflictError("Project number already exists")

    defaults = load_global_defaults(db)
    values = {key: overrides.get(key, defaults[key]) for key in GEOMETRY_FIELDS}
    project = Project(
        project_number=project_number,
        project_name=project_name or None,
        vessel_tag=scope.vessel_scope or vessel_tag or defaults["vessel_tag"],
        comments=comments,
        created_at=datetime.utcnow(),
        **values,
    )
    db.add(project)
    db.flush()
    logger.info("Project %s created for vessel %s by %s", project.project_number, project.vessel_tag, scope.username)
    return project


def update_project(db: Session, scope: CallerScope, project_id: int, updates: dict) -> Project:
    """Apply only the fields present in ``updates``."""
    scope.require(scope.can_manage_projects, "SuperUser access required")
    project = scope_resolver.get_project(db, project_id)
    scope_resolver.ensure_project_access(scope, project)

    unknown = set(updates) - set(_EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown project fields: {sorted(unknown)}")
    _check_vessel_change(scope, updates.get("vessel_tag"))
    check_geometry_values({k: v for k, v in updates.items() if k in GEOMETRY_FIELDS and v is not None})

    for key, value in updates.items():
        if key == "vessel_tag" and not value:
            continue
        setattr(project, key, value)
    db.flush()
    return project


def dependent_counts(db: Session, project: Project) -> tuple[int, int]:
    events = db.query(CleaningEvent).filter(CleaningEvent.project_number == project.project_number).count()
    deployments = db.query(StreamerDeployment).filter(StreamerDeployment.project_id == project.id).count()
    return events, deployments


def delete_project(db: Session, scope: CallerScope, project_id: int, force: bool = False) -> dict:
    """Delete a project. Without ``force`` it must have no events or deployments."""
    scope.require(scope.can_manage_projects, "SuperUser access required")
    project = scope_resolver.get_project(db, project_id)
    scope_resolver.ensure_project_access(scope, project)

    event_count, deployment_count = dependent_counts(db, project)
    if not force and (event_count or deployment_count):
        raise ConflictError(
            "Project has dependent events or deployments",
            details={
                "requiresConfirmation": True,
                "eventCount": event_count,
                "deploymentCount": deployment_count,
            },
        )

    if force:
        db.query(CleaningEvent).filter(
            CleaningEvent.project_number == project.project_number
        ).delete(synchronize_session="fetch")
    db.query(VesselContext).filter(VesselContext.active_project_id == project.id).update(
        {VesselContext.active_project_id: None}, synchronize_session="fetch"
    )
    db.delete(project)
    db.flush()
    logger.info(
        "Project %s deleted by %s (force=%s, events=%d, deployments=%d)",
        project.project_number, scope.username, force, event_count, deployment_count,
    )
    return {"eventCount": event_count if force else 0, "deploymentCount": deployment_count if force else 0}


# ---------------------------------------------------------------------------
# Streamer deployments
# ---------------------------------------------------------------------------

def get_deployments(db: Session, project_id: int) -> dict[int, dict]:
    scope_resolver.get_project(db, project_id)
    rows = db.query(StreamerDeployment).filter(StreamerDeployment.project_id == project_id).all()
    return {
        row.streamer_id: {"deploymentDate": row.deployment_date, "isCoated": row.is_coated}
        for row in rows
    }


def save_deployments(db: Session, scope: CallerScope, project_id: int, deployments: dict[int, dict]) -> int:
    """Upsert deployment rows keyed by streamer id; returns the number written."""
    scope.require(scope.can_manage_projects, "SuperUser access required")
    project = scope_resolver.get_project(db, project_id)
    scope_resolver.ensure_project_access(scope, project)

    existing = {
        row.streamer_id: row
        for row in db.query(StreamerDeployment).filter(StreamerDeployment.project_id == project_id).all()
    }
    for streamer_id, data in deployments.items():
        if streamer_id < 1:
            raise ValidationError("Invalid streamer ID")
        row = existing.get(streamer_id)
        if row is None:
            row = StreamerDeployment(project_id=project_id, streamer_id=streamer_id)
            db.add(row)
        row.deployment_date = data.get("deployment_date") or None
        row.is_coated = data.get("is_coated")
    db.flush()
    return len(deployments)


def delete_deployment(db: Session, scope: CallerScope, project_id: int, streamer_id: int) -> int:
    scope.require(scope.can_manage_projects, "SuperUser access required")
    project = scope_resolver.get_project(db, project_id)
    scope_resolver.ensure_project_access(scope, project)
    return db.query(StreamerDeployment).filter(
        StreamerDeployment.project_id == project_id,
        StreamerDeployment.streamer_id == streamer_id,
    ).delete(synchronize_session="fetch")


def cleanup_streamers(db: Session, scope: CallerScope, max_streamer_id: int) -> dict:
    """Drop events and deployments for streamers numbered above ``max_streamer_id``."""
    scope.require(scope.can_manage_projects, "SuperUser access required")
    if max_streamer_id < 1:
        raise ValidationError("Invalid maxStreamerId")

    events_q = db.query(CleaningEvent).filter(CleaningEvent.streamer_id > max_streamer_id)
    deployments_q = db.query(StreamerDeployment).filter(StreamerDeployment.streamer_id > max_streamer_id)
    if scope.vessel_scope:
        events_q = events_q.filter(CleaningEvent.vessel_tag == scope.vessel_scope)
        project_ids = [
            pid for (pid,) in db.query(Project.id).filter(Project.vessel_tag == scope.vessel_scope).all()
        ]
        deployments_q = deployments_q.filter(StreamerDeployment.project_id.in_(project_ids))

    deleted_events = events_q.delete(synchronize_session="fetch")
    deleted_deployments = deployments_q.delete(synchronize_session="fetch")
    logger.info(
        "Streamer cleanup above %d: %d event(s), %d deployment(s) removed",
        max_streamer_id, deleted_events, deleted_deployments,
    )
    return {"deletedEvents": deleted_events, "deletedDeployments": deleted_deployments}
