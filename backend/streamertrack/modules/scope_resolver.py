"""Per-vessel active project pointer.

Each vessel owns exactly one ``vessel_context`` row naming its active
project. Activating a project is an upsert of that row alone: there is no
"deactivate everything" step, so one vessel's activation never touches
another vessel's pointer. Concurrent activations for the same vessel resolve
to whichever write lands last.

Functions here flush but never commit; the caller owns the transaction.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from streamertrack.errors import NotFound, ScopeViolation, ValidationError
from streamertrack.models.project import Project
from streamertrack.models.vessel_context import VesselContext
from streamertrack.utils.scope import CallerScope

logger = logging.getLogger(__name__)


def _normalize_tag(vessel_tag: Optional[str]) -> Optional[str]:
    if not vessel_tag or not isinstance(vessel_tag, str):
        return None
    return vessel_tag.strip() or None


def _upsert_pointer(db: Session, vessel_tag: str, project_id: Optional[int]) -> None:
    values = {
        "vessel_tag": vessel_tag,
        "active_project_id": project_id,
        "updated_at": datetime.utcnow(),
    }
    dialect = db.get_bind().dialect.name
    if dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    elif dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    else:
        db.merge(VesselContext(**values))
        db.flush()
        return

    stmt = insert(VesselContext).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[VesselContext.vessel_tag],
        set_={
            "active_project_id": stmt.excluded.active_project_id,
            "updated_at": stmt.excluded.updated_at,
        },
    )
    db.execute(stmt)


def resolve(db: Session, vessel_tag: Optional[str]) -> Optional[Project]:
    """Return the vessel's active project, or None."""
    tag = _normalize_tag(vessel_tag)
    if tag is None:
        return None
    pointer = db.get(VesselContext, tag, populate_existing=True)
    if pointer is None or pointer.active_project_id is None:
        return None
    return db.get(Project, pointer.active_project_id)


def activate(db: Session, vessel_tag: str, project_id: int) -> None:
    tag = _normalize_tag(vessel_tag)
    if tag is None:
        raise ValidationError("Vessel tag is required")
    _upsert_pointer(db, tag, project_id)
    logger.info("Vessel %s: active project set to id=%s", tag, project_id)


def deactivate(db: Session, vessel_tag: str) -> None:
    tag = _normalize_tag(vessel_tag)
    if tag is None:
        raise ValidationError("Vessel tag is required")
    _upsert_pointer(db, tag, None)
    logger.info("Vessel %s: active project cleared", tag)


def ensure_project_access(scope: CallerScope, project: Project) -> None:
    """Vessel-scoped callers may only mutate their own vessel's projects."""
    if not scope.can_access_vessel(project.vessel_tag):
        raise ScopeViolation("Cannot modify projects from another vessel")


def get_project(db: Session, project_id: int) -> Project:
    project = db.get(Project, project_id)
    if project is None:
        raise NotFound("Project not found")
    return project


def activate_project(db: Session, scope: CallerScope, project_id: int) -> Project:
    scope.require(scope.can_manage_projects, "SuperUser access required")
    project = get_project(db, project_id)
    ensure_project_access(scope, project)
    activate(db, project.vessel_tag, project.id)
    return project


def deactivate_vessel(db: Session, scope: CallerScope, vessel_tag: str) -> None:
    scope.require(scope.can_manage_projects, "SuperUser access required")
    if not scope.can_access_vessel(vessel_tag):
        raise ScopeViolation("Cannot change the active project of another vessel")
    deactivate(db, vessel_tag)


def active_project_ids(db: Session) -> dict[int, str]:
    """Map of active project id → vessel tag across all vessels."""
    rows = db.query(VesselContext.active_project_id, VesselContext.vessel_tag).filter(
        VesselContext.active_project_id.isnot(None)
    ).all()
    return {project_id: vessel_tag for project_id, vessel_tag in rows}
