import logging
from datetime import date
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from streamertrack.api.deps import (
    bearer_token,
    get_backup_scheduler,
    get_caller_scope,
    get_engine,
    get_session_store,
    limiter,
)
from streamertrack.config import settings
from streamertrack.database import get_db
from streamertrack.modules import (
    backup,
    config_resolver,
    coverage,
    event_ingest,
    event_query,
    project_manager,
    scope_resolver,
)
from streamertrack.modules.eb_resolver import calculate_eb_range
from streamertrack.modules.section_addressing import is_tail_query
from streamertrack.schemas.auth import LoginRequest
from streamertrack.schemas.config import ConfigUpdateRequest
from streamertrack.schemas.error import ERROR_RESPONSES
from streamertrack.schemas.event import EventWriteRequest
from streamertrack.schemas.project import (
    CleanupStreamersRequest,
    DeploymentEntry,
    ProjectCreateRequest,
    ProjectUpdateRequest,
)
from streamertrack.utils.scope import CallerScope
from streamertrack.utils.sessions import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter(responses=ERROR_RESPONSES)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

@router.post("/login", tags=["auth"])
@limiter.limit(settings.LOGIN_RATE_LIMIT)
def login(request: Request, body: LoginRequest, sessions: SessionStore = Depends(get_session_store)):
    """Exchange username/password for a bearer token."""
    result = sessions.login(body.username, body.password)
    if result is None:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    token, scope = result
    return {"token": token, **scope.to_dict(), "message": "Login successful"}


@router.post("/logout", tags=["auth"])
def logout(
    authorization: Optional[str] = Header(None),
    sessions: SessionStore = Depends(get_session_store),
):
    token = bearer_token(authorization)
    if token:
        sessions.logout(token)
    return {"success": True, "message": "Logged out successfully"}


@router.get("/session", tags=["auth"])
def session_info(scope: CallerScope = Depends(get_caller_scope)):
    return scope.to_dict()


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@router.get("/config", tags=["config"])
def get_config(
    project: Optional[str] = None,
    db: Session = Depends(get_db),
    scope: CallerScope = Depends(get_caller_scope),
):
    """Effective streamer geometry for the caller's vessel (or an explicit project)."""
    return config_resolver.resolve_config(db, scope, project).to_dict()


@router.put("/config", tags=["config"])
def update_config(
    body: ConfigUpdateRequest,
    db: Session = Depends(get_db),
    scope: CallerScope = Depends(get_caller_scope),
):
    """Write geometry to the active project, or to global defaults when none is active."""
    values = body.model_dump(exclude_none=True)
    geometry = config_resolver.update_config(db, scope, values)
    db.commit()
    return {"success": True, **geometry.to_dict()}


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

@router.get("/projects", tags=["projects"])
def list_projects(db: Session = Depends(get_db), scope: CallerScope = Depends(get_caller_scope)):
    return project_manager.list_projects(db, scope)


@router.get("/projects/stats", tags=["projects"])
def project_stats(db: Session = Depends(get_db), scope: CallerScope = Depends(get_caller_scope)):
    """Event count per project number."""
    return event_query.event_counts_by_project(db, scope)


@router.get("/projects/active", tags=["projects"])
def active_project(db: Session = Depends(get_db), scope: CallerScope = Depends(get_caller_scope)):
    project = project_manager.get_active_project(db, scope)
    if project is None:
        return None
    return project_manager.project_to_dict(project, {project.id: project.vessel_tag})


@router.post("/projects", tags=["projects"])
def create_project(
    body: ProjectCreateRequest,
    db: Session = Depends(get_db),
    scope: CallerScope = Depends(get_caller_scope),
):
    fields = body.model_dump()
    project = project_manager.create_project(db, scope, fields.pop("project_number"), **fields)
    db.commit()
    return project_manager.project_to_dict(project, scope_resolver.active_project_ids(db))


@router.post("/projects/deactivate", tags=["projects"])
def deactivate_project(
    vessel_tag: Optional[str] = Query(None, alias="vesselTag"),
    db: Session = Depends(get_db),
    scope: CallerScope = Depends(get_caller_scope),
):
    """Clear the active project of the caller's vessel (or ``vesselTag`` for unrestricted callers)."""
    vessel = scope.vessel_scope or vessel_tag or config_resolver.effective_vessel_tag(db, scope)
    scope_resolver.deactivate_vessel(db, scope, vessel)
    db.commit()
    return {"success": True, "vesselTag": vessel}


@router.put("/projects/{project_id}", tags=["projects"])
def update_project(
    project_id: int,
    body: ProjectUpdateRequest,
    db: Session = Depends(get_db),
    scope: CallerScope = Depends(get_caller_scope),
):
    project = project_manager.update_project(db, scope, project_id, body.model_dump(exclude_unset=True))
    db.commit()
    return project_manager.project_to_dict(project, scope_resolver.active_project_ids(db))


@router.put("/projects/{project_id}/activate", tags=["projects"])
def activate_project(
    project_id: int,
    db: Session = Depends(get_db),
    scope: CallerScope = Depends(get_caller_scope),
):
    """Make this project the active one for its vessel. Other vessels are untouched."""
    project = scope_resolver.activate_project(db, scope, project_id)
    db.commit()
    return project_manager.project_to_dict(project, scope_resolver.active_project_ids(db))


@router.delete("/projects/{project_id}", tags=["projects"])
def delete_project(
    project_id: int,
    db: Session = Depends(get_db),
    scope: CallerScope = Depends(get_caller_scope),
):
    """Delete a project. Returns 409 with dependent counts if events or deployments exist."""
    project_manager.delete_project(db, scope, project_id)
    db.commit()
    return {"success": True}


@router.delete("/projects/{project_id}/force", tags=["projects"])
def force_delete_project(
    project_id: int,
    db: Session = Depends(get_db),
    scope: CallerScope = Depends(get_caller_scope),
):
    """Delete a project together with its events and deployments."""
    deleted = project_manager.delete_project(db, scope, project_id, force=True)
    db.commit()
    return {"success": True, **deleted}


@router.get("/projects/{project_id}/streamer-deployments", tags=["projects"])
def get_deployments(
    project_id: int,
    db: Session = Depends(get_db),
    scope: CallerScope = Depends(get_caller_scope),
):
    return project_manager.get_deployments(db, project_id)


@router.put("/projects/{project_id}/streamer-deployments", tags=["projects"])
def save_deployments(
    project_id: int,
    body: dict[int, DeploymentEntry],
    db: Session = Depends(get_db),
    scope: CallerScope = Depends(get_caller_scope),
):
    entries = {streamer_id: entry.model_dump() for streamer_id, entry in body.items()}
    saved = project_manager.save_deployments(db, scope, project_id, entries)
    db.commit()
    return {"success": True, "saved": saved}


@router.delete("/projects/{project_id}/streamer-deployments/{streamer_id}", tags=["projects"])
def delete_deployment(
    project_id: int,
    streamer_id: int,
    db: Session = Depends(get_db),
    scope: CallerScope = Depends(get_caller_scope),
):
    project_manager.delete_deployment(db, scope, project_id, streamer_id)
    db.commit()
    return {"success": True}


@router.post("/cleanup-streamers", tags=["projects"])
def cleanup_streamers(
    body: CleanupStreamersRequest,
    db: Session = Depends(get_db),
    scope: CallerScope = Depends(get_caller_scope),
):
    """Remove events and deployments for streamers above ``maxStreamerId``."""
    result = project_manager.cleanup_streamers(db, scope, body.max_streamer_id)
    db.commit()
    return {"success": True, **result}


# ---------------------------------------------------------------------------
# Cleaning events
# ---------------------------------------------------------------------------

@router.get("/events", tags=["events"])
def list_events(
    project: Optional[str] = None,
    db: Session = Depends(get_db),
    scope: CallerScope = Depends(get_caller_scope),
):
    return [e.to_dict() for e in event_query.list_events(db, scope, project)]


@router.post("/events", tags=["events"])
def create_event(
    body: EventWriteRequest,
    db: Session = Depends(get_db),
    scope: CallerScope = Depends(get_caller_scope),
):
    """Record a cleaning pass. An untyped range crossing the tail boundary creates two events."""
    created = event_ingest.create_events(db, scope, **body.model_dump())
    db.commit()
    if len(created) == 1:
        return created[0].to_dict()
    return {"created": [e.to_dict() for e in created]}


@router.put("/events/{event_id}", tags=["events"])
def update_event(
    event_id: int,
    body: EventWriteRequest,
    db: Session = Depends(get_db),
    scope: CallerScope = Depends(get_caller_scope),
):
    event = event_ingest.update_event(db, scope, event_id, **body.model_dump())
    db.commit()
    return event.to_dict()


@router.delete("/events/{event_id}", tags=["events"])
def delete_event(
    event_id: int,
    db: Session = Depends(get_db),
    scope: CallerScope = Depends(get_caller_scope),
):
    event_ingest.delete_event(db, scope, event_id)
    db.commit()
    return {"success": True}


@router.delete("/events", tags=["events"])
def clear_events(
    project: Optional[str] = None,
    db: Session = Depends(get_db),
    scope: CallerScope = Depends(get_caller_scope),
):
    """Delete a project's events, or all events (unrestricted superusers only)."""
    deleted = event_ingest.delete_events(db, scope, project)
    db.commit()
    return {"success": True, "deletedCount": deleted}


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------

@router.get("/eb-range", tags=["stats"])
def eb_range(
    start: int,
    end: int,
    section_type: Optional[str] = Query(None, alias="sectionType"),
    project: Optional[str] = None,
    db: Session = Depends(get_db),
    scope: CallerScope = Depends(get_caller_scope),
):
    geometry = config_resolver.resolve_config(db, scope, project)
    is_tail = is_tail_query(start, end, section_type, geometry)
    return {"ebRange": calculate_eb_range(start, end, geometry, is_tail=is_tail)}


@router.get("/stats", tags=["stats"])
def stats(
    project: Optional[str] = None,
    db: Session = Depends(get_db),
    scope: CallerScope = Depends(get_caller_scope),
):
    geometry = config_resolver.resolve_config(db, scope, project)
    events = event_query.fetch_snapshot(db, scope, project=project)
    return coverage.compute_stats(events, geometry)


@router.get("/stats/filter", tags=["stats"])
def filtered_stats(
    start: Optional[date] = None,
    end: Optional[date] = None,
    project: Optional[str] = None,
    db: Session = Depends(get_db),
    scope: CallerScope = Depends(get_caller_scope),
):
    geometry = config_resolver.resolve_config(db, scope, project)
    events = event_query.fetch_snapshot(db, scope, project=project, start=start, end=end)
    return coverage.compute_filtered_stats(events, geometry)


@router.get("/last-cleaned", tags=["stats"])
def last_cleaned(
    project: Optional[str] = None,
    db: Session = Depends(get_db),
    scope: CallerScope = Depends(get_caller_scope),
):
    geometry = config_resolver.resolve_config(db, scope, project)
    events = event_query.fetch_snapshot(db, scope, project=project)
    return {"lastCleaned": coverage.compute_last_cleaned(events, geometry)}


@router.get("/last-cleaned-filtered", tags=["stats"])
def last_cleaned_filtered(
    start: Optional[date] = None,
    end: Optional[date] = None,
    project: Optional[str] = None,
    db: Session = Depends(get_db),
    scope: CallerScope = Depends(get_caller_scope),
):
    geometry = config_resolver.resolve_config(db, scope, project)
    events = event_query.fetch_snapshot(db, scope, project=project, start=start, end=end)
    return {"lastCleaned": coverage.compute_last_cleaned(events, geometry)}


# ---------------------------------------------------------------------------
# Backups
# ---------------------------------------------------------------------------

@router.get("/backups", tags=["backups"])
def list_backups(
    scope: CallerScope = Depends(get_caller_scope),
    scheduler: Optional[backup.BackupScheduler] = Depends(get_backup_scheduler),
):
    scope.require(scope.can_manage_projects, "SuperUser access required")
    status = None
    if scheduler is not None:
        status = {
            "running": scheduler.running,
            "backupsTaken": scheduler.backups_taken,
            "failures": scheduler.failures,
        }
    return {"backups": backup.list_backups(Path(settings.BACKUP_DIR)), "scheduler": status}


@router.post("/backups", tags=["backups"])
def create_backup(
    scope: CallerScope = Depends(get_caller_scope),
    engine: Engine = Depends(get_engine),
):
    scope.require(scope.can_manage_projects, "SuperUser access required")
    path = backup.create_backup(engine, Path(settings.BACKUP_DIR), settings.MAX_BACKUPS)
    return {"success": True, "filename": path.name}


@router.post("/backups/{filename}/restore", tags=["backups"])
def restore_backup(
    filename: str,
    scope: CallerScope = Depends(get_caller_scope),
    engine: Engine = Depends(get_engine),
):
    """Replace the live database with a backup. A safety backup is taken first."""
    scope.require(scope.can_restore_backups, "Grand SuperUser access required to restore backups")
    safety = backup.restore_backup(engine, Path(settings.BACKUP_DIR), filename, settings.MAX_BACKUPS)
    logger.warning("Backup %s restored by %s", filename, scope.username)
    return {
        "success": True,
        "message": "Database restored successfully.",
        "restoredFrom": filename,
        "safetyBackup": safety.name,
    }
