"""Effective streamer geometry for a caller and optional project.

Precedence, field by field: explicit project, else the vessel's active
project, else stored global defaults (``app_config``), else the hard-coded
defaults in ``geometry.DEFAULT_GEOMETRY_VALUES``.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from streamertrack.config import settings
from streamertrack.errors import ScopeViolation, ValidationError
from streamertrack.models.app_config import AppConfigEntry
from streamertrack.models.project import Project
from streamertrack.modules import scope_resolver
from streamertrack.modules.geometry import DEFAULT_GEOMETRY_VALUES, GEOMETRY_FIELDS, StreamerGeometry
from streamertrack.utils.scope import CallerScope

logger = logging.getLogger(__name__)

GLOBAL_CONFIG_KEYS: tuple[str, ...] = GEOMETRY_FIELDS + ("vessel_tag",)

_POSITIVE_INT_FIELDS = ("num_cables", "sections_per_cable", "module_frequency", "channels_per_section")


def _coerce(key: str, raw: str) -> Any:
    """Parse a stored ``app_config`` value back to its field type."""
    if key == "vessel_tag":
        return raw
    if key == "use_rope_for_tail":
        return raw == "true"
    if key == "section_length":
        value = float(raw)
        return int(value) if value.is_integer() else value
    return int(raw)


def _serialize(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def check_geometry_values(values: dict) -> dict:
    """Validate a partial geometry mapping; returns it unchanged."""
    unknown = set(values) - set(GLOBAL_CONFIG_KEYS)
    if unknown:
        raise ValidationError(f"Unknown configuration keys: {sorted(unknown)}")
    for key in _POSITIVE_INT_FIELDS:
        if key in values:
            value = values[key]
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValidationError(f"{key} must be an integer >= 1")
    if "section_length" in values:
        value = values["section_length"]
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            raise ValidationError("section_length must be a positive number")
    if "use_rope_for_tail" in values and not isinstance(values["use_rope_for_tail"], bool):
        raise ValidationError("use_rope_for_tail must be a boolean")
    if "vessel_tag" in values and not (isinstance(values["vessel_tag"], str) and values["vessel_tag"].strip()):
        raise ValidationError("vessel_tag must be a non-empty string")
    return values


def load_global_defaults(db: Session) -> dict:
    """Hard-coded defaults overlaid with stored ``app_config`` rows."""
    values: dict = dict(DEFAULT_GEOMETRY_VALUES)
    values["vessel_tag"] = settings.DEFAULT_VESSEL_TAG
    for row in db.query(AppConfigEntry).all():
        if row.key not in GLOBAL_CONFIG_KEYS:
            continue
        try:
            values[row.key] = _coerce(row.key, row.value)
        except ValueError:
            logger.warning("Ignoring unreadable app_config value %s=%r", row.key, row.value)
    return values


def save_global_defaults(db: Session, values: dict) -> None:
    check_geometry_values(values)
    for key, value in values.items():
        db.merge(AppConfigEntry(key=key, value=_serialize(value)))
    db.flush()
    logger.info("Global configuration defaults updated: %s", sorted(values))


def effective_vessel_tag(db: Session, scope: Optional[CallerScope]) -> str:
    """The caller's vessel, or the stored default vessel for unrestricted callers."""
    if scope is not None and scope.vessel_scope:
        return scope.vessel_scope
    return load_global_defaults(db)["vessel_tag"]


def resolve_config(
    db: Session, scope: Optional[CallerScope] = None, project_number: Optional[str] = None
) -> StreamerGeometry:
    defaults = load_global_defaults(db)

    project = None
    if project_number:
        # project_number is a soft reference: unknown numbers resolve like no project
        project = db.query(Project).filter(Project.project_number == project_number).first()
        if project is None:
            logger.debug("Project %s not registered, using caller context", project_number)
    if project is not None:
        vessel_tag = project.vessel_tag
        active = scope_resolver.resolve(db, vessel_tag)
    else:
        vessel_tag = effective_vessel_tag(db, scope)
        project = active = scope_resolver.resolve(db, vessel_tag)

    values = {key: defaults[key] for key in GEOMETRY_FIELDS}
    if project is not None:
        for key in GEOMETRY_FIELDS:
            override = getattr(project, key)
            if override is not None:
                values[key] = override

    return StreamerGeometry(
        **values,
        vessel_tag=(project.vessel_tag if project is not None else vessel_tag) or defaults["vessel_tag"],
        active_project_number=active.project_number if active is not None else None,
    )


def update_config(db: Session, scope: CallerScope, values: dict) -> StreamerGeometry:
    """Write configuration for the caller's context.

    With an active project on the caller's vessel the geometry fields land on
    that project's row. Without one, the write goes to the global defaults,
    which only an unrestricted caller may change.
    """
    scope.require(scope.can_manage_projects, "SuperUser access required")
    check_geometry_values(values)

    vessel_tag = effective_vessel_tag(db, scope)
    active = scope_resolver.resolve(db, vessel_tag)
    if active is not None:
        scope_resolver.ensure_project_access(scope, active)
        for key in GEOMETRY_FIELDS:
            if key in values:
                setattr(active, key, values[key])
        db.flush()
        logger.info("Project %s configuration updated by %s", active.project_number, scope.username)
    else:
        if not scope.is_unrestricted:
            raise ScopeViolation(
                "Grand SuperUser access required to change global configuration"
            )
        save_global_defaults(db, values)

    return resolve_config(db, scope)
