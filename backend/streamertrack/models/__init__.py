"""Import all models to register them with SQLAlchemy metadata."""
from streamertrack.models.base import Base
from streamertrack.models.project import Project
from streamertrack.models.vessel_context import VesselContext
from streamertrack.models.cleaning_event import CleaningEvent
from streamertrack.models.streamer_deployment import StreamerDeployment
from streamertrack.models.app_config import AppConfigEntry

__all__ = [
    "Base",
    "Project",
    "VesselContext",
    "CleaningEvent",
    "StreamerDeployment",
    "AppConfigEntry",
]
