"""Domain models for backend design projects."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict

MODEL_PATH_PREFIX = "projects/"
STATIC_FILES_MOUNT = "project_files"


class ProjectStatus(StrEnum):
    """Known processing states reported by the backend pipeline."""

    CREATED = "created"
    PHOTOGRAMMETRY_RUNNING = "photogrammetry_running"
    PHOTOGRAMMETRY_COMPLETE = "photogrammetry_complete"
    PHOTOGRAMMETRY_FAILED = "photogrammetry_failed"
    DETECTION_RUNNING = "detection_running"
    DETECTION_COMPLETE = "detection_complete"
    DETECTION_FAILED = "detection_failed"
    COMPLETED = "completed"


# A model path is only final once one of these statuses has been reported.
MODEL_READY_STATUSES = frozenset(
    {
        ProjectStatus.PHOTOGRAMMETRY_COMPLETE,
        ProjectStatus.DETECTION_COMPLETE,
        ProjectStatus.COMPLETED,
    }
)


class CreatedProject(BaseModel):
    """Response of a project-creation request."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str


class ProjectSnapshot(BaseModel):
    """A single observation of a project's processing state."""

    model_config = ConfigDict(extra="allow")

    status: str
    room_model_path: str | None = None

    @property
    def is_failed(self) -> bool:
        return "failed" in self.status

    @property
    def has_ready_model(self) -> bool:
        """Whether the reported model path can be loaded."""
        return bool(self.room_model_path) and self.status in MODEL_READY_STATUSES


def resolve_model_url(room_model_path: str, static_base_url: str) -> str:
    """Rebase a backend model path onto the static file mount.

    ``projects/42/model/room_model.glb`` becomes
    ``{static_base_url}/project_files/42/model/room_model.glb``.
    """
    relative = room_model_path.lstrip("/")
    if relative.startswith(MODEL_PATH_PREFIX):
        relative = relative[len(MODEL_PATH_PREFIX) :]
    return f"{static_base_url.rstrip('/')}/{STATIC_FILES_MOUNT}/{relative}"
