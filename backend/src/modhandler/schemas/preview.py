from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from modhandler.schemas.mod import PreviewInfo


class PreviewKind(StrEnum):
    IMAGE = "image"
    VIDEO = "video"


class PreviewStatus(StrEnum):
    RUNNING = "running"
    DONE = "done"
    ERROR = "error"
    CANCELLED = "cancelled"


class PreviewProgress(BaseModel):
    kind: PreviewKind
    status: PreviewStatus
    total: int = Field(default=0, ge=0)
    processed: int = Field(default=0, ge=0)
    generated: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    errors: int = Field(default=0, ge=0)
    current_mod: str | None = None
    message: str | None = None

    @property
    def is_running(self) -> bool:
        return self.status == PreviewStatus.RUNNING


class PreviewProgressEvent(BaseModel):
    """One payload from the engine's progress stream.

    ``current_mod`` and ``message`` are ``None`` when the event does not carry them.
    """

    model_config = ConfigDict(extra="ignore")

    kind: PreviewKind
    status: PreviewStatus
    total: int = Field(default=0, ge=0)
    processed: int = Field(default=0, ge=0)
    generated: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    errors: int = Field(default=0, ge=0)
    current_mod: str | None = None
    message: str | None = None


class PreviewStateOut(BaseModel):
    progress: PreviewProgress | None = None
    busy: PreviewKind | None = None
    cancel_requested: bool = False
    selected_mod_id: int | None = None
    selected_preview: PreviewInfo | None = None
    last_error: str | None = None


class PreviewSelection(BaseModel):
    mod_id: int | None = None
