from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class ModType(StrEnum):
    IDLE = "idle"
    CUTSCENE = "cutscene"
    HISTORY = "history"
    DATE = "date"
    MINIGAME = "minigame"
    SWAP = "swap"
    BATTLE = "battle"
    UI = "ui"
    OTHER = "other"


_MOD_TYPE_VALUES = frozenset(m.value for m in ModType)


class DraftMod(BaseModel):
    """A candidate mod pending commit.

    ``folder_path`` is the unique key within one scan batch. ``costume_id`` is only
    meaningful together with the ``character_id`` that owns it.
    """

    model_config = ConfigDict(extra="ignore")

    display_name: str
    folder_path: str
    author: str | None = None
    download_url: str | None = None
    mod_type: ModType = ModType.OTHER
    character_id: int | None = None
    costume_id: int | None = None
    infer_confidence: float = 0.0

    @field_validator("mod_type", mode="before")
    @classmethod
    def _coerce_mod_type(cls, v: Any) -> Any:
        if v is None:
            return ModType.OTHER
        if isinstance(v, str) and v.lower() not in _MOD_TYPE_VALUES:
            return ModType.OTHER
        return v.lower() if isinstance(v, str) else v

    @field_validator("infer_confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, v: Any) -> float:
        if v is None:
            return 0.0
        return min(max(float(v), 0.0), 1.0)


class DraftPatch(BaseModel):
    """Field-level edit for one draft row. Only fields that are set are applied."""

    model_config = ConfigDict(extra="forbid")

    display_name: str | None = None
    author: str | None = None
    download_url: str | None = None
    mod_type: ModType | None = None
    character_id: int | None = None
    costume_id: int | None = None

    @field_validator("mod_type", mode="before")
    @classmethod
    def _mod_type_not_null(cls, v: Any) -> Any:
        # omit the field to leave it unchanged
        if v is None:
            raise ValueError("mod_type cannot be null")
        return v


class AuthorFolder(BaseModel):
    folder_path: str
    inferred_author: str


class CommitResult(BaseModel):
    inserted: int = 0
    updated: int = 0


class PreviewInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    mod_id: int
    image_path: str | None = None
    video_path: str | None = None
    updated_at: str | None = None
