"""Domain models for photo uploads and phone handoff sessions."""

from collections.abc import Sized
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from room_designer.domain.errors import ValidationError

MIN_PHOTOS = 2
MAX_PHOTOS = 4


class UploadStatus(StrEnum):
    """Backend-reported state of a phone upload session."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class PhotoFile:
    """A single image selected for upload."""

    filename: str
    content: bytes
    content_type: str = "image/jpeg"


@dataclass
class UploadSession:
    """Client-side view of a phone handoff attempt."""

    id: str
    status: UploadStatus = UploadStatus.PENDING
    files: list[Any] = field(default_factory=list)

    @property
    def is_completed(self) -> bool:
        return self.status is UploadStatus.COMPLETED


class UploadStatusReport(BaseModel):
    """Payload of the phone upload status endpoint."""

    status: UploadStatus = UploadStatus.PENDING
    files: list[Any] = Field(default_factory=list)

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, value: object) -> object:
        # Missing or unrecognised statuses mean the phone has not finished yet.
        try:
            return UploadStatus(value)
        except ValueError:
            return UploadStatus.PENDING

    @field_validator("files", mode="before")
    @classmethod
    def _default_files(cls, value: object) -> object:
        return [] if value is None else value


class PhoneUploadReceipt(BaseModel):
    """Acknowledgement returned after a phone submission."""

    message: str | None = None


def validate_photo_count(files: Sized) -> None:
    """Raise if the selection is outside the accepted photo count."""
    if not MIN_PHOTOS <= len(files) <= MAX_PHOTOS:
        raise ValidationError(
            f"Please select between {MIN_PHOTOS} and {MAX_PHOTOS} photos."
        )
