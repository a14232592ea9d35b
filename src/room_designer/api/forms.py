"""Helpers for multipart photo uploads."""

from fastapi import UploadFile

from room_designer.domain.uploads import PhotoFile


async def read_photos(files: list[UploadFile] | None) -> list[PhotoFile]:
    """Read uploaded form files into memory, skipping empty file inputs."""
    photos: list[PhotoFile] = []
    for upload in files or []:
        content = await upload.read()
        if not upload.filename and not content:
            continue
        photos.append(
            PhotoFile(
                filename=upload.filename or f"photo-{len(photos) + 1}.jpg",
                content=content,
                content_type=upload.content_type or "application/octet-stream",
            )
        )
    return photos
