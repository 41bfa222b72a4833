"""
Upload policy for post submissions.

Centralises field rules, the media extension allow-list and the
content-type fallback table so the router stays slim and tests can refer to a
single source of truth. Framework-agnostic: works on any mapping of form
values and any object that looks like an uploaded file part.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, BinaryIO, List, Mapping, Optional, Protocol

from backend.posts.domain import CAPTION_MAX_LENGTH, MAX_FILE_SLOTS, ClientInputError, SubmissionFields

ALLOWED_MEDIA_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp", ".mp4", ".mov", ".webm", ".avi"})

# Ordered prefix table; the first matching prefix wins.
CONTENT_TYPE_EXTENSIONS = (
    ("image/jpeg", ".jpg"),
    ("image/png", ".png"),
    ("image/gif", ".gif"),
    ("image/webp", ".webp"),
    ("video/mp4", ".mp4"),
    ("video/quicktime", ".mov"),
    ("video/webm", ".webm"),
)
FALLBACK_EXTENSION = ".bin"

NO_MEDIA_MESSAGE = "At least one image or video is required"


class UploadPart(Protocol):
    filename: Optional[str]
    content_type: Optional[str]
    file: BinaryIO


@dataclass(frozen=True)
class AcceptedFile:
    slot: int
    part: UploadPart
    extension: str


def slot_field_name(index: int) -> str:
    return f"file_{index}"


def _form_value(form: Mapping[str, Any], key: str) -> str:
    value = form.get(key)
    return value.strip() if isinstance(value, str) else ""


def validate_fields(form: Mapping[str, Any]) -> SubmissionFields:
    """Check the text fields in order and return the normalized tuple.

    Raises ClientInputError with the first failing rule's message.
    """
    andrew_id = _form_value(form, "andrewId")
    if not andrew_id:
        raise ClientInputError("Andrew ID is required")
    name = _form_value(form, "name")
    if not name:
        raise ClientInputError("Name is required")
    instagram = _form_value(form, "instagramUsername")
    if not instagram:
        raise ClientInputError("Instagram username is required")
    if instagram.startswith("@"):
        instagram = instagram[1:]
    caption = _form_value(form, "caption")
    if not caption:
        raise ClientInputError("Caption is required")
    if len(caption) > CAPTION_MAX_LENGTH:
        raise ClientInputError(f"Caption exceeds {CAPTION_MAX_LENGTH} characters")
    return SubmissionFields(andrew_id=andrew_id, name=name, instagram_username=instagram, caption=caption)


def extension_for_content_type(content_type: Optional[str]) -> str:
    ct = (content_type or "").strip().lower()
    for prefix, ext in CONTENT_TYPE_EXTENSIONS:
        if ct.startswith(prefix):
            return ext
    return FALLBACK_EXTENSION


def resolve_extension(filename: Optional[str], content_type: Optional[str]) -> str:
    """Lower-cased filename suffix, else the content-type table, else `.bin`."""
    _, ext = os.path.splitext(os.path.basename(filename or ""))
    ext = ext.lower()
    if not ext:
        ext = extension_for_content_type(content_type)
    return ext


def is_file_part(value: Any) -> bool:
    if isinstance(value, (str, bytes)) or value is None:
        return False
    if not hasattr(value, "file"):
        return False
    return bool(getattr(value, "filename", None))


def accepted_slots(form: Mapping[str, Any], *, slots: int = MAX_FILE_SLOTS) -> List[AcceptedFile]:
    """Scan `file_0`..`file_{slots-1}` and keep the parts with allowed types.

    Missing slots and disallowed extensions are skipped without error.
    """
    accepted: List[AcceptedFile] = []
    for index in range(slots):
        part = form.get(slot_field_name(index))
        if not is_file_part(part):
            continue
        ext = resolve_extension(getattr(part, "filename", None), getattr(part, "content_type", None))
        if ext not in ALLOWED_MEDIA_EXTENSIONS:
            continue
        accepted.append(AcceptedFile(slot=index, part=part, extension=ext))
    return accepted


def require_media(accepted: List[AcceptedFile]) -> None:
    if not accepted:
        raise ClientInputError(NO_MEDIA_MESSAGE, discard_directory=True)


__all__ = [
    "ALLOWED_MEDIA_EXTENSIONS",
    "CONTENT_TYPE_EXTENSIONS",
    "FALLBACK_EXTENSION",
    "NO_MEDIA_MESSAGE",
    "AcceptedFile",
    "UploadPart",
    "slot_field_name",
    "validate_fields",
    "extension_for_content_type",
    "resolve_extension",
    "is_file_part",
    "accepted_slots",
    "require_media",
]
