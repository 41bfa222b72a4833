"""Write submission artifacts (text sidecars and media parts) into a directory."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Iterable, List

from backend.posts.domain import StorageError
from backend.posts.validation import AcceptedFile

_log = logging.getLogger("cmuinsta.posts")

FILE_MODE = 0o644
_COPY_CHUNK = 1024 * 1024


def write_text_file(directory: Path, filename: str, text: str, *, label: str) -> Path:
    target = Path(directory) / filename
    try:
        target.write_text(text, encoding="utf-8")
        target.chmod(FILE_MODE)
    except OSError as exc:
        raise StorageError(f"Failed to save {label}: {exc}") from exc
    return target


def persist_files(directory: Path, accepted: Iterable[AcceptedFile]) -> List[str]:
    """Stream each accepted part to `{index}{ext}` and return the written names.

    The index counts accepted parts only, so the names are always 0..N-1.
    Any failure aborts with StorageError; files already written stay on disk.
    """
    written: List[str] = []
    for index, item in enumerate(accepted):
        name = f"{index}{item.extension}"
        dest = Path(directory) / name
        source = item.part.file
        if hasattr(source, "seek"):
            try:
                source.seek(0)
            except (OSError, ValueError) as exc:
                _log.debug("slot %d not rewindable: %s", item.slot, exc.__class__.__name__)
        try:
            fh = dest.open("wb")
        except OSError as exc:
            raise StorageError(f"Failed to save file: {exc}") from exc
        try:
            with fh:
                shutil.copyfileobj(source, fh, _COPY_CHUNK)
        except OSError as exc:
            raise StorageError(f"Failed to write file: {exc}") from exc
        _log.debug("slot %d stored as %s", item.slot, name)
        written.append(name)
    return written


__all__ = ["write_text_file", "persist_files", "FILE_MODE"]
