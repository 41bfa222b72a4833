"""
Filesystem layout for post submissions.

Why:
    Keep the directory shape of the posts store in one place so the submit
    pipeline, the readers and tests agree on it.

Conventions:
    - Submission directory: {root}/{andrew_id}/{unix_seconds}/
    - Inside: caption.txt, instagram.txt, 0..9.<ext>

Collisions:
    Two submissions from the same identity within the same second resolve to
    the same directory and overwrite each other's files. The path shape is
    kept for compatibility with existing stores.

Security:
    - The identity segment is reduced to [A-Za-z0-9._-]; a regular Andrew ID
      passes through unchanged.
      Irregular identities can map onto the same segment ("a b" and "a-b"
      both become "a-b"), so their same-second submissions collide as well.
    - The resolved directory must stay beneath the store root.
"""
from __future__ import annotations

import logging
import os
import re
import shutil
import time
import unicodedata
from pathlib import Path

_log = logging.getLogger("cmuinsta.storage")

_SEGMENT_RE = re.compile(r"[^A-Za-z0-9._-]+")

CAPTION_FILENAME = "caption.txt"
INSTAGRAM_FILENAME = "instagram.txt"
DIR_MODE = 0o755


def _sanitize_segment(value: str, *, fallback: str = "x") -> str:
    value = value or ""
    normalized = unicodedata.normalize("NFKD", value)
    ascii_value = normalized.encode("ascii", "ignore").decode("ascii")
    sanitized = _SEGMENT_RE.sub("-", ascii_value).strip("-_.")
    return sanitized or fallback


class StorageLayout:
    """Derive and create submission directories beneath a store root."""

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.root = Path(root).resolve()

    def ensure_root(self) -> Path:
        self.root.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
        return self.root

    def submission_dir(self, identity: str, timestamp: float | None = None) -> Path:
        """Return `{root}/{identity}/{unix_seconds}` without touching the disk.

        Raises ValueError("path_escape") if the result would leave the root.
        """
        seconds = int(time.time() if timestamp is None else timestamp)
        segment = _sanitize_segment(identity, fallback="unknown")
        target = (self.root / segment / str(seconds)).resolve()
        if os.path.commonpath([str(self.root), str(target)]) != str(self.root):
            raise ValueError("path_escape")
        return target

    def create_submission_dir(self, identity: str, timestamp: float | None = None) -> Path:
        """Create the submission directory (and ancestors) and return it.

        OSError from the filesystem propagates to the caller.
        """
        target = self.submission_dir(identity, timestamp)
        target.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
        _log.debug("submission dir ready: %s", target)
        return target

    def discard(self, directory: str | os.PathLike[str]) -> None:
        """Remove a submission directory recursively; missing dirs are ignored."""
        path = Path(directory)
        try:
            shutil.rmtree(path)
        except FileNotFoundError:
            return
        except OSError as exc:
            _log.warning("failed to discard %s: %s", path, exc.__class__.__name__)


__all__ = ["StorageLayout", "CAPTION_FILENAME", "INSTAGRAM_FILENAME", "DIR_MODE"]
