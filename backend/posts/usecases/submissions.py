from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Protocol

from backend.posts.domain import ClientInputError, StorageError
from backend.posts.files import persist_files, write_text_file
from backend.posts.validation import accepted_slots, require_media, validate_fields
from backend.storage.layout import CAPTION_FILENAME, INSTAGRAM_FILENAME, StorageLayout

_log = logging.getLogger("cmuinsta.posts")


class PostsWriteRepoProtocol(Protocol):
    def create_post(self, *, andrew_id: str, username: str, content: str) -> int:
        ...


class SubmissionStage(str, Enum):
    PARSING = "parsing"
    VALIDATING = "validating"
    PERSISTING_FILES = "persisting_files"
    RECORDING_METADATA = "recording_metadata"
    DONE = "done"
    FAILED = "failed"


_NEXT_STAGE = {
    SubmissionStage.PARSING: SubmissionStage.VALIDATING,
    SubmissionStage.VALIDATING: SubmissionStage.PERSISTING_FILES,
    SubmissionStage.PERSISTING_FILES: SubmissionStage.RECORDING_METADATA,
    SubmissionStage.RECORDING_METADATA: SubmissionStage.DONE,
}
_TERMINAL = frozenset({SubmissionStage.DONE, SubmissionStage.FAILED})


class IllegalTransition(RuntimeError):
    pass


@dataclass
class SubmissionTracker:
    """Linear state machine for one submit request.

    PARSING -> VALIDATING -> PERSISTING_FILES -> RECORDING_METADATA -> DONE,
    with FAILED reachable from every non-terminal stage. `failed_at` records
    where the run stopped so a caller can decide what to compensate.
    """

    stage: SubmissionStage = SubmissionStage.PARSING
    history: List[SubmissionStage] = field(default_factory=lambda: [SubmissionStage.PARSING])
    failed_at: Optional[SubmissionStage] = None
    error: Optional[BaseException] = None
    directory: Optional[Path] = None

    def advance(self, to: SubmissionStage) -> None:
        if _NEXT_STAGE.get(self.stage) is not to:
            raise IllegalTransition(f"{self.stage.value} -> {to.value}")
        self.stage = to
        self.history.append(to)

    def fail(self, error: BaseException) -> None:
        if self.stage in _TERMINAL:
            raise IllegalTransition(f"{self.stage.value} -> failed")
        self.failed_at = self.stage
        self.error = error
        self.stage = SubmissionStage.FAILED
        self.history.append(SubmissionStage.FAILED)

    @property
    def finished(self) -> bool:
        return self.stage in _TERMINAL


@dataclass
class SubmitPostResult:
    post_id: int
    files_processed: int
    directory: Path
    files: List[str]

    @property
    def message(self) -> str:
        return f"Post submitted successfully with {self.files_processed} file(s)"


class SubmitPostUseCase:
    def __init__(
        self,
        repo: PostsWriteRepoProtocol,
        layout: StorageLayout,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._repo = repo
        self._layout = layout
        self._clock = clock

    def execute(self, form: Mapping[str, Any], tracker: Optional[SubmissionTracker] = None) -> SubmitPostResult:
        """Validate, lay out, persist and record one post submission.

        Parameters:
            form: Parsed multipart values; text fields as str, `file_0`..`file_9`
                as upload parts (objects exposing filename/content_type/file).
            tracker: Optional tracker already in PARSING (owned by the caller
                that parsed the body); a fresh one is created otherwise.

        Behavior:
            - Field rules short-circuit before anything touches the disk.
            - Caption and handle sidecars are written before media slots.
            - Zero accepted media files remove the directory again.
            - A metadata failure leaves the directory on disk (logged for
              manual reconciliation); there is no compensating delete.

        Errors:
            ClientInputError (400) or StorageError (500); the tracker ends in
            FAILED with `failed_at` set.
        """
        tracker = tracker or SubmissionTracker()
        tracker.advance(SubmissionStage.VALIDATING)
        try:
            fields = validate_fields(form)

            tracker.advance(SubmissionStage.PERSISTING_FILES)
            try:
                directory = self._layout.create_submission_dir(fields.andrew_id, self._clock())
            except (OSError, ValueError) as exc:
                raise StorageError(f"Failed to create post directory: {exc}") from exc
            tracker.directory = directory

            write_text_file(directory, CAPTION_FILENAME, fields.caption, label="caption")
            write_text_file(directory, INSTAGRAM_FILENAME, fields.instagram_username, label="Instagram username")

            accepted = accepted_slots(form)
            try:
                require_media(accepted)
            except ClientInputError as exc:
                if exc.discard_directory:
                    self._layout.discard(directory)
                raise
            written = persist_files(directory, accepted)

            tracker.advance(SubmissionStage.RECORDING_METADATA)
            try:
                post_id = self._repo.create_post(
                    andrew_id=fields.andrew_id,
                    username=fields.name,
                    content=str(directory),
                )
            except Exception as exc:
                _log.warning(
                    "metadata insert failed (%s); orphaned submission directory left at %s",
                    exc.__class__.__name__,
                    directory,
                )
                raise StorageError(f"Failed to save post to database: {exc}") from exc

            tracker.advance(SubmissionStage.DONE)
        except (ClientInputError, StorageError) as exc:
            tracker.fail(exc)
            raise

        _log.info("post %s stored with %d file(s)", post_id, len(written))
        return SubmitPostResult(post_id=post_id, files_processed=len(written), directory=directory, files=written)


__all__ = [
    "IllegalTransition",
    "PostsWriteRepoProtocol",
    "SubmissionStage",
    "SubmissionTracker",
    "SubmitPostResult",
    "SubmitPostUseCase",
]
