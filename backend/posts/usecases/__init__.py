"""Use case layer for posts.

Re-export common use cases for convenient imports in tests.
"""

from .reader import GetPostUseCase, ListPostsUseCase, parse_post_id
from .submissions import SubmissionStage, SubmissionTracker, SubmitPostResult, SubmitPostUseCase

__all__ = [
    "GetPostUseCase",
    "ListPostsUseCase",
    "parse_post_id",
    "SubmissionStage",
    "SubmissionTracker",
    "SubmitPostResult",
    "SubmitPostUseCase",
]
