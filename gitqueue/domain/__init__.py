"""
Domain layer for gitqueue.

Contains pure domain objects with no I/O or side effects:
- Message: One queue event (job created / job done) read from a commit
- MessageKind: The tag distinguishing the two event kinds
- CommitOptions: Author and signing settings for the next queue commit

These objects are immutable and provide serialization methods for
JSONL output.
"""

from .message import (
    Message,
    MessageKind,
    CREATE_JOB_SUBJECT_PREFIX,
    MARK_JOB_AS_DONE_SUBJECT_PREFIX,
    create_job_subject,
    mark_job_as_done_subject,
    commit_belongs_to_queue,
    message_from_commit,
)
from .commit_options import CommitAuthor, SigningKeyId, CommitOptions

__all__ = [
    'Message',
    'MessageKind',
    'CREATE_JOB_SUBJECT_PREFIX',
    'MARK_JOB_AS_DONE_SUBJECT_PREFIX',
    'create_job_subject',
    'mark_job_as_done_subject',
    'commit_belongs_to_queue',
    'message_from_commit',
    'CommitAuthor',
    'SigningKeyId',
    'CommitOptions',
]
