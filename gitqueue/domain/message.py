"""
Queue message domain objects for gitqueue.

A queue is stored as commits on a branch. Each commit whose subject is
exactly one of the queue's two subjects is a message:

- "CLAIM LOCK: JOB: <queue name>"        a job was created (slot taken)
- "RELEASE LOCK: JOB DONE: <queue name>" the job was finished (slot freed)

The commit body is the job payload. It is opaque to the queue and is only
stripped of leading/trailing whitespace when read back.

The absence of a message is represented by None, never by a sentinel
Message, so every query returning Optional[Message] must be checked.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from ..exit_codes import UnrecognizedEventError

CREATE_JOB_SUBJECT_PREFIX = 'CLAIM LOCK: JOB: '
MARK_JOB_AS_DONE_SUBJECT_PREFIX = 'RELEASE LOCK: JOB DONE: '


class MessageKind(Enum):
    """Kind of event a queue commit records."""
    CREATE_JOB = "create_job"
    MARK_JOB_AS_DONE = "mark_job_as_done"


def create_job_subject(queue_name: str) -> str:
    return f"{CREATE_JOB_SUBJECT_PREFIX}{queue_name}"


def mark_job_as_done_subject(queue_name: str) -> str:
    return f"{MARK_JOB_AS_DONE_SUBJECT_PREFIX}{queue_name}"


def message_kind_for_subject(queue_name: str, subject: str) -> Optional[MessageKind]:
    """
    Classify a commit subject for the given queue.

    Matching is exact equality against this queue's subjects, so
    "CLAIM LOCK: JOB: build" never matches queue "build-docs" and vice versa.

    Returns:
        The message kind, or None if the subject does not belong to the queue
    """
    if subject == create_job_subject(queue_name):
        return MessageKind.CREATE_JOB
    if subject == mark_job_as_done_subject(queue_name):
        return MessageKind.MARK_JOB_AS_DONE
    return None


def commit_belongs_to_queue(queue_name: str, commit) -> bool:
    """Check whether a commit is a message of the named queue."""
    return message_kind_for_subject(queue_name, commit.subject) is not None


@dataclass(frozen=True)
class Message:
    """
    An immutable queue event extracted from one commit.

    Attributes:
        kind: Whether the commit created a job or marked it as done
        commit_hash: Full hash of the commit
        subject: Commit subject line
        body: Raw commit body (the payload before trimming)
        author_name: Commit author name
        author_email: Commit author email
        date: Author date, when known
    """

    kind: MessageKind
    commit_hash: str
    subject: str
    body: str = ""
    author_name: str = ""
    author_email: str = ""
    date: Optional[datetime] = None

    @property
    def payload(self) -> str:
        """The job payload with edge whitespace removed."""
        return self.body.strip()

    @property
    def is_create_job(self) -> bool:
        return self.kind is MessageKind.CREATE_JOB

    @property
    def is_mark_job_as_done(self) -> bool:
        return self.kind is MessageKind.MARK_JOB_AS_DONE

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            'kind': self.kind.value,
            'commit': self.commit_hash,
            'subject': self.subject,
            'payload': self.payload,
            'author_name': self.author_name,
            'author_email': self.author_email,
        }
        if self.date:
            result['date'] = self.date.isoformat()
        return result

    def __str__(self) -> str:
        return f"{self.kind.value} {self.commit_hash[:8]}"


def message_from_commit(queue_name: str, commit) -> Message:
    """
    Build a Message from a commit of the named queue.

    Args:
        queue_name: Name of the queue the commit was filtered for
        commit: A GitCommit (anything with hash, subject, body, author, email, date)

    Raises:
        UnrecognizedEventError: If the subject matches neither message kind.
            Commits are filtered with commit_belongs_to_queue first, so this
            only happens when filter and classifier disagree.
    """
    kind = message_kind_for_subject(queue_name, commit.subject)
    if kind is None:
        raise UnrecognizedEventError(commit.hash)

    return Message(
        kind=kind,
        commit_hash=commit.hash,
        subject=commit.subject,
        body=commit.body,
        author_name=commit.author,
        author_email=commit.email,
        date=commit.date,
    )
