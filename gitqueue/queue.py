"""
Git-backed job queue.

A Queue is a named mutual-exclusion slot whose state lives in the commit
history of the current branch. Its messages are rebuilt from `git log`
on construction and after every write; nothing is cached between runs.

The effective state is a pure function of the most recent message:

    no message           -> EMPTY
    latest is CREATE_JOB -> PENDING (that commit is the next job)
    latest is DONE       -> DONE    (accepts a new job, like EMPTY)

The local guards only catch sequential misuse. Two processes racing on the
same remote both pass them; the remote accepting only one push decides the
winner, and the loser gets PublishRejectedError.
"""

import logging
from enum import Enum
from typing import Optional, Tuple

from .domain.commit_options import CommitOptions
from .domain.message import (
    Message,
    MessageKind,
    commit_belongs_to_queue,
    create_job_subject,
    mark_job_as_done_subject,
    message_from_commit,
)
from .exit_codes import (
    JobAlreadyPendingError,
    LogReadError,
    NoPendingJobError,
    NotARepositoryError,
)
from .infra.git_client import EmptyRepositoryError, GitClient, GitCommandError

logger = logging.getLogger(__name__)


class QueueState(Enum):
    """Effective state of a queue, derived from its latest message."""
    EMPTY = "empty"
    PENDING = "pending"
    DONE = "done"


def validate_queue_name(name: str) -> str:
    """
    Check that a queue name can be encoded in a commit subject.

    Raises:
        ValueError: If the name is empty or spans several lines
    """
    if not name or not name.strip():
        raise ValueError("Queue name must not be empty")
    if '\n' in name or '\r' in name:
        raise ValueError(f"Queue name must be a single line: {name!r}")
    if name != name.strip():
        raise ValueError(f"Queue name must not start or end with whitespace: {name!r}")
    return name


class Queue:
    """
    A named job queue stored in a git repository.

    Example:
        queue = Queue.create("deploy", GitClient("/path/to/repo"))
        commit = queue.create_job('{"env": "prod"}', CommitOptions())
        job = queue.next_job()
        if job is not None:
            print(job.commit_hash, job.payload)
    """

    def __init__(
        self,
        name: str,
        git_client: GitClient,
        remote: str = "origin"
    ):
        self.name = validate_queue_name(name)
        self.git = git_client
        self.remote = remote
        self._messages: Tuple[Message, ...] = ()

    @classmethod
    def create(
        cls,
        name: str,
        git_client: GitClient,
        remote: str = "origin"
    ) -> 'Queue':
        """Create a queue and load its messages from the repository."""
        queue = cls(name, git_client, remote=remote)
        queue.load_messages()
        return queue

    @property
    def repo_dir(self) -> str:
        return self.git.repo_dir

    def load_messages(self) -> Tuple[Message, ...]:
        """
        Rebuild the message list from the current branch's log.

        Raises:
            NotARepositoryError: The directory is not a git working tree
            LogReadError: git log failed for any reason but "no commits yet"
        """
        if not self.git.is_git_repo():
            raise NotARepositoryError(self.repo_dir)

        try:
            commits = self.git.log()
        except EmptyRepositoryError:
            logger.debug(f"Branch '{self.git.current_branch()}' has no commits yet")
            commits = []
        except GitCommandError as e:
            raise LogReadError(str(e)) from e

        self._messages = tuple(
            message_from_commit(self.name, commit)
            for commit in commits
            if commit_belongs_to_queue(self.name, commit)
        )
        logger.debug(f"Queue '{self.name}' has {len(self._messages)} messages")
        return self._messages

    @property
    def messages(self) -> Tuple[Message, ...]:
        """All messages of this queue, most recent first."""
        return self._messages

    def is_empty(self) -> bool:
        return len(self._messages) == 0

    def latest_message(self) -> Optional[Message]:
        return self._messages[0] if self._messages else None

    def next_job(self) -> Optional[Message]:
        """The pending job, or None if the slot is free."""
        latest = self.latest_message()
        if latest is not None and latest.kind is MessageKind.CREATE_JOB:
            return latest
        return None

    def state(self) -> QueueState:
        latest = self.latest_message()
        if latest is None:
            return QueueState.EMPTY
        if latest.kind is MessageKind.CREATE_JOB:
            return QueueState.PENDING
        return QueueState.DONE

    def create_job_subject(self) -> str:
        return create_job_subject(self.name)

    def mark_job_as_done_subject(self) -> str:
        return mark_job_as_done_subject(self.name)

    def guard_that_there_is_no_pending_job(self) -> None:
        pending = self.next_job()
        if pending is not None:
            raise JobAlreadyPendingError(pending.commit_hash)

    def guard_that_there_is_a_pending_job(self) -> None:
        if self.next_job() is None:
            raise NoPendingJobError()

    def create_job(self, payload: str, options: Optional[CommitOptions] = None) -> str:
        """
        Claim the queue slot with a new job.

        Args:
            payload: Job payload stored verbatim as the commit body
            options: Author and signing options for the commit

        Returns:
            Hash of the new commit

        Raises:
            JobAlreadyPendingError: A job is already pending
            PublishRejectedError: The push to the remote was refused
        """
        self.guard_that_there_is_no_pending_job()
        commit_hash = self._commit_and_push(self.create_job_subject(), payload, options)
        logger.info(f"Created job in queue '{self.name}': {commit_hash}")
        return commit_hash

    def mark_job_as_done(self, payload: str, options: Optional[CommitOptions] = None) -> str:
        """
        Release the queue slot.

        Args:
            payload: Payload stored with the release (usually the job's payload)
            options: Author and signing options for the commit

        Returns:
            Hash of the new commit

        Raises:
            NoPendingJobError: There is no job to mark as done
            PublishRejectedError: The push to the remote was refused
        """
        self.guard_that_there_is_a_pending_job()
        commit_hash = self._commit_and_push(self.mark_job_as_done_subject(), payload, options)
        logger.info(f"Marked job as done in queue '{self.name}': {commit_hash}")
        return commit_hash

    def _commit_and_push(
        self,
        subject: str,
        payload: str,
        options: Optional[CommitOptions]
    ) -> str:
        options = options or CommitOptions()
        commit_hash = self.git.commit(subject, payload or "", options.to_git_args())

        # Push errors propagate: a dropped push would leave local and remote
        # disagreeing about who holds the slot.
        if self.git.has_remote(self.remote):
            logger.debug(f"Pushing {commit_hash} to {self.remote}")
            self.git.push(self.remote)
        else:
            remotes = self.git.remotes()
            if remotes:
                logger.warning(
                    f"Remote '{self.remote}' not found (remotes: {', '.join(remotes)}); "
                    f"commit {commit_hash} was not pushed"
                )
            else:
                logger.debug(f"No remote configured, skipping push of {commit_hash}")

        self.load_messages()
        return commit_hash

    def __repr__(self) -> str:
        return f"Queue(name={self.name!r}, repo_dir={self.repo_dir!r}, state={self.state().value!r})"
