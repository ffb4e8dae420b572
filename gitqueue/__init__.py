"""
gitqueue - A single-slot job queue whose storage is a git commit history.

Producers and consumers (typically CI runs) share nothing but a git
remote. A queue is a named slot: creating a job commits a claim, marking
it as done commits a release. The state of a queue is whatever its most
recent commit says.

Quick Start:
    from gitqueue import Queue, GitClient, CommitOptions

    queue = Queue.create("deploy", GitClient("/path/to/repo"))

    if queue.next_job() is None:
        queue.create_job('{"ref": "v1.2.0"}', CommitOptions.from_values(no_gpg_sign=True))

    job = queue.next_job()
    print(job.commit_hash, job.payload)

    queue.mark_job_as_done(job.payload)

Commit subjects:
    CLAIM LOCK: JOB: <queue name>         job created
    RELEASE LOCK: JOB DONE: <queue name>  job done
"""

__version__ = "0.1.0"

from .queue import Queue, QueueState

from .domain import (
    Message,
    MessageKind,
    CommitAuthor,
    SigningKeyId,
    CommitOptions,
)

from .infra import GitClient, GpgClient

from .services import QueueService, JobResult, NextJobResult

from .exit_codes import (
    CommandError,
    NotARepositoryError,
    LogReadError,
    JobAlreadyPendingError,
    NoPendingJobError,
    PublishRejectedError,
    UnrecognizedEventError,
)

__all__ = [
    "__version__",
    "Queue",
    "QueueState",
    "Message",
    "MessageKind",
    "CommitAuthor",
    "SigningKeyId",
    "CommitOptions",
    "GitClient",
    "GpgClient",
    "QueueService",
    "JobResult",
    "NextJobResult",
    "CommandError",
    "NotARepositoryError",
    "LogReadError",
    "JobAlreadyPendingError",
    "NoPendingJobError",
    "PublishRejectedError",
    "UnrecognizedEventError",
]
