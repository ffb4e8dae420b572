"""
Queue service for gitqueue.

Exposes the three queue operations (create job, get next job, mark job as
done) by queue name, plus message history. Used by the CLI commands; each
call loads the queue fresh from the repository.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..config import load_config
from ..domain.commit_options import CommitOptions
from ..domain.message import Message
from ..infra.git_client import GitClient
from ..queue import Queue

logger = logging.getLogger(__name__)


@dataclass
class JobResult:
    """Result of a write operation (create job / mark job as done)."""
    queue_name: str
    commit_hash: str
    action: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'queue': self.queue_name,
            'action': self.action,
            'job_created': True,
            'job_commit': self.commit_hash,
        }


@dataclass
class NextJobResult:
    """Result of looking up the pending job."""
    queue_name: str
    found: bool
    commit_hash: Optional[str] = None
    payload: Optional[str] = None

    @classmethod
    def from_message(cls, queue_name: str, message: Optional[Message]) -> 'NextJobResult':
        if message is None:
            return cls(queue_name=queue_name, found=False)
        return cls(
            queue_name=queue_name,
            found=True,
            commit_hash=message.commit_hash,
            payload=message.payload,
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            'queue': self.queue_name,
            'job_found': self.found,
        }
        if self.found:
            result['job_commit'] = self.commit_hash
            result['job_payload'] = self.payload
        return result


class QueueService:
    """
    Service for queue operations on one repository.

    Example:
        service = QueueService()
        result = service.create_job("deploy", "payload", CommitOptions())
        print(result.commit_hash)

        next_job = service.get_next_job("deploy")
        if next_job.found:
            print(next_job.payload)
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        git_client: Optional[GitClient] = None
    ):
        """
        Initialize QueueService.

        Args:
            config: Configuration dict (loads default if None)
            git_client: GitClient instance (built from config if None)
        """
        self.config = config if config is not None else load_config()
        self.git = git_client or self._git_client_from_config(self.config)

    @staticmethod
    def _git_client_from_config(config: Dict[str, Any]) -> GitClient:
        git_config = config.get('git', {})
        repo_dir = git_config.get('repo_dir') or os.getcwd()
        timeout = git_config.get('timeout_seconds', 60)

        env = {}
        gnupg_home = config.get('gpg', {}).get('home')
        if gnupg_home:
            env['GNUPGHOME'] = os.path.expanduser(gnupg_home)

        return GitClient(os.path.expanduser(repo_dir), timeout=timeout, env=env)

    @property
    def remote(self) -> str:
        return self.config.get('git', {}).get('remote') or 'origin'

    def default_commit_options(self) -> CommitOptions:
        return CommitOptions.from_config(self.config)

    def load_queue(self, name: str) -> Queue:
        return Queue.create(name, self.git, remote=self.remote)

    def create_job(
        self,
        name: str,
        payload: str,
        options: Optional[CommitOptions] = None
    ) -> JobResult:
        queue = self.load_queue(name)
        commit_hash = queue.create_job(payload, options or self.default_commit_options())
        return JobResult(queue_name=name, commit_hash=commit_hash, action='create-job')

    def get_next_job(self, name: str) -> NextJobResult:
        queue = self.load_queue(name)
        return NextJobResult.from_message(name, queue.next_job())

    def mark_job_as_done(
        self,
        name: str,
        payload: str,
        options: Optional[CommitOptions] = None
    ) -> JobResult:
        queue = self.load_queue(name)
        commit_hash = queue.mark_job_as_done(payload, options or self.default_commit_options())
        return JobResult(queue_name=name, commit_hash=commit_hash, action='mark-job-as-done')

    def history(self, name: str) -> List[Message]:
        """All messages of a queue, most recent first."""
        return list(self.load_queue(name).messages)
