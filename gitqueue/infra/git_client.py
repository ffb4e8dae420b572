"""
Git client infrastructure for gitqueue.

Provides a clean abstraction over git command execution.
All git operations go through this client, making them:
- Easy to mock for testing
- Consistent in error handling
- Isolated from queue logic

The queue cannot treat a failed git command as "no data": every failure
is raised as GitCommandError, and the two conditions the queue must tell
apart get their own types
(EmptyRepositoryError, PublishRejectedError).
"""

import os
import subprocess
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence
import logging

from ..exit_codes import PublishRejectedError

logger = logging.getLogger(__name__)

# Field and record separators for `git log -z`
_FIELD_SEP = '\x1f'
_LOG_FORMAT = _FIELD_SEP.join(['%H', '%aI', '%an', '%ae', '%s', '%b'])


class GitCommandError(Exception):
    """A git command exited with a non-zero status."""

    def __init__(self, args: Sequence[str], returncode: int, stderr: str = ""):
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr.strip()
        command = ' '.join(self.args_list)
        detail = f": {self.stderr}" if self.stderr else ""
        super().__init__(f"git {command} failed with exit code {returncode}{detail}")


class EmptyRepositoryError(GitCommandError):
    """The current branch does not have any commits yet."""

    def __init__(self, branch: str):
        self.branch = branch
        super().__init__(
            ['log'], 128,
            f"your current branch '{branch}' does not have any commits yet"
        )


@dataclass
class GitCommit:
    """A git commit with metadata."""
    hash: str
    date: Optional[datetime]
    author: str
    email: str
    subject: str
    body: str = ""


class GitClient:
    """
    Abstraction over git commands for a single working tree.

    Example:
        client = GitClient("/path/to/repo")
        if client.is_git_repo():
            for commit in client.log():
                print(commit.hash, commit.subject)
    """

    def __init__(
        self,
        repo_dir: str,
        timeout: int = 60,
        env: Optional[Dict[str, str]] = None
    ):
        """
        Initialize GitClient.

        Args:
            repo_dir: Working tree the commands run in
            timeout: Command timeout in seconds (default: 60)
            env: Extra environment variables (e.g. GNUPGHOME)
        """
        self.repo_dir = str(repo_dir)
        self.timeout = timeout
        self.env = dict(env or {})

    def _run(
        self,
        args: Sequence[str],
        check: bool = True,
        input: Optional[str] = None
    ) -> subprocess.CompletedProcess:
        """
        Run a git command.

        Args:
            args: Arguments after "git"
            check: Raise GitCommandError on non-zero exit
            input: Text fed to stdin

        Returns:
            The completed process (stdout/stderr as text)
        """
        cmd = ['git'] + list(args)
        env = {**os.environ, **self.env} if self.env else None
        logger.debug(f"Running: {' '.join(cmd)} (cwd={self.repo_dir})")

        try:
            result = subprocess.run(
                cmd,
                cwd=self.repo_dir,
                capture_output=True,
                text=True,
                input=input,
                timeout=self.timeout,
                env=env,
            )
        except subprocess.TimeoutExpired as e:
            logger.warning(f"Git command timed out: {' '.join(cmd)}")
            raise GitCommandError(args, -1, f"timed out after {self.timeout}s") from e
        except FileNotFoundError as e:
            # Missing git binary or missing working directory
            raise GitCommandError(args, -1, str(e)) from e

        if check and result.returncode != 0:
            raise GitCommandError(args, result.returncode, result.stderr)

        return result

    def is_git_repo(self) -> bool:
        """Check if the directory is inside a git working tree."""
        if not os.path.isdir(self.repo_dir):
            return False
        try:
            result = self._run(['rev-parse', '--is-inside-work-tree'], check=False)
        except GitCommandError:
            return False
        return result.returncode == 0 and result.stdout.strip() == 'true'

    def current_branch(self) -> str:
        """Get current branch name (works before the first commit)."""
        result = self._run(['symbolic-ref', '--short', 'HEAD'])
        return result.stdout.strip()

    def has_commits(self) -> bool:
        """Check whether HEAD points to a commit."""
        result = self._run(['rev-parse', '--verify', '--quiet', 'HEAD'], check=False)
        return result.returncode == 0

    def log(self) -> List[GitCommit]:
        """
        Get the full commit log of the current branch, most recent first.

        Raises:
            EmptyRepositoryError: The branch has no commits yet
            GitCommandError: Any other git failure
        """
        if not self.has_commits():
            raise EmptyRepositoryError(self.current_branch())

        result = self._run(['log', '-z', f'--format={_LOG_FORMAT}'])

        commits = []
        for record in result.stdout.split('\x00'):
            if not record.strip():
                continue

            parts = record.split(_FIELD_SEP, 5)
            if len(parts) < 6:
                logger.debug(f"Skipping malformed log record: {record[:80]!r}")
                continue

            commit_hash, date_str, author, email, subject, body = parts

            try:
                date: Optional[datetime] = datetime.fromisoformat(date_str.strip())
            except ValueError:
                date = None

            commits.append(GitCommit(
                hash=commit_hash.strip(),
                date=date,
                author=author,
                email=email,
                subject=subject,
                body=body,
            ))

        return commits

    def commit(self, subject: str, body: str, args: Sequence[str] = ()) -> str:
        """
        Create a commit with the given subject and body.

        The message is passed on stdin with --cleanup=verbatim so the body
        is stored exactly as given.

        Args:
            subject: First line of the commit message
            body: Commit body
            args: Extra `git commit` arguments (author, signing, --allow-empty)

        Returns:
            Full hash of the new commit
        """
        message = f"{subject}\n\n{body}" if body else subject
        self._run(
            ['commit', '--cleanup=verbatim', '--file=-'] + list(args),
            input=message,
        )
        return self.head()

    def head(self) -> str:
        """Get the full hash of HEAD."""
        return self._run(['rev-parse', 'HEAD']).stdout.strip()

    def remotes(self) -> List[str]:
        """List configured remote names."""
        output = self._run(['remote']).stdout
        return [line.strip() for line in output.splitlines() if line.strip()]

    def has_remote(self, remote: Optional[str] = None) -> bool:
        """Check if any remote (or the named one) is configured."""
        remotes = self.remotes()
        if remote:
            return remote in remotes
        return bool(remotes)

    def push(self, remote: str = "origin", branch: Optional[str] = None) -> str:
        """
        Push the current branch to the remote.

        Args:
            remote: Remote name
            branch: Remote branch (default: same name as the current branch)

        Returns:
            git's push report

        Raises:
            PublishRejectedError: The remote did not accept the update
        """
        refspec = f"HEAD:refs/heads/{branch}" if branch else "HEAD"
        try:
            result = self._run(['push', remote, refspec])
        except GitCommandError as e:
            raise PublishRejectedError(
                f"Push to {remote} was rejected: {e.stderr or e}",
                stderr=e.stderr,
            ) from e
        return result.stdout.strip()

    def show_signature(self, rev: str = "HEAD") -> str:
        """Get `git log --show-signature` output for one commit."""
        result = self._run(['log', '--show-signature', '-1', rev])
        return result.stdout + result.stderr
