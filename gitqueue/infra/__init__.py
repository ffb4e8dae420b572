"""
Infrastructure layer for gitqueue.

Contains abstractions for external systems:
- GitClient: Git command execution (log, commit, push)
- GpgClient: GnuPG key import and gpg-agent passphrase caching

These provide clean interfaces that can be mocked for testing.
"""

from .git_client import GitClient, GitCommit, GitCommandError, EmptyRepositoryError
from .gpg_client import GpgClient, DEFAULT_AGENT_CONFIG, get_gnupg_home

__all__ = [
    'GitClient',
    'GitCommit',
    'GitCommandError',
    'EmptyRepositoryError',
    'GpgClient',
    'DEFAULT_AGENT_CONFIG',
    'get_gnupg_home',
]
