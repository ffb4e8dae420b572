"""
Commit option domain objects for gitqueue.

CommitOptions describes how the next queue commit is made: who the
author is and how it is signed. It is built fresh for every operation
and translated into git flags in exactly one place, to_git_args().
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

_EMAIL_ADDRESS_RE = re.compile(r'^\s*(?P<name>[^<>]*?)\s*<(?P<email>[^<>\s]+@[^<>\s]+)>\s*$')


@dataclass(frozen=True)
class CommitAuthor:
    """Commit author identity. An empty author defers to git config."""
    name: str = ""
    email: str = ""

    @classmethod
    def from_email_address(cls, address: str) -> 'CommitAuthor':
        """
        Parse an RFC 5322 style address such as "A committer <committer@example.com>".

        Raises:
            ValueError: If the address has no "<email>" part or no name
        """
        match = _EMAIL_ADDRESS_RE.match(address or "")
        if not match or not match.group('name'):
            raise ValueError(f"Invalid commit author: {address!r}. Expected 'Name <email>'")
        return cls(name=match.group('name'), email=match.group('email'))

    def is_empty(self) -> bool:
        return not self.name and not self.email

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"


@dataclass(frozen=True)
class SigningKeyId:
    """GPG key id or fingerprint handed to git --gpg-sign."""
    key_id: str = ""

    def is_empty(self) -> bool:
        return not self.key_id

    def __str__(self) -> str:
        return self.key_id


@dataclass(frozen=True)
class CommitOptions:
    """
    How to materialize the next queue commit.

    Attributes:
        author: Author identity, empty for the git default
        signing_key: Key to sign with, empty for no explicit key
        no_gpg_sign: Suppress signing even if commit.gpgsign is configured
    """
    author: CommitAuthor = field(default_factory=CommitAuthor)
    signing_key: SigningKeyId = field(default_factory=SigningKeyId)
    no_gpg_sign: bool = False

    def __post_init__(self):
        if not self.author.is_empty() and (not self.author.name or not self.author.email):
            raise ValueError("Commit author needs both a name and an email")

    @classmethod
    def from_values(
        cls,
        author: Optional[str] = None,
        signing_key: Optional[str] = None,
        no_gpg_sign: bool = False
    ) -> 'CommitOptions':
        """Build options from plain values as found in config or CLI input.

        YAML and TOML files may hand over an all-digit key id as a number,
        so values are read as text.
        """
        author_text = str(author).strip() if author is not None else ""
        key_text = str(signing_key).strip() if signing_key is not None else ""
        return cls(
            author=CommitAuthor.from_email_address(author_text) if author_text else CommitAuthor(),
            signing_key=SigningKeyId(key_text),
            no_gpg_sign=bool(no_gpg_sign),
        )

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'CommitOptions':
        """Build options from the "commit" section of the configuration."""
        commit_config = config.get('commit', {})
        return cls.from_values(
            author=commit_config.get('author'),
            signing_key=commit_config.get('signing_key'),
            no_gpg_sign=commit_config.get('no_gpg_sign', False),
        )

    def to_git_args(self) -> List[str]:
        """
        Translate the options into `git commit` arguments.

        Exactly one signing directive is emitted: --gpg-sign when a key is
        given, --no-gpg-sign when signing is suppressed, nothing otherwise.
        """
        args = ['--allow-empty']
        if not self.author.is_empty():
            args.append(f'--author={self.author}')
        if not self.signing_key.is_empty():
            args.append(f'--gpg-sign={self.signing_key}')
        elif self.no_gpg_sign:
            args.append('--no-gpg-sign')
        return args

    def __str__(self) -> str:
        return ' '.join(self.to_git_args())
