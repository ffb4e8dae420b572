"""
GnuPG client infrastructure for gitqueue.

Wraps the `gpg` and `gpg-connect-agent` binaries so a CI job can import a
signing key, cache its passphrase in the agent and then sign queue
commits non-interactively. None of this touches queue semantics; it only
produces a usable key id for CommitOptions.
"""

import base64
import binascii
import os
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence
import logging

from ..exit_codes import GpgError

logger = logging.getLogger(__name__)

DEFAULT_AGENT_CONFIG = """default-cache-ttl 7200
max-cache-ttl 31536000
allow-preset-passphrase"""

ARMOR_HEADER = '-----BEGIN PGP'


def get_gnupg_home() -> str:
    """Get the GnuPG home directory ($GNUPGHOME or ~/.gnupg)."""
    home = os.environ.get('GNUPGHOME')
    if home:
        return home
    return str(Path.home() / '.gnupg')


def is_armored(key: str) -> bool:
    """Check whether key material is ASCII-armored."""
    return key.lstrip().startswith(ARMOR_HEADER)


def decode_key(key: str) -> str:
    """
    Return armored key text, decoding base64 input if needed.

    Raises:
        GpgError: If the key is neither armored nor valid base64
    """
    if is_armored(key):
        return key
    try:
        return base64.b64decode(key, validate=False).decode('utf-8')
    except (binascii.Error, UnicodeDecodeError) as e:
        raise GpgError(f"Key is neither ASCII-armored nor base64 encoded: {e}") from e


class GpgClient:
    """
    Abstraction over gpg commands for one GnuPG home directory.

    Example:
        gpg = GpgClient("/tmp/gnupg")
        gpg.import_key(armored_key)
        for keygrip in gpg.list_secret_keygrips(fingerprint):
            gpg.preset_passphrase(keygrip, "secret")
    """

    def __init__(self, home_dir: Optional[str] = None, timeout: int = 30):
        self.home_dir = home_dir or get_gnupg_home()
        self.timeout = timeout

    def _run(self, cmd: Sequence[str]) -> subprocess.CompletedProcess:
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            return subprocess.run(
                list(cmd),
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise GpgError(f"{cmd[0]} timed out after {self.timeout}s") from e
        except FileNotFoundError as e:
            raise GpgError(f"{cmd[0]} not found: {e}") from e

    def _connect_agent(self, command: str) -> str:
        """
        Send one command to gpg-agent.

        Raises:
            GpgError: On non-zero exit with stderr, or an "ERR" response line
        """
        result = self._run([
            'gpg-connect-agent', '--homedir', self.home_dir, command, '/bye'
        ])
        if result.returncode != 0 and result.stderr:
            raise GpgError(result.stderr.strip())

        stdout = result.stdout.replace('\r', '').strip()
        for line in stdout.split('\n'):
            if line.startswith('ERR'):
                raise GpgError(line)
        return stdout

    def import_key(self, key: str) -> str:
        """
        Import a secret key into the keyring.

        Args:
            key: ASCII-armored key, or the same base64 encoded

        Returns:
            gpg's report of the imported identity
        """
        key_text = decode_key(key)

        key_dir = tempfile.mkdtemp(prefix='gitqueue-import-gpg-')
        key_path = os.path.join(key_dir, 'key.pgp')
        fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        try:
            with os.fdopen(fd, 'w') as f:
                f.write(key_text)

            result = self._run([
                'gpg', '--homedir', self.home_dir,
                '--import', '--batch', '--yes', key_path
            ])
        finally:
            os.unlink(key_path)
            os.rmdir(key_dir)

        if result.returncode != 0 and result.stderr:
            raise GpgError(result.stderr.strip())

        # gpg reports imports on stderr
        if result.stderr:
            return result.stderr.strip()
        return result.stdout.strip()

    def list_secret_keygrips(self, fingerprint: str) -> List[str]:
        """Get the keygrips of a secret key and its subkeys."""
        result = self._run([
            'gpg', '--homedir', self.home_dir, '--batch', '--with-colons',
            '--with-keygrip', '--list-secret-keys', fingerprint
        ])

        keygrips = []
        for line in result.stdout.replace('\r', '').strip().split('\n'):
            if line.startswith('grp'):
                keygrips.append(line.replace('grp', '').replace(':', '').strip())
        return keygrips

    def preset_passphrase(self, keygrip: str, passphrase: str) -> str:
        """
        Cache a passphrase in gpg-agent for a keygrip.

        The agent must run with allow-preset-passphrase (see
        overwrite_agent_config).

        Returns:
            The agent's KEYINFO line for the keygrip
        """
        hex_passphrase = passphrase.encode('utf-8').hex().upper()
        self._connect_agent(f"PRESET_PASSPHRASE {keygrip} -1 {hex_passphrase}")
        return self._connect_agent(f"KEYINFO {keygrip}")

    def overwrite_agent_config(self, config: str = DEFAULT_AGENT_CONFIG) -> None:
        """Replace gpg-agent.conf and reload the agent."""
        home = Path(self.home_dir)
        home.mkdir(mode=0o700, parents=True, exist_ok=True)
        (home / 'gpg-agent.conf').write_text(config)
        self._connect_agent('RELOADAGENT')
