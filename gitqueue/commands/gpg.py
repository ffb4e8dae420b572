"""
GnuPG commands for gitqueue.

Prepare a signing key for non-interactive use in CI before running
`gitqueue create-job --signing-key ...`.
"""

import os

import click

from ..cli_utils import standard_command, add_common_options, build_config
from ..infra.gpg_client import GpgClient


@click.group(name='gpg')
def gpg_cmd():
    """Signing key setup for signed queue commits."""
    pass


@gpg_cmd.command('import-key')
@click.option('--key', envvar='GITQUEUE_GPG_PRIVATE_KEY',
              help='ASCII-armored or base64 encoded private key (or GITQUEUE_GPG_PRIVATE_KEY)')
@click.option('--key-file', type=click.File('r'), help='Read the private key from a file')
@click.option('--passphrase', envvar='GITQUEUE_GPG_PASSPHRASE',
              help='Passphrase to cache in gpg-agent (or GITQUEUE_GPG_PASSPHRASE)')
@click.option('--fingerprint', help='Fingerprint whose keygrips get the passphrase')
@add_common_options('gnupg_home', 'verbose', 'quiet', 'format')
@standard_command
def import_key_cmd(key, key_file, passphrase, fingerprint, gnupg_home, verbose, quiet, format, progress):
    """Import a signing key and cache its passphrase.

    Writes a gpg-agent.conf allowing preset passphrases, imports the key
    and presets the passphrase on every keygrip of FINGERPRINT.

    Examples:

    \b
        gitqueue gpg import-key --key-file private.asc \\
            --passphrase "$PASSPHRASE" --fingerprint BD98B3F42545FF93EFF55F7F3F39AA1432CA6AD7
    """
    if key_file is not None:
        key = key_file.read()
    if not key:
        raise click.UsageError("A key is required (--key, --key-file or GITQUEUE_GPG_PRIVATE_KEY)")
    if passphrase and not fingerprint:
        raise click.UsageError("--fingerprint is required to preset a passphrase")

    config = build_config(gnupg_home=gnupg_home, verbose=verbose)
    home = config['gpg'].get('home') or None
    gpg = GpgClient(os.path.expanduser(home) if home else None)

    progress(f"Using GnuPG home {gpg.home_dir}")
    gpg.overwrite_agent_config(config['gpg']['agent_config'])

    progress("Importing key...")
    imported = gpg.import_key(key)

    result = {
        'gnupg_home': gpg.home_dir,
        'imported': imported,
    }

    if fingerprint:
        keygrips = gpg.list_secret_keygrips(fingerprint)
        result['fingerprint'] = fingerprint
        result['keygrips'] = keygrips

        if passphrase:
            for keygrip in keygrips:
                progress(f"Presetting passphrase for keygrip {keygrip}")
                gpg.preset_passphrase(keygrip, passphrase)

    progress.success("Key imported")
    return result
