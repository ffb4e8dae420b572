"""
Common CLI utilities and decorators for consistent command behavior.
"""

import json
import sys
import click
from functools import wraps
from typing import Any, Dict, Generator, Optional
from .config import load_config, merge_configs, configure_logging
from .progress import get_progress
from .exit_codes import (
    SUCCESS, INTERRUPTED,
    get_exit_code_for_exception, CommandError
)
from .format_utils import format_output, get_format_from_env


def standard_command(func):
    """
    Decorator that provides standard CLI behavior:
    - Progress reporting on stderr
    - Clean JSON output on stdout
    - Automatic --quiet/-q handling to suppress data output
    - Consistent error handling with exit codes from exit_codes
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        verbose = kwargs.get('verbose', False)
        quiet = kwargs.get('quiet', False)
        output_format = kwargs.get('format', None) or get_format_from_env('jsonl')

        progress = get_progress(enabled=verbose or None)
        kwargs['progress'] = progress

        try:
            result = func(*args, **kwargs)

            if quiet or result is None:
                pass
            elif isinstance(result, Generator):
                for line in format_output(result, output_format):
                    click.echo(line)
            elif isinstance(result, (list, tuple)):
                for line in format_output(iter(result), output_format):
                    click.echo(line)
            elif isinstance(result, dict):
                for line in format_output(iter([result]), output_format):
                    click.echo(line)
            else:
                click.echo(result)

            sys.exit(SUCCESS)

        except KeyboardInterrupt:
            progress.error("Interrupted by user")
            sys.exit(INTERRUPTED)
        except click.ClickException:
            # Click exceptions already have their exit code
            raise
        except CommandError as e:
            progress.error(str(e))
            if not quiet:
                error_obj = {
                    "error": str(e),
                    "type": type(e).__name__,
                    "exit_code": e.exit_code
                }
                click.echo(json.dumps(error_obj, ensure_ascii=False))
            sys.exit(e.exit_code)
        except Exception as e:
            progress.error(f"Command failed: {e}")
            if not quiet:
                error_obj = {
                    "error": str(e),
                    "type": type(e).__name__
                }
                click.echo(json.dumps(error_obj, ensure_ascii=False))
            sys.exit(get_exit_code_for_exception(e))

    return wrapper


def build_config(
    repo_dir: Optional[str] = None,
    remote: Optional[str] = None,
    author: Optional[str] = None,
    signing_key: Optional[str] = None,
    no_gpg_sign: Optional[bool] = None,
    gnupg_home: Optional[str] = None,
    verbose: bool = False,
) -> Dict[str, Any]:
    """
    Load the configuration and apply command-line overrides.

    Options left at None keep their configured value.
    """
    config = load_config()

    overrides: Dict[str, Dict[str, Any]] = {'git': {}, 'commit': {}, 'gpg': {}}
    if repo_dir:
        overrides['git']['repo_dir'] = repo_dir
    if remote:
        overrides['git']['remote'] = remote
    if author:
        overrides['commit']['author'] = author
    if signing_key:
        overrides['commit']['signing_key'] = signing_key
    if no_gpg_sign:
        overrides['commit']['no_gpg_sign'] = True
    if gnupg_home:
        overrides['gpg']['home'] = gnupg_home

    config = merge_configs(config, overrides)
    configure_logging(config, verbose=verbose)
    return config


# Standard options that many commands share
common_options = {
    'verbose': click.option('-v', '--verbose', is_flag=True,
                           help='Show progress and debug logging'),
    'quiet': click.option('-q', '--quiet', is_flag=True,
                         help='Suppress data output, show only progress'),
    'format': click.option('-f', '--format',
                         type=click.Choice(['json', 'jsonl', 'yaml']),
                         help='Output format (default: jsonl, or from GITQUEUE_FORMAT env)'),
    'repo_dir': click.option('--repo-dir', 'repo_dir', type=click.Path(file_okay=False),
                           envvar='GITQUEUE_REPO_DIR',
                           help='Git repository holding the queue (default: current directory)'),
    'remote': click.option('--remote', help='Remote to publish queue commits to (default: origin)'),
    'author': click.option('--author', help='Commit author as "Name <email>"'),
    'signing_key': click.option('--signing-key', help='GPG key id used to sign the commit'),
    'no_gpg_sign': click.option('--no-gpg-sign', is_flag=True,
                              help='Do not sign the commit even if git is configured to'),
    'gnupg_home': click.option('--gnupg-home', type=click.Path(file_okay=False),
                             help='GnuPG home directory (default: $GNUPGHOME or ~/.gnupg)'),
}


def add_common_options(*option_names):
    """
    Decorator to add common options to a command.

    Example:
        @add_common_options('verbose', 'repo_dir')
        def my_command(verbose, repo_dir):
            ...
    """
    def decorator(func):
        for name in reversed(option_names):
            if name in common_options:
                func = common_options[name](func)
        return func
    return decorator

