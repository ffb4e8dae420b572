"""
Job commands for gitqueue.

Thin CLI layer over QueueService:
- create-job        claim the queue slot with a payload
- next-job          show the pending job, if any
- mark-job-as-done  release the slot
- run               the same three operations behind one --action selector,
                    for callers (CI steps) that pass the operation as data
- log               show the queue's message history

Each command prints one JSON object on stdout. When GITHUB_OUTPUT is set,
the job_* values are also written as step outputs.
"""

import sys
from typing import Any, Dict, Optional

import click

from ..cli_utils import standard_command, add_common_options, build_config
from ..domain.commit_options import CommitOptions
from ..format_utils import write_github_outputs
from ..render import render_queue_log
from ..services.queue_service import QueueService

ACTION_CREATE_JOB = 'create-job'
ACTION_NEXT_JOB = 'next-job'
ACTION_MARK_JOB_AS_DONE = 'mark-job-as-done'
ACTIONS = (ACTION_CREATE_JOB, ACTION_NEXT_JOB, ACTION_MARK_JOB_AS_DONE)

# Outputs published to GitHub Actions, by result key
GITHUB_OUTPUT_KEYS = ('job_created', 'job_commit', 'job_found', 'job_payload')

write_options = ('repo_dir', 'remote', 'author', 'signing_key', 'no_gpg_sign',
                 'gnupg_home', 'verbose', 'quiet', 'format')
read_options = ('repo_dir', 'verbose', 'quiet', 'format')


def _read_payload(payload: Optional[str], payload_file) -> str:
    if payload is not None and payload_file is not None:
        raise click.UsageError("Use either --payload or --payload-file, not both")
    if payload_file is not None:
        return payload_file.read()
    return payload or ""


def _publish(result: Dict[str, Any]) -> Dict[str, Any]:
    outputs = {key: result[key] for key in GITHUB_OUTPUT_KEYS if key in result}
    write_github_outputs(outputs)
    return result


def _service(**options) -> QueueService:
    return QueueService(config=build_config(**options))


def _commit_options(service: QueueService) -> CommitOptions:
    try:
        return service.default_commit_options()
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="'--author'")


def run_action(service: QueueService, action: str, queue_name: str, payload: str, progress) -> Dict[str, Any]:
    """Run one queue action and return its result as a dict."""
    if action == ACTION_CREATE_JOB:
        progress(f"Creating job in queue '{queue_name}'...")
        result = service.create_job(queue_name, payload, _commit_options(service)).to_dict()
        progress.success(f"Job created: {result['job_commit']}")
    elif action == ACTION_NEXT_JOB:
        result = service.get_next_job(queue_name).to_dict()
        if result['job_found']:
            progress(f"Next job: {result['job_commit']}")
        else:
            progress(f"No pending job in queue '{queue_name}'")
    elif action == ACTION_MARK_JOB_AS_DONE:
        progress(f"Marking job as done in queue '{queue_name}'...")
        result = service.mark_job_as_done(queue_name, payload, _commit_options(service)).to_dict()
        progress.success(f"Job marked as done: {result['job_commit']}")
    else:
        raise click.BadParameter(
            f"Invalid action. Actions can only be: {', '.join(ACTIONS)}",
            param_hint="'--action'",
        )
    return _publish(result)


payload_option = click.option('--payload', default=None, help='Job payload (stored as the commit body)')
payload_file_option = click.option('--payload-file', type=click.File('r'), default=None,
                                   help='Read the job payload from a file ("-" for stdin)')


@click.command(name=ACTION_CREATE_JOB)
@click.argument('queue_name')
@payload_option
@payload_file_option
@add_common_options(*write_options)
@standard_command
def create_job_cmd(queue_name, payload, payload_file, repo_dir, remote, author,
                   signing_key, no_gpg_sign, gnupg_home, verbose, quiet, format, progress):
    """Create a new job in QUEUE_NAME.

    Fails if the queue already has a pending job. The commit is pushed to
    the remote when one is configured; a rejected push fails the command.

    Examples:

    \b
        gitqueue create-job deploy --payload '{"env": "prod"}'
        gitqueue create-job deploy --payload-file job.json --no-gpg-sign
    """
    service = _service(repo_dir=repo_dir, remote=remote, author=author, signing_key=signing_key,
                       no_gpg_sign=no_gpg_sign, gnupg_home=gnupg_home, verbose=verbose)
    return run_action(service, ACTION_CREATE_JOB, queue_name,
                      _read_payload(payload, payload_file), progress)


@click.command(name=ACTION_NEXT_JOB)
@click.argument('queue_name')
@add_common_options(*read_options)
@standard_command
def next_job_cmd(queue_name, repo_dir, verbose, quiet, format, progress):
    """Show the pending job of QUEUE_NAME.

    Prints {"job_found": false} when the queue is empty or its last job
    is done.
    """
    service = _service(repo_dir=repo_dir, verbose=verbose)
    return run_action(service, ACTION_NEXT_JOB, queue_name, "", progress)


@click.command(name=ACTION_MARK_JOB_AS_DONE)
@click.argument('queue_name')
@payload_option
@payload_file_option
@add_common_options(*write_options)
@standard_command
def mark_job_as_done_cmd(queue_name, payload, payload_file, repo_dir, remote, author,
                         signing_key, no_gpg_sign, gnupg_home, verbose, quiet, format, progress):
    """Mark the pending job of QUEUE_NAME as done.

    Fails if there is no pending job.
    """
    service = _service(repo_dir=repo_dir, remote=remote, author=author, signing_key=signing_key,
                       no_gpg_sign=no_gpg_sign, gnupg_home=gnupg_home, verbose=verbose)
    return run_action(service, ACTION_MARK_JOB_AS_DONE, queue_name,
                      _read_payload(payload, payload_file), progress)


@click.command(name='run')
@click.argument('queue_name')
@click.option('--action', required=True, envvar='GITQUEUE_ACTION',
              help=f"One of: {', '.join(ACTIONS)}")
@payload_option
@payload_file_option
@add_common_options(*write_options)
@standard_command
def run_cmd(queue_name, action, payload, payload_file, repo_dir, remote, author,
            signing_key, no_gpg_sign, gnupg_home, verbose, quiet, format, progress):
    """Run ACTION on QUEUE_NAME.

    Same as the create-job / next-job / mark-job-as-done commands, with the
    operation chosen by --action (or GITQUEUE_ACTION).

    Examples:

    \b
        gitqueue run deploy --action create-job --payload build-42
        GITQUEUE_ACTION=next-job gitqueue run deploy
    """
    if action not in ACTIONS:
        raise click.BadParameter(
            f"Invalid action. Actions can only be: {', '.join(ACTIONS)}",
            param_hint="'--action'",
        )
    service = _service(repo_dir=repo_dir, remote=remote, author=author, signing_key=signing_key,
                       no_gpg_sign=no_gpg_sign, gnupg_home=gnupg_home, verbose=verbose)
    return run_action(service, action, queue_name, _read_payload(payload, payload_file), progress)


@click.command(name='log')
@click.argument('queue_name')
@click.option('--table/--no-table', default=None,
              help='Display as formatted table (auto-detected by default)')
@add_common_options(*read_options)
@standard_command
def log_cmd(queue_name, table, repo_dir, verbose, quiet, format, progress):
    """Show the message history of QUEUE_NAME, most recent first.

    Output format:
    - Interactive terminal: Table format by default
    - Piped/redirected: JSONL, one message per line
    """
    if table is None:
        table = sys.stdout.isatty()

    service = _service(repo_dir=repo_dir, verbose=verbose)
    messages = service.history(queue_name)

    if table and not quiet:
        render_queue_log(queue_name, messages)
        return None

    return [message.to_dict() for message in messages]
