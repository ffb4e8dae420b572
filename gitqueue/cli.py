#!/usr/bin/env python3

import click

from gitqueue.commands.job import (
    create_job_cmd,
    next_job_cmd,
    mark_job_as_done_cmd,
    run_cmd,
    log_cmd,
)
from gitqueue.commands.gpg import gpg_cmd
from gitqueue.commands.config import config_cmd


@click.group()
@click.version_option(package_name='gitqueue')
def cli():
    """gitqueue - A single-slot job queue stored in git commits.

    Producers and consumers that share nothing but a git remote coordinate
    through commits: creating a job claims the queue, marking it as done
    releases it. The remote accepting or rejecting the push decides races.
    """
    pass


# Queue operations
cli.add_command(create_job_cmd)
cli.add_command(next_job_cmd)
cli.add_command(mark_job_as_done_cmd)
cli.add_command(run_cmd)
cli.add_command(log_cmd)

# Command groups
cli.add_command(gpg_cmd)
cli.add_command(config_cmd)


def main():
    cli()

if __name__ == "__main__":
    main()
