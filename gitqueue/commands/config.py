"""
Configuration commands for gitqueue.
"""

import json

import click

from ..config import load_config, save_config, get_config_path, get_default_config


@click.group("config")
def config_cmd():
    """Inspect or create the gitqueue configuration file."""
    pass


@config_cmd.command("generate")
@click.option("--force", is_flag=True, help="Overwrite an existing configuration file")
def generate_config(force):
    """Write the default configuration (remote, commit author, signing, gpg-agent)."""
    config_path = get_config_path()
    if config_path.exists() and not force:
        click.echo(f"{config_path} already exists, use --force to replace it", err=True)
        return

    written = save_config(get_default_config())
    click.echo(json.dumps({"config_path": str(written)}))


@config_cmd.command("show")
@click.option("--pretty", is_flag=True, help="Indented JSON instead of a single line")
@click.option("--path", "show_path", is_flag=True, help="Only print which config file is used")
def show_config(pretty, show_path):
    """Show the effective configuration.

    Defaults, the config file and GITQUEUE_* environment overrides are
    merged before printing. CLI options of the job commands are not.
    """
    if show_path:
        click.echo(json.dumps({"config_path": str(get_config_path())}))
        return

    config = load_config()
    click.echo(json.dumps(config, indent=2 if pretty else None, ensure_ascii=False))
