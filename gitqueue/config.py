#!/usr/bin/env python3

import os
import json
import tomllib
from pathlib import Path

import logging
import sys

import yaml

from .exit_codes import ConfigError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr) # Default to stderr
    ]
)
logger = logging.getLogger("gitqueue")

ENV_PREFIX = "GITQUEUE_"
CONFIG_FILENAMES = ['config.json', 'config.toml', 'config.yaml', 'config.yml']


def get_config_path():
    """Get the path to the configuration file.

    $GITQUEUE_CONFIG wins when it names an existing file, then the first
    non-empty config.{json,toml,yaml,yml} in ~/.gitqueue. Falls back to
    ~/.gitqueue/config.json, which is where `config generate` writes.
    """
    env_path = os.environ.get('GITQUEUE_CONFIG')
    if env_path and Path(env_path).exists():
        return Path(env_path)

    config_dir = Path.home() / '.gitqueue'
    for filename in CONFIG_FILENAMES:
        candidate = config_dir / filename
        if candidate.exists() and candidate.stat().st_size > 0:
            return candidate

    return config_dir / 'config.json'


def get_default_config():
    """Get default configuration."""
    return {
        "git": {
            "repo_dir": "",       # Empty means the current working directory
            "remote": "origin",
            "timeout_seconds": 60,
        },
        "commit": {
            "author": "",         # "Name <email>"; empty defers to git config
            "signing_key": "",    # Key id / fingerprint passed to --gpg-sign
            "no_gpg_sign": False,
        },
        "gpg": {
            "home": "",           # Empty means $GNUPGHOME or ~/.gnupg
            "agent_config": (
                "default-cache-ttl 7200\n"
                "max-cache-ttl 31536000\n"
                "allow-preset-passphrase"
            ),
        },
        "logging": {
            "level": "WARNING",
            "format": "%(levelname)s: %(message)s",
        },
    }


def _read_config_file(config_path: Path) -> dict:
    suffix = config_path.suffix.lower()
    if suffix == '.toml':
        with open(config_path, 'rb') as f:
            return tomllib.load(f)
    if suffix in ('.yaml', '.yml'):
        with open(config_path, 'r') as f:
            return yaml.safe_load(f) or {}
    with open(config_path, 'r') as f:
        return json.load(f)


def load_config():
    """Load configuration: defaults, then the config file, then the environment.

    Raises:
        ConfigError: If the config file exists but cannot be parsed
    """
    config = get_default_config()
    config_path = get_config_path()

    if config_path.exists():
        try:
            file_config = _read_config_file(config_path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigError(f"Error loading config from {config_path}: {e}") from e

        if not isinstance(file_config, dict):
            raise ConfigError(f"Config file {config_path} must contain a mapping")

        logger.debug(f"Loaded configuration from {config_path}")
        config = merge_configs(config, file_config)

    return apply_env_overrides(config)


def save_config(config):
    """Write configuration in the format of the active config path.

    Returns:
        Path the configuration was written to
    """
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    suffix = config_path.suffix.lower()

    with open(config_path, 'w') as f:
        if suffix == '.toml':
            # tomllib can only read
            import toml
            toml.dump(config, f)
        elif suffix in ('.yaml', '.yml'):
            yaml.safe_dump(config, f, default_flow_style=False)
        else:
            json.dump(config, f, indent=2)

    logger.info(f"Configuration saved to {config_path}")
    return config_path


def merge_configs(base_config, override_config):
    """
    Recursively merge override_config into a copy of base_config.

    Nested dicts are merged key by key; any other value replaces the base.
    """
    merged = dict(base_config)
    for key, value in override_config.items():
        base_value = merged.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            merged[key] = merge_configs(base_value, value)
        else:
            merged[key] = value
    return merged


def _coerce_env_value(value: str, current):
    """Convert an environment string to the type of the value it replaces.

    Only bool and int settings are converted; string settings such as an
    all-digit key id stay strings.
    """
    lowered = value.lower()
    if isinstance(current, bool):
        if lowered in ('true', 'yes', 'on', '1'):
            return True
        if lowered in ('false', 'no', 'off', '0', ''):
            return False
        return value
    if isinstance(current, int) and value.isdigit():
        return int(value)
    return value


def _match_config_key(section: dict, parts: list):
    """Find the longest key of section spelled by the leading parts.

    Keys may contain underscores themselves (no_gpg_sign), so
    ['no', 'gpg', 'sign'] must match one key rather than three.
    """
    best = None
    for key in section:
        key_parts = key.split('_')
        if parts[:len(key_parts)] == key_parts:
            if best is None or len(key_parts) > len(best.split('_')):
                best = key
    return best


def apply_env_overrides(config):
    """
    Apply GITQUEUE_SECTION_KEY environment variables to configuration.

    For example GITQUEUE_COMMIT_NO_GPG_SIGN=true sets commit.no_gpg_sign.
    Variables naming no existing key are ignored, so command-level
    variables such as GITQUEUE_ACTION never leak into the config.
    """
    for env_key, value in os.environ.items():
        if not env_key.startswith(ENV_PREFIX) or env_key == 'GITQUEUE_CONFIG':
            continue

        parts = env_key[len(ENV_PREFIX):].lower().split('_')
        section = config
        while parts:
            key = _match_config_key(section, parts)
            if key is None:
                break
            parts = parts[len(key.split('_')):]
            if not parts:
                section[key] = _coerce_env_value(value, section[key])
            elif isinstance(section[key], dict):
                section = section[key]
            else:
                break

    return config


def configure_logging(config=None, verbose: bool = False):
    """Apply the configured log level to the gitqueue logger tree."""
    config = config or get_default_config()
    log_config = config.get("logging", {})
    level_name = "DEBUG" if verbose else str(log_config.get("level", "WARNING")).upper()
    level = getattr(logging, level_name, logging.WARNING)

    logger.setLevel(level)
    fmt = log_config.get("format")
    if fmt:
        for handler in logging.getLogger().handlers:
            handler.setFormatter(logging.Formatter(fmt))
