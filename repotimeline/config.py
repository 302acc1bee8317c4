#!/usr/bin/env python3

import os
import json
import tomllib
from pathlib import Path

import logging
import sys

from .exit_codes import ConfigError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr) # Default to stderr
    ]
)
logger = logging.getLogger("repotimeline")

CONFIG_FILENAMES = ['config.json', 'config.toml', 'config.yaml', 'config.yml']


def get_config_path():
    """Get the path to the configuration file.

    Checks in order:
    1. REPOTIMELINE_CONFIG environment variable
    2. ~/.repotimeline/ directory
    """
    if 'REPOTIMELINE_CONFIG' in os.environ:
        path = Path(os.environ['REPOTIMELINE_CONFIG'])
        if path.exists():
            return path

    config_dir = Path.home() / '.repotimeline'
    for filename in CONFIG_FILENAMES:
        path = config_dir / filename
        if path.exists() and path.stat().st_size > 10:  # Not empty/trivial
            return path

    # If no file exists, return default path for saving
    return config_dir / 'config.json'


def load_config(config_path=None):
    """Load configuration from file, merged over defaults and env overrides."""
    config_path = Path(config_path) if config_path else get_config_path()

    config = get_default_config()

    if config_path.exists():
        try:
            file_config = _read_config_file(config_path)
        except (OSError, ValueError) as e:
            raise ConfigError(f"Error loading config from {config_path}: {e}") from e
        if file_config:
            if not isinstance(file_config, dict):
                raise ConfigError(f"Config file {config_path} must contain a mapping")
            config = merge_configs(config, file_config)

    config = apply_env_overrides(config)

    return config


def _read_config_file(config_path: Path):
    suffix = config_path.suffix.lower()
    if suffix == '.toml':
        with open(config_path, 'rb') as f:
            return tomllib.load(f)
    if suffix in ('.yaml', '.yml'):
        import yaml
        with open(config_path, 'r') as f:
            try:
                return yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(str(e)) from e
    # Default to JSON format
    with open(config_path, 'r') as f:
        return json.load(f)


def save_config(config, config_path=None):
    """Save configuration as JSON or YAML, chosen by file suffix."""
    config_path = Path(config_path) if config_path else get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    if config_path.suffix.lower() in ['.yaml', '.yml']:
        import yaml
        with open(config_path, 'w') as f:
            yaml.safe_dump(config, f, default_flow_style=False)
    else:
        with open(config_path, 'w') as f:
            json.dump(config, f, indent=2)

    logger.info(f"Configuration saved to {config_path}")
    return config_path


def get_default_config():
    """Get default configuration."""
    return {
        "general": {
            "max_concurrent_operations": 4,
        },
        "database": {
            "path": "~/.repotimeline/timeline.db",
        },
        "github": {
            "token": "",
            "api_url": "https://api.github.com",
            "use_gh_cli": True,
            "branch_page_size": 100,
            "commit_window": 50,
            "timeout_seconds": 30,
            "rate_limit": {
                "max_retries": 3,
                "max_delay_seconds": 60,
            }
        },
        "layout": {
            "time_spacing": 150,
            "lane_height": 120,
            "origin_x": 100,
            "origin_y": 50,
            "edge_padding": 20,
            "corner_radius": 15,
            "default_branch": "main",
            "palette": ["#00f3ff", "#ff0055", "#9d00ff", "#00ff41", "#ffff00", "#ff8000"],
        },
        "logging": {
            "level": "INFO",
            "format": "%(levelname)s: %(message)s"
        },
    }


def configure_logging(config) -> None:
    """Apply the logging section of the config to the repotimeline logger."""
    section = config.get('logging', {})
    level_name = str(section.get('level', 'INFO')).upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        raise ConfigError(f"Unknown logging level: {section.get('level')!r}")

    logger.setLevel(level)
    fmt = section.get('format')
    if fmt:
        for handler in logging.getLogger().handlers:
            handler.setFormatter(logging.Formatter(fmt))


def merge_configs(base_config, override_config):
    """
    Recursively merge two configuration dictionaries.

    Args:
        base_config (dict): Base configuration
        override_config (dict): Configuration to merge/override with

    Returns:
        dict: Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


def apply_env_overrides(config):
    """
    Apply environment variable overrides to configuration.
    Environment variables follow the pattern: REPOTIMELINE_SECTION_SUBSECTION_KEY
    For example: REPOTIMELINE_GITHUB_COMMIT_WINDOW=100

    REPOTIMELINE_CONFIG and REPOTIMELINE_DB are handled elsewhere and
    never match a config key.
    """
    env_prefix = "REPOTIMELINE_"

    for env_key, value in os.environ.items():
        if not env_key.startswith(env_prefix):
            continue

        key_parts = env_key[len(env_prefix):].lower().split('_')

        if value.lower() in ('true', 'yes', 'on'):
            typed_value = True
        elif value.lower() in ('false', 'no', 'off'):
            typed_value = False
        elif value.isdigit():
            typed_value = int(value)
        else:
            typed_value = value

        current_level = config
        i = 0
        while i < len(key_parts):
            # Find the longest key in current_level that is a prefix of the remaining key_parts
            best_match_len = 0
            matched_key = None

            for config_key in current_level.keys():
                config_key_parts = config_key.split('_')
                if key_parts[i : i + len(config_key_parts)] == config_key_parts:
                    if len(config_key_parts) > best_match_len:
                        best_match_len = len(config_key_parts)
                        matched_key = config_key

            if not matched_key:
                break

            if i + best_match_len == len(key_parts):
                if not isinstance(current_level[matched_key], dict):
                    current_level[matched_key] = typed_value
                break

            if isinstance(current_level[matched_key], dict):
                current_level = current_level[matched_key]
                i += best_match_len
            else:
                # Path conflict: env var is longer than the config path
                break

    return config


def get_github_token(config) -> str:
    """Resolve the GitHub token: config first, then environment."""
    token = config.get('github', {}).get('token')
    return (
        token
        or os.environ.get('REPOTIMELINE_GITHUB_TOKEN')
        or os.environ.get('GITHUB_TOKEN')
        or ''
    )
