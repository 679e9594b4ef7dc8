"""Configuration loading for the JIT asset daemon.

This module handles loading configuration from YAML files and environment
variables.

Contract:
- Inputs: Config file paths, environment variables
- Outputs: JitSettings objects
- Side Effects: Creates default config file if missing
"""

import logging
import os
from pathlib import Path

import yaml

from ..storage.paths import get_config_dir
from .settings import JitSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = """# jitd configuration
# Every key can be overridden with a JIT_ prefixed environment variable

# Server settings
host: "127.0.0.1"
port: 8430
log_level: "info"
workers: 1

# Where sources are read from and where compiled artifacts are cached
# source_dir: "."
# cache_dir: "~/.jit/cache"
mount_path: "/assets"

# Cache behaviour
# hash_drift: maximum modification time drift (ms) accepted as a cache hit
hash_drift: 250
immutable: false
force: false
minify: false
serve_non_handled: true
"""


def get_config_path() -> Path:
    """Get path to config file.

    Returns:
        Path to jit.yaml in config directory
    """
    return get_config_dir() / "jit.yaml"


def create_default_config(config_path: Path | None = None) -> None:
    """Create default config file if it doesn't exist.

    Args:
        config_path: Optional config file path (default: jit.yaml in config dir)
    """
    config_path = config_path or get_config_path()

    if config_path.exists():
        logger.debug(f"Config file already exists: {config_path}")
        return

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(DEFAULT_CONFIG, encoding="utf-8")
    logger.info(f"Created default config: {config_path}")


def load_config(config_path: Path | None = None) -> JitSettings:
    """Load configuration from YAML and environment.

    Precedence is defaults < YAML < environment variables (JIT_ prefix, e.g.
    JIT_PORT).

    Args:
        config_path: Optional config file path (default: jit.yaml in config dir)

    Returns:
        Validated settings

    Example:
        >>> settings = load_config()
        >>> assert settings.hash_drift >= 0
    """
    if config_path is None:
        config_path = get_config_path()

    if not config_path.exists():
        create_default_config(config_path)

    yaml_settings = {}
    try:
        with open(config_path, encoding="utf-8") as f:
            yaml_settings = yaml.safe_load(f) or {}
        logger.debug(f"Loaded config from {config_path}")
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to load config from {config_path}: {e}")
        logger.info("Using default settings and environment variables")

    # Only pass YAML values that don't have corresponding env vars
    filtered_yaml = {}
    for key, value in yaml_settings.items():
        env_key = f"JIT_{key.upper()}"
        if env_key not in os.environ:
            filtered_yaml[key] = value

    settings = JitSettings(**filtered_yaml)

    logger.info(
        f"JIT configuration loaded: source_dir={settings.source_dir}, "
        f"mount_path={settings.mount_path}, hash_drift={settings.hash_drift}ms"
    )

    return settings
