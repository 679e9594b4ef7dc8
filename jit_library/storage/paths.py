"""Path resolution for JIT storage locations.

This module provides path resolution based on the JIT_HOME environment
variable, plus the naming scheme for publish swap files.

Contract:
- Inputs: Environment variables (JIT_HOME, JIT_CONFIG_DIR, JIT_CACHE_DIR)
- Outputs: Resolved Path objects
- Side Effects: Creates directories if they don't exist
"""

import os
import secrets
import time
from pathlib import Path


def get_home_dir() -> Path:
    """Get JIT_HOME from environment.

    Returns:
        Path to root directory (default: .jit)
    """
    root = os.environ.get("JIT_HOME", ".jit")
    return Path(root).resolve()


def get_config_dir() -> Path:
    """Get configuration directory.

    Returns:
        Path to config directory ($JIT_HOME/config)
    """
    config_dir: Path = get_home_dir() / "config"

    env_override: str | None = os.environ.get("JIT_CONFIG_DIR")
    if env_override is not None:
        config_dir = Path(env_override).resolve()

    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_cache_dir() -> Path:
    """Get compiled artifact cache directory.

    Returns:
        Path to cache directory ($JIT_HOME/cache)

    Environment Variables:
        JIT_CACHE_DIR: Override cache directory location
        (falls back to $JIT_HOME/cache if not set)
    """
    cache_dir: Path = get_home_dir() / "cache"

    env_override: str | None = os.environ.get("JIT_CACHE_DIR")
    if env_override is not None:
        cache_dir = Path(env_override).resolve()

    cache_dir.mkdir(parents=True, exist_ok=True)
    return cache_dir


def make_swap_path(dest: Path) -> Path:
    """Compute a collision-free swap file path next to a destination.

    The swap file lives in the destination's directory so the final rename
    stays on one filesystem.

    Args:
        dest: Final artifact path

    Returns:
        Hidden sibling path such as `.widgets.js.1700000000000000000-3f9a1c2b.swp`
    """
    return dest.with_name(f".{dest.name}.{time.time_ns()}-{secrets.token_hex(4)}.swp")
