"""Storage module for jit_library.

Public Interface:
    - get_home_dir: Get JIT_HOME
    - get_config_dir: Get config directory
    - get_cache_dir: Get compiled artifact cache directory
    - make_swap_path: Name a publish swap file next to a destination
"""

from .paths import get_cache_dir
from .paths import get_config_dir
from .paths import get_home_dir
from .paths import make_swap_path

__all__ = [
    "get_home_dir",
    "get_config_dir",
    "get_cache_dir",
    "make_swap_path",
]
