"""Observer plugins for build events.

Public Interface:
    - BuildPlugin: Object form of a plugin
    - setup_plugin: Run a plugin against a build's events
    - LogPlugin: Logs build activity
"""

from .base import BuildPlugin
from .base import setup_plugin
from .log import LogPlugin
from .log import format_bytes

__all__ = [
    "BuildPlugin",
    "setup_plugin",
    "LogPlugin",
    "format_bytes",
]
