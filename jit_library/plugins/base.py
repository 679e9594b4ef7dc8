"""Observer plugin contract.

Observer plugins subscribe to a build's events. They are set up once per
build, on the fresh BuildEvents of that build.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING
from typing import Protocol
from typing import runtime_checkable

if TYPE_CHECKING:
    from ..compiler import CompileOptions
    from ..events import BuildEvents


@runtime_checkable
class BuildPlugin(Protocol):
    """Object form of an observer plugin."""

    def setup(self, events: BuildEvents, options: CompileOptions) -> None:
        """Subscribe to the build's events."""
        ...


PluginFunction = Callable[["BuildEvents", "CompileOptions"], None]


def setup_plugin(plugin: BuildPlugin | PluginFunction, events: BuildEvents, options: CompileOptions) -> None:
    """Run a plugin's setup, accepting either the object or the function form.

    Raises:
        TypeError: If the plugin is neither
    """
    if isinstance(plugin, BuildPlugin):
        plugin.setup(events, options)
    elif callable(plugin):
        plugin(events, options)
    else:
        raise TypeError(f"Unknown plugin format: {plugin!r}")
