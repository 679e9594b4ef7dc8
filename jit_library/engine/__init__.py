"""Compiler engine for JIT builds.

Public Interface:
    - CompilerEngine: Engine protocol consumed by the compiler adapter
    - LoaderEngine: Built-in engine driven by loader plugins
    - LoaderPlugin: Base class for loaders
    - ScriptLoader / VueLoader / SassLoader: Loaders for every supported format
    - InjectLoader: Virtual modules produced by a callable
    - default_loaders: The fixed loader set applied to every build
"""

from .base import CompilerEngine
from .base import LoaderEngine
from .base import LoaderPlugin
from .base import find_loader
from .inject import InjectLoader
from .script import ScriptLoader
from .scss import SassLoader
from .vue import VueLoader


def default_loaders() -> list[LoaderPlugin]:
    """Return fresh instances of the loaders covering every supported format."""
    return [ScriptLoader(), VueLoader(), SassLoader()]


__all__ = [
    "CompilerEngine",
    "LoaderEngine",
    "LoaderPlugin",
    "find_loader",
    "default_loaders",
    "InjectLoader",
    "ScriptLoader",
    "SassLoader",
    "VueLoader",
]
