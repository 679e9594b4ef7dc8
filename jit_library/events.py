"""Build lifecycle notifications.

BuildEvents carries typed callback lists for the two lifecycle points of a
compile. Subscribers are for side effects only (logging, progress UI,
metrics): their exceptions are logged and never reach the build.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from collections.abc import Callable
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import TYPE_CHECKING
from typing import Any

from .utils import maybe_await

if TYPE_CHECKING:
    from .compiler import BuildResult

logger = logging.getLogger(__name__)

BuildingCallback = Callable[[Path | str], Awaitable[Any] | Any]
BuiltCallback = Callable[["BuildResult"], Awaitable[Any] | Any]


@dataclass
class BuildEvents:
    """Subscribers for one build cycle.

    Attributes:
        building: Called as `(entry_path)` before the engine runs
        built: Called as `(build_result)` after the result is published
    """

    building: list[BuildingCallback] = field(default_factory=list)
    built: list[BuiltCallback] = field(default_factory=list)

    def on_building(self, callback: BuildingCallback) -> BuildEvents:
        """Subscribe to the building event."""
        self.building.append(callback)
        return self

    def on_built(self, callback: BuiltCallback) -> BuildEvents:
        """Subscribe to the built event."""
        self.built.append(callback)
        return self

    async def emit_building(self, path: Path | str) -> None:
        """Notify building subscribers."""
        for callback in self.building:
            try:
                await maybe_await(callback(path))
            except Exception as e:
                logger.error(f"Building subscriber failed for {path}: {e}")

    async def emit_built(self, result: BuildResult) -> None:
        """Notify built subscribers."""
        for callback in self.built:
            try:
                await maybe_await(callback(result))
            except Exception as e:
                logger.error(f"Built subscriber failed for {result.source_path}: {e}")
