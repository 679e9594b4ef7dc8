"""Observer plugin that logs build activity."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING
from typing import Any

if TYPE_CHECKING:
    from ..compiler import BuildResult
    from ..compiler import CompileOptions
    from ..events import BuildEvents

logger = logging.getLogger(__name__)


def format_bytes(size: int) -> str:
    """Format a byte count for humans.

    Example:
        >>> format_bytes(2048)
        '2.0 KB'
    """
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{int(value)} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


class LogPlugin:
    """Log "Building ..." and "Built ... -> ..." lines for every compile.

    Args:
        log: Callable receiving each message (default: this module's logger at
            INFO). Pass None to use the default, or set log_building/log_built
            to False to silence either line.
        log_building: Log when a build starts
        log_built: Log when a build has been published
        root: Prefix trimmed from logged paths (falls back to the build's root)
    """

    def __init__(
        self,
        log: Callable[[str], Any] | None = None,
        log_building: bool = True,
        log_built: bool = True,
        root: Path | None = None,
    ) -> None:
        self.log = log or logger.info
        self.log_building = log_building
        self.log_built = log_built
        self.root = root

    def setup(self, events: BuildEvents, options: CompileOptions) -> None:
        root = self.root or options.root

        def format_path(path: Path | str) -> str:
            if str(path) == "STDIN":
                return "STDIN"
            full_path = Path(path).resolve()
            if root is not None and full_path.is_relative_to(Path(root).resolve()):
                return "/" + str(full_path.relative_to(Path(root).resolve()))
            return str(full_path)

        async def on_building(path: Path | str) -> None:
            if self.log_building:
                self.log(f"Building {format_path(path)}")

        async def on_built(result: BuildResult) -> None:
            if not self.log_built:
                return
            source_size = ""
            if options.source_stats is not None:
                source_size = f" ({format_bytes(options.source_stats.size)})"
            elif str(result.source_path) != "STDIN":
                stat = await asyncio.to_thread(Path(result.source_path).stat)
                source_size = f" ({format_bytes(stat.st_size)})"
            dest = format_path(result.dest_path) if result.dest_path else "-"
            self.log(
                f"Built {format_path(result.source_path)}{source_size} -> {dest} "
                f"({format_bytes(result.dest_size)}) in {result.build_time_ms:.0f}ms"
            )

        events.on_building(on_building)
        events.on_built(on_built)
