"""Batch compiler.

Compiles every file matched by one or more glob patterns, writing artifacts
next to their sources by default. Intended as a pre-deploy step so servers
start with a warm cache.
"""

from __future__ import annotations

import asyncio
import fnmatch
import glob
import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path

from .formats import find_format
from .freshness import FreshnessProtocol
from .freshness import ProtocolOptions
from .session import BuildSession
from .session import SessionState

logger = logging.getLogger(__name__)


@dataclass
class BatchReport:
    """Outcome of a batch run.

    Attributes:
        sessions: Finished sessions, one per handled path
        skipped: Matched paths rejected by the handle predicate
    """

    sessions: list[BuildSession] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)

    @property
    def built(self) -> list[BuildSession]:
        """Sessions that compiled and published a new artifact."""
        return [s for s in self.sessions if s.state == SessionState.SERVED and s.build_result is not None]

    @property
    def cached(self) -> list[BuildSession]:
        """Sessions whose artifact was already fresh."""
        return [s for s in self.sessions if s.state == SessionState.SERVED and s.build_result is None]

    @property
    def failed(self) -> list[BuildSession]:
        """Sessions that ended in an error."""
        return [s for s in self.sessions if s.state == SessionState.ERRORED]

    @property
    def ok(self) -> bool:
        """True when no session failed."""
        return not self.failed


def expand_globs(patterns: str | Iterable[str], exclude: Iterable[str] = ()) -> list[Path]:
    """Expand glob patterns to a deduplicated list of files.

    Args:
        patterns: One pattern or several; `**` matches recursively
        exclude: fnmatch patterns checked against each match's file name and
            full path

    Returns:
        Absolute file paths in first-seen order
    """
    if isinstance(patterns, str):
        patterns = [patterns]
    exclude = list(exclude)

    seen: dict[str, Path] = {}
    for pattern in patterns:
        for match in glob.glob(os.path.expanduser(pattern), recursive=True):
            path = Path(os.path.abspath(match))
            if str(path) in seen or not path.is_file():
                continue
            if any(fnmatch.fnmatch(path.name, ex) or fnmatch.fnmatch(str(path), ex) for ex in exclude):
                continue
            seen[str(path)] = path
    return list(seen.values())


async def build_glob(
    patterns: str | Iterable[str],
    options: ProtocolOptions | None = None,
    *,
    exclude: Iterable[str] = (),
) -> BatchReport:
    """Compile every handled file matched by patterns.

    Each path runs its own freshness protocol session concurrently with the
    others. A failing path is reported through the error hooks and recorded in
    the report; it never aborts the rest.

    Args:
        patterns: Glob pattern(s)
        options: Protocol options (default: `<name>.compiled<ext>` next to
            each source, registered formats only)
        exclude: fnmatch patterns of files to leave out

    Returns:
        BatchReport of all sessions

    Example:
        >>> report = await build_glob("assets/**/*.vue")
        >>> assert report.ok
    """
    protocol = FreshnessProtocol(options)
    paths = await asyncio.to_thread(expand_globs, patterns, exclude)

    report = BatchReport()
    handled = []
    for path in paths:
        candidate = BuildSession(subject=path, source_path=path, source_format=find_format(path))
        if await protocol.handles(candidate):
            handled.append(path)
        else:
            report.skipped.append(path)

    logger.info(f"Batch build: {len(handled)} handled, {len(report.skipped)} skipped")
    report.sessions = list(await asyncio.gather(*(protocol.run(path) for path in handled)))

    logger.info(
        f"Batch build finished: {len(report.built)} built, {len(report.cached)} cached, {len(report.failed)} failed"
    )
    return report
