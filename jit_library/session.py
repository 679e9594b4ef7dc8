"""Build session state.

A BuildSession tracks one source/destination/swap triple through the
freshness protocol. It is created fresh for every compile attempt (one HTTP
request, or one glob match) and never reused.
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING
from typing import Any
from typing import Protocol

from .formats import FormatDescriptor
from .models import FileStats

if TYPE_CHECKING:
    from .compiler import BuildResult


class SessionState(str, Enum):
    """States of the freshness protocol."""

    INIT = "init"
    RESOLVING = "resolving"
    CACHE_HIT = "cache_hit"
    CACHE_MISS = "cache_miss"
    COMPILING = "compiling"
    PUBLISHING = "publishing"
    SERVED = "served"
    SKIPPED = "skipped"
    FORBIDDEN = "forbidden"
    ERRORED = "errored"


class Responder(Protocol):
    """Delivers a session's outcome to whoever asked for it.

    The request middleware implements this over ASGI; the batch compiler uses
    NullResponder.
    """

    @property
    def started(self) -> bool:
        """True once a response has begun and can no longer be replaced."""
        ...

    async def send_cached(self, session: BuildSession) -> None:
        """Send the existing destination artifact."""
        ...

    async def send_built(self, session: BuildSession, text: str) -> None:
        """Send freshly compiled output."""
        ...

    async def send_raw(self, session: BuildSession) -> None:
        """Send the unhandled source as-is."""
        ...

    async def send_forbidden(self, session: BuildSession) -> None:
        """Refuse an unhandled source."""
        ...

    async def send_not_found(self, session: BuildSession, error: Exception) -> None:
        """Report a missing source."""
        ...

    async def send_error(self, session: BuildSession, error: Exception) -> None:
        """Report any other failure."""
        ...


class NullResponder:
    """Responder that delivers nothing, for callers that only want the cache."""

    started = False

    async def send_cached(self, session: BuildSession) -> None:
        return None

    async def send_built(self, session: BuildSession, text: str) -> None:
        return None

    async def send_raw(self, session: BuildSession) -> None:
        return None

    async def send_forbidden(self, session: BuildSession) -> None:
        return None

    async def send_not_found(self, session: BuildSession, error: Exception) -> None:
        return None

    async def send_error(self, session: BuildSession, error: Exception) -> None:
        return None


@dataclass
class BuildSession:
    """Per-attempt state for one source/destination/swap triple.

    Attributes:
        subject: What the session was created for (request or glob match)
        responder: Where the outcome is delivered
        source_path: Resolved source file
        source_stats: Source stat snapshot
        source_format: Registered format, or None when unknown
        dest_path: Resolved destination artifact
        dest_stats: Destination stat snapshot, or None when absent
        swap_path: Publish staging file; None once consumed
        fresh: Freshness decision (computed once)
        build_result: Compiler output, only present on a cache miss
        state: Current protocol state
        error: Error that ended the session, if any
    """

    subject: Any
    responder: Responder = field(default_factory=NullResponder)
    source_path: Path | None = None
    source_stats: FileStats | None = None
    source_format: FormatDescriptor | None = None
    dest_path: Path | None = None
    dest_stats: FileStats | None = None
    swap_path: Path | None = None
    fresh: bool | None = None
    build_result: BuildResult | None = None
    state: SessionState = SessionState.INIT
    error: Exception | None = None

    @property
    def content_type(self) -> str | None:
        """Content type of the compiled artifact, when the format is known."""
        return self.source_format.output_content_type if self.source_format else None
