"""Freshness protocol.

Decides for one source file whether the cached artifact is still valid and,
when it is not, compiles and atomically publishes a new one. Both entry points
(the request middleware and the batch compiler) drive every attempt through
FreshnessProtocol.run().

State flow:
    INIT -> RESOLVING -> CACHE_HIT -> SERVED
                      -> CACHE_MISS -> COMPILING -> PUBLISHING -> SERVED
    RESOLVING -> SKIPPED (unhandled, served raw) | FORBIDDEN (unhandled)
    any state -> ERRORED
Cleanup of the swap file runs on every exit path.

Freshness is decided on modification timestamps only. The default oracle is
still exposed as the `hash_matches` option for compatibility, but no content
is ever hashed.
"""

from __future__ import annotations

import asyncio
import logging
import os
import stat
from collections.abc import Awaitable
from collections.abc import Callable
from dataclasses import dataclass
from dataclasses import field
from dataclasses import replace
from pathlib import Path
from typing import Any

from .compiler import BuildResult
from .compiler import CompileOptions
from .compiler import build
from .engine import CompilerEngine
from .errors import PathEscapeError
from .errors import SourceNotFoundError
from .formats import find_format
from .formats import get_format_from_path
from .formats import is_handled
from .models import EngineOptions
from .models import FileStats
from .session import BuildSession
from .session import Responder
from .session import SessionState
from .storage.paths import make_swap_path
from .utils import maybe_await

logger = logging.getLogger(__name__)

Resolver = Callable[[Any], str | Path | Awaitable[str | Path]]
HandlePredicate = Callable[[BuildSession], bool | Awaitable[bool]]
SessionHook = Callable[[BuildSession], Any]
ErrorHook = Callable[[Exception, BuildSession], Any]

DEFAULT_HASH_DRIFT_MS = 250
COMPILED_SUFFIX = ".compiled"


# =============================================================================
# Defaults
# =============================================================================


def default_source(subject: Any) -> str | Path:
    """Use the subject itself (a path) as the source."""
    return subject


def compiled_dest(subject: Any) -> Path:
    """Place the artifact next to the source as `<name>.compiled<output ext>`.

    Unknown formats keep their own extension.
    """
    path = Path(subject)
    descriptor = find_format(path)
    extension = descriptor.output_extension if descriptor else path.suffix
    return path.with_name(f"{path.stem}{COMPILED_SUFFIX}{extension}")


def is_compiled_artifact(path: Path) -> bool:
    """Return True for `<name>.compiled<ext>` files written by compiled_dest."""
    return path.stem.endswith(COMPILED_SUFFIX)


def default_handle(session: BuildSession) -> bool:
    """Compile every registered source format, except artifacts of earlier builds."""
    if session.source_path is None or is_compiled_artifact(session.source_path):
        return False
    return is_handled(session.source_path)


def drift_within_tolerance(session: BuildSession, options: ProtocolOptions) -> bool:
    """Default freshness oracle: compare modification times.

    Args:
        session: Resolved session
        options: Protocol options (for hash_drift)

    Returns:
        True when a destination exists and
        abs(source mtime - destination mtime) <= hash_drift milliseconds
    """
    if session.dest_stats is None or session.source_stats is None:
        return False
    drift_ns = abs(session.source_stats.mtime_ns - session.dest_stats.mtime_ns)
    return drift_ns <= options.hash_drift * 1_000_000


def default_err_report(error: Exception, session: BuildSession) -> None:
    """Log a failed session."""
    logger.error(f"JIT error for {session.source_path or session.subject}: {error}")


async def default_err_response(error: Exception, session: BuildSession) -> None:
    """Hand the failure to the session's responder if nothing was sent yet."""
    if session.responder.started:
        logger.debug(f"Response already started for {session.source_path}, not sending error")
        return
    await session.responder.send_error(session, error)


async def default_err_not_found(error: Exception, session: BuildSession) -> None:
    """Report a missing source through the session's responder."""
    logger.debug(f"Source not found: {error}")
    await session.responder.send_not_found(session, error)


@dataclass
class ProtocolOptions:
    """Configuration shared by every session of one middleware or batch run.

    Attributes:
        source: Resolver for the source path, called as `(subject)`
        dest: Resolver for the destination path, called as `(subject)`
        swap: Resolver for the swap path; None names a hidden sibling of the
            destination
        root: Confine sources to this directory (None disables confinement);
            relative source paths are resolved against it
        handle: Predicate deciding whether a session's source is compiled
        serve_non_handled: Serve unhandled sources raw instead of refusing them
        immutable: Treat any existing destination as valid; compile only when
            none exists
        force: Always compile, ignoring the cache
        hash_drift: Maximum mtime drift in milliseconds for a cache hit
        hash_matches: Freshness oracle, called as `(session, options)`
        minify: Ask the engine to minify output
        dedupe: Share one compile between concurrent misses of a destination
        err_report: Called as `(error, session)` for every non-404 failure
        err_response: Called as `(error, session)` to answer the requester
        err_not_found: Called as `(error, session)` when the source is missing
        on_build: Called as `(session)` before compiling
        on_built: Called as `(session)` after publishing
        on_skip_build: Called as `(session)` on a cache hit
        compile_options: Options passed to the compiler adapter
        engine: Compiler engine (default: built-in LoaderEngine)
    """

    source: Resolver = default_source
    dest: Resolver = compiled_dest
    swap: Resolver | None = None
    root: Path | None = None
    handle: HandlePredicate = default_handle
    serve_non_handled: bool = True
    immutable: bool = False
    force: bool = False
    hash_drift: float = DEFAULT_HASH_DRIFT_MS
    hash_matches: Callable[[BuildSession, ProtocolOptions], bool | Awaitable[bool]] = drift_within_tolerance
    minify: bool = False
    dedupe: bool = True
    err_report: ErrorHook = default_err_report
    err_response: ErrorHook = default_err_response
    err_not_found: ErrorHook = default_err_not_found
    on_build: SessionHook | None = None
    on_built: SessionHook | None = None
    on_skip_build: SessionHook | None = None
    compile_options: CompileOptions = field(default_factory=CompileOptions)
    engine: CompilerEngine | None = None

    def __post_init__(self) -> None:
        if self.immutable and self.force:
            raise ValueError("`immutable` and `force` cannot both be enabled")
        if self.hash_drift < 0:
            raise ValueError("`hash_drift` must not be negative")
        if self.root is not None:
            self.root = Path(self.root)


# =============================================================================
# Path confinement
# =============================================================================


def confine_path(source: str | Path, root: Path) -> Path:
    """Resolve a source path inside root.

    The lexical check runs first and touches no files; the symlink-resolved
    check only reads link metadata, never the file itself.

    Args:
        source: Source path; relative paths are joined onto root
        root: Confinement directory

    Returns:
        Normalized absolute source path

    Raises:
        PathEscapeError: If the path leaves root
    """
    root_abs = Path(os.path.abspath(root))
    candidate = Path(source)
    if not candidate.is_absolute():
        candidate = root_abs / candidate
    normalized = Path(os.path.normpath(candidate))

    if not normalized.is_relative_to(root_abs):
        raise PathEscapeError(f'Path "{source}" resolves outside of root "{root}"')
    if not Path(os.path.realpath(normalized)).is_relative_to(Path(os.path.realpath(root_abs))):
        raise PathEscapeError(f'Path "{source}" links outside of root "{root}"')
    return normalized


# =============================================================================
# In-flight builds
# =============================================================================


class InflightRegistry:
    """Compiles currently running, keyed by resolved destination path."""

    def __init__(self) -> None:
        self._builds: dict[str, asyncio.Future[BuildResult]] = {}

    def get(self, key: str) -> asyncio.Future[BuildResult] | None:
        """Return the pending compile for key, if any."""
        return self._builds.get(key)

    def claim(self, key: str) -> asyncio.Future[BuildResult]:
        """Register a new compile for key and return its future."""
        future: asyncio.Future[BuildResult] = asyncio.get_running_loop().create_future()
        self._builds[key] = future
        return future

    def release(self, key: str, future: asyncio.Future[BuildResult]) -> None:
        """Forget key if it still points at future."""
        if self._builds.get(key) is future:
            del self._builds[key]

    def __len__(self) -> int:
        return len(self._builds)


# =============================================================================
# Protocol
# =============================================================================


class FreshnessProtocol:
    """Runs build sessions against one set of options."""

    def __init__(self, options: ProtocolOptions | None = None) -> None:
        """Initialize the protocol.

        Args:
            options: Protocol options (defaults suit batch builds of files
                beside their sources)
        """
        self.options = options or ProtocolOptions()
        self.inflight = InflightRegistry()

    async def handles(self, session: BuildSession) -> bool:
        """Evaluate the handle predicate for a session."""
        return bool(await maybe_await(self.options.handle(session)))

    async def run(self, subject: Any, responder: Responder | None = None) -> BuildSession:
        """Run one session to completion.

        Errors never propagate: they are routed to the error hooks and
        recorded on the returned session.

        Args:
            subject: Request or path the resolvers are called with
            responder: Receives the outcome (default: deliver nothing)

        Returns:
            The finished session
        """
        session = BuildSession(subject=subject)
        if responder is not None:
            session.responder = responder

        try:
            await self._resolve(session)

            if not await self.handles(session):
                if self.options.serve_non_handled:
                    logger.debug(f"Serving unhandled source as-is: {session.source_path}")
                    await session.responder.send_raw(session)
                    session.state = SessionState.SKIPPED
                else:
                    logger.debug(f"Refusing unhandled source: {session.source_path}")
                    await session.responder.send_forbidden(session)
                    session.state = SessionState.FORBIDDEN
                return session

            session.fresh = await self._is_fresh(session)
            if session.fresh:
                session.state = SessionState.CACHE_HIT
                logger.debug(f"Use cached build for {session.source_path}")
                await self._notify(self.options.on_skip_build, session)
                await session.responder.send_cached(session)
                session.state = SessionState.SERVED
                return session

            session.state = SessionState.CACHE_MISS
            await self._notify(self.options.on_build, session)
            await self._build_and_serve(session)
            session.state = SessionState.SERVED

        except SourceNotFoundError as e:
            session.state = SessionState.ERRORED
            session.error = e
            await self._notify(self.options.err_not_found, e, session)
        except Exception as e:
            session.state = SessionState.ERRORED
            session.error = e
            await self._notify(self.options.err_report, e, session)
            await self._notify(self.options.err_response, e, session)
        finally:
            await self._cleanup(session)

        return session

    # -------------------------------------------------------------------------
    # RESOLVING
    # -------------------------------------------------------------------------

    async def _resolve(self, session: BuildSession) -> None:
        session.state = SessionState.RESOLVING
        branches = [self._resolve_source(session), self._resolve_dest(session)]
        if self.options.swap is not None:
            branches.append(self._resolve_swap(session))

        results = await asyncio.gather(*branches, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result

        if self.options.swap is None:
            session.swap_path = make_swap_path(session.dest_path)

        logger.debug(
            f"Resolved session: source={session.source_path} dest={session.dest_path} "
            f"dest_exists={session.dest_stats is not None} swap={session.swap_path}"
        )

    async def _resolve_source(self, session: BuildSession) -> None:
        source = await maybe_await(self.options.source(session.subject))
        if self.options.root is not None:
            session.source_path = confine_path(source, self.options.root)
        else:
            session.source_path = Path(os.path.abspath(source))

        try:
            result = await asyncio.to_thread(session.source_path.stat)
        except FileNotFoundError as e:
            raise SourceNotFoundError(f"Source not found: {session.source_path}") from e
        if not stat.S_ISREG(result.st_mode):
            raise SourceNotFoundError(f"Source is not a file: {session.source_path}")

        session.source_stats = FileStats.from_stat(result)
        session.source_format = find_format(session.source_path)

    async def _resolve_dest(self, session: BuildSession) -> None:
        session.dest_path = Path(os.path.abspath(await maybe_await(self.options.dest(session.subject))))

        async def stat_dest() -> None:
            try:
                result = await asyncio.to_thread(session.dest_path.stat)
            except (FileNotFoundError, NotADirectoryError):
                session.dest_stats = None
            else:
                session.dest_stats = FileStats.from_stat(result)

        await asyncio.gather(
            stat_dest(),
            asyncio.to_thread(session.dest_path.parent.mkdir, parents=True, exist_ok=True),
        )

    async def _resolve_swap(self, session: BuildSession) -> None:
        session.swap_path = Path(os.path.abspath(await maybe_await(self.options.swap(session.subject))))
        await asyncio.to_thread(session.swap_path.parent.mkdir, parents=True, exist_ok=True)

    # -------------------------------------------------------------------------
    # Freshness decision
    # -------------------------------------------------------------------------

    async def _is_fresh(self, session: BuildSession) -> bool:
        if self.options.force:
            return False
        if self.options.immutable:
            return session.dest_stats is not None
        return bool(await maybe_await(self.options.hash_matches(session, self.options)))

    # -------------------------------------------------------------------------
    # COMPILING / PUBLISHING
    # -------------------------------------------------------------------------

    async def _build_and_serve(self, session: BuildSession) -> None:
        key = str(session.dest_path)

        pending = self.inflight.get(key) if self.options.dedupe else None
        if pending is not None:
            logger.debug(f"Joining in-flight build for {key}")
            session.state = SessionState.COMPILING
            session.build_result = await asyncio.shield(pending)
            await session.responder.send_built(session, session.build_result.text)
            return

        future = self.inflight.claim(key) if self.options.dedupe else None
        try:
            session.build_result = await self._compile(session)
        except asyncio.CancelledError:
            if future is not None:
                future.cancel()
                self.inflight.release(key, future)
            raise
        except Exception as e:
            if future is not None:
                future.set_exception(e)
                future.exception()  # Mark retrieved; there may be no followers
                self.inflight.release(key, future)
            raise

        if future is not None:
            future.set_result(session.build_result)

        try:
            results = await asyncio.gather(
                session.responder.send_built(session, session.build_result.text),
                self._publish(session),
                return_exceptions=True,
            )
        finally:
            if future is not None:
                self.inflight.release(key, future)

        errors = [result for result in results if isinstance(result, BaseException)]
        if errors:
            raise errors[-1]

    async def _compile(self, session: BuildSession) -> BuildResult:
        session.state = SessionState.COMPILING
        logger.debug(f"BUILD {session.source_path}")

        # Handled sources must have a registered format
        get_format_from_path(session.source_path)

        compile_options = replace(
            self.options.compile_options,
            source_stats=session.source_stats,
            root=self.options.compile_options.root or self.options.root,
        )
        return await build(
            EngineOptions(entry_points=[session.source_path], minify=self.options.minify),
            compile_options,
            engine=self.options.engine,
        )

    async def _publish(self, session: BuildSession) -> None:
        session.state = SessionState.PUBLISHING
        await session.build_result.publish(
            session.dest_path,
            swap_path=session.swap_path,
            copy_stats=session.source_stats,
        )
        session.swap_path = None
        await self._notify(self.options.on_built, session)

    # -------------------------------------------------------------------------
    # CLEANUP
    # -------------------------------------------------------------------------

    async def _cleanup(self, session: BuildSession) -> None:
        if session.swap_path is None:
            return
        try:
            await asyncio.to_thread(session.swap_path.unlink, missing_ok=True)
        except OSError as e:
            logger.debug(f"Failed to remove swap file {session.swap_path}: {e}")

    async def _notify(self, hook: Callable[..., Any] | None, *args: Any) -> None:
        if hook is None:
            return
        try:
            await maybe_await(hook(*args))
        except Exception as e:
            logger.error(f"JIT hook {getattr(hook, '__name__', hook)!r} failed: {e}")
