"""Compiler adapter.

Wraps a compiler engine call with layered configuration, output
post-processing and an atomic publish helper.

Contract:
- Inputs: EngineOptions (caller overrides) + CompileOptions (adapter behaviour)
- Outputs: BuildResult bound to one compiled output set
- Side Effects: None until BuildResult.publish() is called
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from dataclasses import field
from dataclasses import fields
from dataclasses import replace
from pathlib import Path

from .engine import CompilerEngine
from .engine import LoaderEngine
from .engine import LoaderPlugin
from .engine import default_loaders
from .errors import BuildFailureError
from .errors import IncompatibleWriteModeError
from .errors import JITError
from .errors import NoEntryPointError
from .errors import WriteFailureError
from .events import BuildEvents
from .formats import find_format
from .formats import get_output_path
from .models import EngineOptions
from .models import EngineRequest
from .models import FileStats
from .models import OutputFile
from .plugins import LogPlugin
from .plugins import setup_plugin
from .plugins.base import BuildPlugin
from .plugins.base import PluginFunction

logger = logging.getLogger(__name__)

ExportRewrite = str | Callable[[str, str], str]

# First `export default X;` that starts a line or follows a statement
EXPORT_DEFAULT_STATEMENT = re.compile(r"(?:^|(?<=;))export default (?P<exported>.+?);", re.M)


@dataclass
class CompileOptions:
    """Adapter options that change how a build behaves.

    Attributes:
        rewrite_export: Rewrite the `export default X;` statement of every
            output. A string may use `$<exported>` for X; a callable is called
            as `(whole_statement, exported)` and returns the replacement.
        root: Root prefix trimmed by logging plugins
        source_stats: Source stats already known to the caller (saves a stat
            in logging plugins)
        preserve_ext: Keep the source extension when computing dest_path
        plugins: Observer plugins set up for every build
        plugins_append: Extra engine loaders appended to the fixed set
    """

    rewrite_export: ExportRewrite | None = None
    root: Path | None = None
    source_stats: FileStats | None = None
    preserve_ext: bool = False
    plugins: list[BuildPlugin | PluginFunction] = field(default_factory=lambda: [LogPlugin()])
    plugins_append: list[LoaderPlugin] = field(default_factory=list)


def rewrite_export(text: str, rule: ExportRewrite) -> str:
    """Apply an export rewrite rule to the first `export default X;` statement.

    Args:
        text: Compiled output text
        rule: Template string (`$<exported>` placeholder) or callable

    Returns:
        Text with at most one statement replaced
    """

    def replacement(match: re.Match[str]) -> str:
        if callable(rule):
            return rule(match.group(0), match.group("exported"))
        return rule.replace("$<exported>", match.group("exported"))

    return EXPORT_DEFAULT_STATEMENT.sub(replacement, text, count=1)


# =============================================================================
# Configuration layers (lowest precedence first)
# =============================================================================


def default_request() -> EngineRequest:
    """Safe defaults: no minification, no source maps, never write to disk."""
    return EngineRequest(write=False, minify=False, sourcemap=False, sources_content=False)


def apply_plugin_layer(request: EngineRequest, options: CompileOptions) -> EngineRequest:
    """Install the fixed loader set plus any appended loaders."""
    return replace(request, plugins=[*default_loaders(), *options.plugins_append])


def apply_caller_layer(request: EngineRequest, engine_options: EngineOptions) -> EngineRequest:
    """Override with every caller option that was explicitly set."""
    overrides = {}
    for option in fields(engine_options):
        value = getattr(engine_options, option.name)
        if value is not None:
            overrides[option.name] = value
    if "entry_points" in overrides:
        overrides["entry_points"] = [Path(path) for path in overrides["entry_points"]]
    return replace(request, **overrides)


def resolve_engine_request(engine_options: EngineOptions, options: CompileOptions) -> EngineRequest:
    """Merge all configuration layers into one engine request."""
    return apply_caller_layer(apply_plugin_layer(default_request(), options), engine_options)


# =============================================================================
# Build result
# =============================================================================


@dataclass
class BuildResult:
    """Output of one compile, with a helper to publish it.

    Attributes:
        output_files: Post-processed output units in engine order
        source_path: Entry point (or "STDIN")
        dest_path: Destination computed from the source path
        dest_size: Size in bytes of the first output
        build_time_ms: Wall time of the engine call
        warnings: Engine warnings
    """

    output_files: list[OutputFile]
    source_path: Path | str
    dest_path: Path | None
    dest_size: int
    build_time_ms: float
    warnings: list[str] = field(default_factory=list)
    events: BuildEvents = field(default_factory=BuildEvents, repr=False)

    def output(self, index: int | None = None) -> OutputFile:
        """Pick one output unit.

        Args:
            index: Output index; may be omitted only when there is one output

        Raises:
            ValueError: If index is omitted with several outputs
        """
        if index is None:
            if len(self.output_files) != 1:
                raise ValueError(
                    f"{len(self.output_files)} output files returned by the compiler engine, "
                    "specify output_index explicitly"
                )
            index = 0
        return self.output_files[index]

    @property
    def text(self) -> str:
        """Text of the only output unit."""
        return self.output().text

    async def publish(
        self,
        path: str | Path,
        *,
        make_dirs: bool = True,
        swap_path: str | Path | None = None,
        copy_stats: FileStats | None = None,
        output_index: int | None = None,
    ) -> None:
        """Write an output unit to disk, optionally through a swap file.

        With a swap path the sequence is: write swap, copy stats onto the swap,
        rename swap over the destination. Readers of the destination therefore
        see either the previous artifact or the complete new one. Calling this
        again rewrites the same content.

        Args:
            path: Destination path
            make_dirs: Create parent directories of destination and swap
            swap_path: Staging file on the same filesystem as path
            copy_stats: Stats whose atime/mtime are applied to the new file
            output_index: Output unit to write (required with several outputs)

        Raises:
            WriteFailureError: If any filesystem step fails
        """
        contents = self.output(output_index).text.encode("utf-8")
        path = Path(path)
        swap = Path(swap_path) if swap_path else None
        target = swap or path

        try:
            if make_dirs:
                await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
                if swap:
                    await asyncio.to_thread(swap.parent.mkdir, parents=True, exist_ok=True)

            await asyncio.to_thread(target.write_bytes, contents)

            if copy_stats:
                await asyncio.to_thread(os.utime, target, ns=(copy_stats.atime_ns, copy_stats.mtime_ns))

            if swap:
                await asyncio.to_thread(os.replace, swap, path)
        except OSError as e:
            raise WriteFailureError(f"Failed to publish {path}: {e}") from e

        logger.debug(f"Published {self.source_path} -> {path}")
        await self.events.emit_built(self)


# =============================================================================
# Build
# =============================================================================


async def build(
    engine_options: EngineOptions,
    options: CompileOptions | None = None,
    *,
    engine: CompilerEngine | None = None,
) -> BuildResult:
    """Compile entry points (or stdin) and return a publishable result.

    Args:
        engine_options: Caller overrides for the engine request
        options: Adapter behaviour (export rewriting, plugins, etc.)
        engine: Compiler engine (default: the built-in LoaderEngine)

    Returns:
        BuildResult for the compiled outputs

    Raises:
        NoEntryPointError: If neither entry points nor stdin are given
        IncompatibleWriteModeError: If write=True is requested with entry points
        BuildFailureError: If the engine reports errors or raises

    Example:
        >>> result = await build(EngineOptions(entry_points=["widgets.vue"]))
        >>> await result.publish("widgets.js", swap_path="widgets.js.swp")
    """
    options = options or CompileOptions()

    if engine_options.stdin is None and not engine_options.entry_points:
        raise NoEntryPointError("Must specify at least one entry point")
    if engine_options.entry_points and engine_options.write:
        raise IncompatibleWriteModeError("Build requires write=False to post-process component output")

    events = BuildEvents()
    for plugin in options.plugins:
        setup_plugin(plugin, events, options)

    request = resolve_engine_request(engine_options, options)
    entry = request.entry_points[0] if request.entry_points else None

    start_time = time.perf_counter()
    if entry is not None:
        await events.emit_building(entry)

    try:
        response = await (engine or LoaderEngine()).build(request)
    except JITError:
        raise
    except Exception as e:
        raise BuildFailureError(f"Failed to build {entry or 'STDIN'}: {e}") from e

    if response.errors:
        raise BuildFailureError("; ".join(response.errors))
    if not response.output_files:
        raise BuildFailureError("No output files returned by the compiler engine")
    for warning in response.warnings:
        logger.warning(f"Build warning for {entry or 'STDIN'}: {warning}")

    output_files = []
    for raw_file in response.output_files:
        text = raw_file.text
        if options.rewrite_export is not None:
            text = rewrite_export(text, options.rewrite_export)
        output_files.append(OutputFile(text=text, path=raw_file.path, format="raw"))

    if request.outdir or entry is None or find_format(entry) is None:
        dest_path = output_files[0].path or request.outdir
    else:
        dest_path = get_output_path(entry, preserve_ext=options.preserve_ext)

    return BuildResult(
        output_files=output_files,
        source_path=entry if entry is not None else "STDIN",
        dest_path=dest_path,
        dest_size=len(output_files[0].text.encode("utf-8")),
        build_time_ms=(time.perf_counter() - start_time) * 1000,
        warnings=list(response.warnings),
        events=events,
    )
