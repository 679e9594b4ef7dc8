"""Compiler engine boundary and the built-in loader engine.

The compiler adapter only depends on the CompilerEngine protocol. LoaderEngine
is the in-process implementation: every entry point is handed to the first
loader plugin that claims it.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC
from abc import abstractmethod
from pathlib import Path
from typing import Protocol

from ..errors import LoaderError
from ..formats import find_format
from ..models import EngineRequest
from ..models import EngineResponse
from ..models import OutputFile

logger = logging.getLogger(__name__)

BUILTIN_PRIORITY = 10
FALLBACK_PRIORITY = 20


class CompilerEngine(Protocol):
    """Anything that can turn an EngineRequest into compiled output."""

    async def build(self, request: EngineRequest) -> EngineResponse:
        """Compile the request's entry points (or stdin)."""
        ...


class LoaderPlugin(ABC):
    """Loader for one kind of source file.

    Subclasses set `name` and `extensions` and implement `transform`.
    Loaders are consulted by ascending `priority`, then in list order. Caller
    loaders keep the default of 0, so they can claim paths of built-in formats
    (BUILTIN_PRIORITY) and of the script passthrough (FALLBACK_PRIORITY).
    """

    name: str = ""
    extensions: frozenset[str] = frozenset()
    priority: int = 0

    def matches(self, path: Path) -> bool:
        """Return True if this loader handles the given path."""
        return path.suffix in self.extensions

    async def load(self, path: Path, request: EngineRequest) -> str:
        """Read a source file and transform it.

        Args:
            path: Entry point path
            request: Resolved engine request

        Returns:
            Compiled text
        """
        text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        return await self.transform(text, path.parent, request)

    @abstractmethod
    async def transform(self, text: str, resolve_dir: Path | None, request: EngineRequest) -> str:
        """Compile source text.

        Args:
            text: Source text
            resolve_dir: Directory relative imports resolve against
            request: Resolved engine request

        Returns:
            Compiled text

        Raises:
            LoaderError: If the source cannot be compiled
        """


def find_loader(path: Path, plugins: list[LoaderPlugin]) -> LoaderPlugin | None:
    """Return the matching plugin with the lowest priority, first listed on ties."""
    ordered = sorted(plugins, key=lambda plugin: plugin.priority)
    return next((plugin for plugin in ordered if plugin.matches(path)), None)


class LoaderEngine:
    """In-process compiler engine driven by loader plugins."""

    async def build(self, request: EngineRequest) -> EngineResponse:
        """Compile every entry point of the request.

        Loader errors are collected into the response instead of raised so a
        caller sees every failing entry at once. Missing files and other I/O
        errors propagate.

        Args:
            request: Resolved engine request

        Returns:
            Engine response with one output file per entry point
        """
        response = EngineResponse()

        if request.stdin is not None:
            stdin = request.stdin
            loader = find_loader(Path(stdin.sourcefile).with_suffix(stdin.loader), request.plugins)
            if loader is None:
                response.errors.append(f'No loader configured for stdin loader "{stdin.loader}"')
                return response
            try:
                text = await loader.transform(stdin.contents, stdin.resolve_dir, request)
            except LoaderError as e:
                response.errors.append(f"{stdin.sourcefile}: {e}")
                return response
            outdir_path = request.outdir / Path(stdin.sourcefile).name if request.outdir else None
            response.output_files.append(OutputFile(text=text, path=outdir_path))
            return response

        for entry in request.entry_points:
            loader = find_loader(entry, request.plugins)
            if loader is None:
                response.errors.append(f'No loader configured for "{entry}"')
                continue

            logger.debug(f"Loading {entry} with {loader.name}")
            try:
                text = await loader.load(entry, request)
            except LoaderError as e:
                response.errors.append(f"{entry}: {e}")
                continue

            response.output_files.append(OutputFile(text=text, path=self._output_path(entry, request)))

        return response

    def _output_path(self, entry: Path, request: EngineRequest) -> Path:
        """Compute where the engine would have written an entry's output."""
        descriptor = find_format(entry)
        name = entry.with_suffix(descriptor.output_extension).name if descriptor else entry.name
        if request.outdir:
            return request.outdir / name
        return entry.with_name(name)
