"""Shared data structures for the compiler adapter and engine boundary.

These are plain dataclasses; they carry loader objects and callables so they
are not pydantic models.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .engine.base import LoaderPlugin


@dataclass(frozen=True)
class FileStats:
    """Snapshot of the stat fields the freshness protocol cares about."""

    size: int
    mtime_ns: int
    atime_ns: int

    @classmethod
    def from_stat(cls, result: os.stat_result) -> FileStats:
        """Build from an os.stat() result."""
        return cls(size=result.st_size, mtime_ns=result.st_mtime_ns, atime_ns=result.st_atime_ns)

    @property
    def mtime_ms(self) -> float:
        """Modification time in milliseconds."""
        return self.mtime_ns / 1_000_000


@dataclass
class StdinOptions:
    """Inline source given to the engine instead of an entry point file.

    Attributes:
        contents: Source text
        loader: Extension used to pick a loader (e.g. ".scss")
        resolve_dir: Directory used to resolve relative imports
        sourcefile: Name reported in errors
    """

    contents: str
    loader: str = ".js"
    resolve_dir: Path | None = None
    sourcefile: str = "STDIN"


@dataclass
class EngineOptions:
    """Caller-supplied engine options.

    Every field left as None keeps the value of the lower configuration layers.
    Plugins are deliberately absent: the built-in loader set can only be
    extended through CompileOptions.plugins_append.
    """

    entry_points: list[str | Path] | None = None
    stdin: StdinOptions | None = None
    write: bool | None = None
    minify: bool | None = None
    sourcemap: bool | None = None
    sources_content: bool | None = None
    outdir: Path | None = None
    abs_working_dir: Path | None = None


@dataclass
class EngineRequest:
    """Fully resolved request handed to a compiler engine."""

    entry_points: list[Path] = field(default_factory=list)
    stdin: StdinOptions | None = None
    write: bool = False
    plugins: list[LoaderPlugin] = field(default_factory=list)
    minify: bool = False
    sourcemap: bool = False
    sources_content: bool = False
    outdir: Path | None = None
    abs_working_dir: Path | None = None


@dataclass
class OutputFile:
    """One compiled output unit.

    Attributes:
        text: Compiled text
        path: Path the engine would have written to
        format: Output format marker
    """

    text: str
    path: Path | None = None
    format: str = "raw"


@dataclass
class EngineResponse:
    """Result returned by a compiler engine."""

    output_files: list[OutputFile] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
