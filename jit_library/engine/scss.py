"""SCSS loader backed by libsass."""

from __future__ import annotations

import asyncio
from pathlib import Path

import sass

from ..errors import LoaderError
from ..models import EngineRequest
from .base import BUILTIN_PRIORITY
from .base import LoaderPlugin


def compile_scss(text: str, include_paths: list[Path], minify: bool = False) -> str:
    """Compile SCSS source text to CSS.

    Args:
        text: SCSS source
        include_paths: Directories searched by @import / @use
        minify: Emit compressed CSS instead of expanded

    Returns:
        Compiled CSS

    Raises:
        LoaderError: If libsass rejects the source
    """
    try:
        return sass.compile(
            string=text,
            include_paths=[str(path) for path in include_paths],
            output_style="compressed" if minify else "expanded",
        )
    except sass.CompileError as e:
        raise LoaderError(str(e)) from e


def include_paths_for(resolve_dir: Path | None, request: EngineRequest) -> list[Path]:
    """Directories libsass should search for imports."""
    paths = []
    if resolve_dir is not None:
        paths.append(resolve_dir)
    if request.abs_working_dir is not None:
        paths.append(request.abs_working_dir)
    return paths


class SassLoader(LoaderPlugin):
    """Compile .scss stylesheets to CSS."""

    name = "sass"
    extensions = frozenset({".scss"})
    priority = BUILTIN_PRIORITY

    async def transform(self, text: str, resolve_dir: Path | None, request: EngineRequest) -> str:
        return await asyncio.to_thread(
            compile_scss,
            text,
            include_paths_for(resolve_dir, request),
            request.minify,
        )
