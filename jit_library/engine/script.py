"""Plain ECMAScript module loader."""

from __future__ import annotations

import logging
from pathlib import Path

from ..models import EngineRequest
from .base import FALLBACK_PRIORITY
from .base import LoaderPlugin

logger = logging.getLogger(__name__)


class ScriptLoader(LoaderPlugin):
    """Pass browser-ready .js modules through unchanged.

    Minification is not performed for scripts; the flag is only logged.
    """

    name = "script"
    extensions = frozenset({".js"})
    priority = FALLBACK_PRIORITY

    async def transform(self, text: str, resolve_dir: Path | None, request: EngineRequest) -> str:
        if request.minify:
            logger.debug("Script minification requested but not supported, emitting source as-is")
        return text
