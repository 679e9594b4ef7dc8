"""Virtual-module loader.

Lets a caller serve generated source under a fake path, e.g. a config object
computed at request time:

    InjectLoader("/virtual/config.js", lambda: f"export default {json.dumps(cfg)};")
"""

from __future__ import annotations

import re
from collections.abc import Awaitable
from collections.abc import Callable
from pathlib import Path
from typing import Any

from ..errors import LoaderError
from ..models import EngineRequest
from ..utils import maybe_await
from .base import LoaderPlugin
from .base import find_loader

InjectContents = str | dict[str, Any]


class InjectLoader(LoaderPlugin):
    """Resolve a path (or regex of paths) to contents produced by a callable.

    The callable may return a string, treated as a ready script, or a dict
    with `contents` and `loader` (an extension such as ".scss") to run the
    contents through another loader of the same request.
    """

    name = "inject"

    def __init__(
        self,
        path: str | re.Pattern[str],
        fn: Callable[[], InjectContents | Awaitable[InjectContents]],
    ) -> None:
        """Initialize the loader.

        Args:
            path: Exact path or compiled regex to match entry points against
            fn: Callable producing the module contents
        """
        self.pattern = path if isinstance(path, re.Pattern) else re.compile("^" + re.escape(path) + "$")
        self.fn = fn
        self.name = "inject_" + re.sub(r"[^\w]+", "_", self.pattern.pattern).strip("_")

    def matches(self, path: Path) -> bool:
        return bool(self.pattern.search(str(path)))

    async def load(self, path: Path, request: EngineRequest) -> str:
        contents = await maybe_await(self.fn())
        if isinstance(contents, str):
            return contents
        if isinstance(contents, dict) and "contents" in contents:
            loader_ext = contents.get("loader", ".js")
            loader = find_loader(path.with_suffix(loader_ext), [p for p in request.plugins if p is not self])
            if loader is None:
                raise LoaderError(f'No loader configured for injected loader "{loader_ext}"')
            resolve_dir = contents.get("resolve_dir")
            return await loader.transform(contents["contents"], Path(resolve_dir) if resolve_dir else None, request)
        raise LoaderError(f"Injected contents for {path} must be a string or a dict with 'contents'")

    async def transform(self, text: str, resolve_dir: Path | None, request: EngineRequest) -> str:
        return text
