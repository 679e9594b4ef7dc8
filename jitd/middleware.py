"""Request middleware serving JIT-compiled assets.

JITMiddleware is an ASGI application, normally mounted under a prefix of a
FastAPI app:

    app.mount("/components", JITMiddleware(
        root=components_dir,
        source=lambda request: request_path(request),
        dest=lambda request: cache_dir / request_path(request),
    ))

Each request runs one freshness protocol session. Freshly compiled output is
streamed to the client while it is being published to the cache.
"""

import logging
from typing import Any

from starlette.requests import Request
from starlette.responses import FileResponse
from starlette.responses import PlainTextResponse
from starlette.responses import Response
from starlette.types import Message
from starlette.types import Receive
from starlette.types import Scope
from starlette.types import Send

from jit_library.freshness import FreshnessProtocol
from jit_library.freshness import ProtocolOptions
from jit_library.freshness import Resolver
from jit_library.session import BuildSession

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ("GET", "HEAD")


def request_path(request: Request) -> str:
    """Path of a request below the mount point, without a leading slash.

    Args:
        request: Incoming request

    Returns:
        e.g. "widgets.vue" for GET /components/widgets.vue mounted at /components
    """
    path: str = request.scope["path"]
    root_path: str = request.scope.get("root_path", "")
    if root_path and path.startswith(root_path):
        path = path[len(root_path) :]
    return path.lstrip("/")


class ASGIResponder:
    """Delivers session outcomes as ASGI responses."""

    def __init__(self, scope: Scope, receive: Receive, send: Send) -> None:
        self.scope = scope
        self.receive = receive
        self._send = send
        self.started = False

    async def send(self, response: Response) -> None:
        """Send any Starlette response (for custom error hooks).

        `started` flips only once the response start message has gone out, so
        a response failing before its headers can still be replaced.
        """
        await response(self.scope, self.receive, self._send_message)

    async def _send_message(self, message: Message) -> None:
        if message["type"] == "http.response.start":
            self.started = True
        await self._send(message)

    async def send_cached(self, session: BuildSession) -> None:
        await self.send(FileResponse(session.dest_path, media_type=session.content_type))

    async def send_built(self, session: BuildSession, text: str) -> None:
        # Response frames the body with Content-Length of the encoded bytes
        await self.send(Response(content=text.encode("utf-8"), media_type=session.content_type))

    async def send_raw(self, session: BuildSession) -> None:
        await self.send(FileResponse(session.source_path))

    async def send_forbidden(self, session: BuildSession) -> None:
        await self.send(PlainTextResponse("Forbidden", status_code=403))

    async def send_not_found(self, session: BuildSession, error: Exception) -> None:
        await self.send(PlainTextResponse("Not Found", status_code=404))

    async def send_error(self, session: BuildSession, error: Exception) -> None:
        await self.send(PlainTextResponse(str(error), status_code=400))


class JITMiddleware:
    """ASGI app compiling and caching assets on request.

    Resolvers are called with the Starlette Request and may be sync or async.
    Every other keyword is a ProtocolOptions field (root, handle, swap,
    serve_non_handled, immutable, force, hash_drift, minify, err_report,
    err_response, err_not_found, on_build, on_built, on_skip_build, ...).

    Example:
        >>> app.mount("/components", JITMiddleware(source=..., dest=...))
    """

    def __init__(self, *, source: Resolver, dest: Resolver, **options: Any) -> None:
        """Initialize the middleware.

        Args:
            source: Resolver for the source path of a request
            dest: Resolver for the artifact path of a request
            **options: Remaining ProtocolOptions fields

        Raises:
            ValueError: If source or dest is not callable
        """
        if not callable(source):
            raise ValueError("`source` option must be specified as a function")
        if not callable(dest):
            raise ValueError("`dest` option must be specified as a function")

        self.options = ProtocolOptions(source=source, dest=dest, **options)
        self.protocol = FreshnessProtocol(self.options)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            raise RuntimeError(f"JITMiddleware only handles http scopes, got {scope['type']!r}")

        if scope["method"] not in ALLOWED_METHODS:
            response = PlainTextResponse(
                "Method Not Allowed",
                status_code=405,
                headers={"Allow": ", ".join(ALLOWED_METHODS)},
            )
            await response(scope, receive, send)
            return

        request = Request(scope, receive)
        responder = ASGIResponder(scope, receive, send)
        session = await self.protocol.run(request, responder)

        if not responder.started:
            # A custom error hook declined to answer
            logger.warning(f"No response produced for {request.url.path} (state: {session.state.value})")
            await responder.send(PlainTextResponse("Internal Server Error", status_code=500))
