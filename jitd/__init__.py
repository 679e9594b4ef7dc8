"""jitd - JIT asset compilation daemon.

Transport layer over jit_library: a FastAPI app with the asset middleware
mounted, plus the `jit` command line.
"""

from .middleware import JITMiddleware
from .middleware import request_path

__all__ = ["JITMiddleware", "request_path"]
