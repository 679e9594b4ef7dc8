"""JIT asset compilation library.

This is the business logic layer behind jitd (transport): it decides whether
a compiled artifact is still fresh, compiles it when it is not, and publishes
the result atomically.

Public Interface:
    - build: Compiler adapter entry point
    - build_glob: Batch compiler
    - FreshnessProtocol / ProtocolOptions: Per-source cache protocol
    - formats: Format registry
    - errors: Error taxonomy
"""

from .batch import BatchReport
from .batch import build_glob
from .compiler import BuildResult
from .compiler import CompileOptions
from .compiler import build
from .formats import FORMATS
from .formats import FormatDescriptor
from .formats import get_format_from_path
from .formats import get_output_path
from .freshness import FreshnessProtocol
from .freshness import ProtocolOptions
from .models import EngineOptions
from .session import BuildSession
from .session import SessionState

__all__ = [
    "build",
    "build_glob",
    "BatchReport",
    "BuildResult",
    "BuildSession",
    "CompileOptions",
    "EngineOptions",
    "FORMATS",
    "FormatDescriptor",
    "FreshnessProtocol",
    "ProtocolOptions",
    "SessionState",
    "get_format_from_path",
    "get_output_path",
]
