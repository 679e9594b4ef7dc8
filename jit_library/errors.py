"""Error taxonomy for JIT asset compilation.

Contract:
- SourceNotFoundError is the only error mapped to a "not found" outcome
- PathEscapeError is raised before the untrusted path is ever stat'ed
- NoEntryPointError / IncompatibleWriteModeError are programmer errors raised
  before any I/O and are never retried
"""


class JITError(Exception):
    """Base class for all JIT build errors."""


class SourceNotFoundError(JITError):
    """Raised when the resolved source file does not exist."""


class PathEscapeError(JITError):
    """Raised when a resolved source path leaves the configured root."""


class UnsupportedFormatError(JITError):
    """Raised when no registered format matches a path's extension."""


class WriteFailureError(JITError):
    """Raised when writing or moving a compiled artifact fails."""


class BuildFailureError(JITError):
    """Raised when the compiler engine reports errors or fails outright."""


class NoEntryPointError(JITError):
    """Raised when a build is requested without entry points or stdin."""


class IncompatibleWriteModeError(JITError):
    """Raised when the engine is asked to write directly to disk."""


class LoaderError(JITError):
    """Raised by engine loaders for source-level compile errors."""
