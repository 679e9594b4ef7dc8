"""Settings models for the JIT asset daemon.

Contract:
- Inputs: Environment variables, YAML files
- Outputs: Validated settings objects
- Side Effects: None (read-only)
"""

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class JitSettings(BaseSettings):
    """Configuration for the JIT asset daemon and batch builds.

    Attributes:
        host: Listen address (default: 127.0.0.1)
        port: Listen port (default: 8430)
        log_level: Logging level (default: info)
        workers: Number of uvicorn workers (default: 1)
        source_dir: Directory served assets are read from (also the
            confinement root)
        cache_dir: Directory compiled artifacts are written to (default:
            $JIT_HOME/cache)
        mount_path: URL prefix the middleware is mounted under
        hash_drift: Maximum mtime drift in milliseconds for a cache hit
        immutable: Compile each asset once, only when no artifact exists
        force: Always recompile
        minify: Minify compiled output
        serve_non_handled: Serve files of unregistered formats as-is
        dedupe: Share one compile between concurrent requests

    Example:
        >>> settings = JitSettings()
        >>> assert settings.port == 8430
    """

    model_config = SettingsConfigDict(
        env_prefix="JIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = "127.0.0.1"
    port: int = 8430
    log_level: str = "info"
    workers: int = 1

    source_dir: str = "."
    cache_dir: str | None = None
    mount_path: str = "/assets"

    hash_drift: float = 250
    immutable: bool = False
    force: bool = False
    minify: bool = False
    serve_non_handled: bool = True
    dedupe: bool = True

    @field_validator("source_dir", "cache_dir")
    @classmethod
    def expand_and_resolve_path(cls, v: str | None) -> str | None:
        """Expand ~ and resolve to absolute path.

        Args:
            v: Path string (may contain ~ or be relative)

        Returns:
            Absolute path as string
        """
        if v is None:
            return None
        return str(Path(v).expanduser().resolve())

    @field_validator("mount_path")
    @classmethod
    def normalize_mount_path(cls, v: str) -> str:
        """Ensure the mount path starts with a slash and has no trailing one."""
        return "/" + v.strip("/")

    @field_validator("hash_drift")
    @classmethod
    def non_negative_drift(cls, v: float) -> float:
        """Reject negative drift tolerances."""
        if v < 0:
            raise ValueError("hash_drift must not be negative")
        return v
