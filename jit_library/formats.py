"""Supported source formats.

Static lookup table mapping a source extension to the compiled output
extension and the content type served for it.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .errors import UnsupportedFormatError


@dataclass(frozen=True)
class FormatDescriptor:
    """Description of one supported source kind."""

    title: str
    extensions: frozenset[str]
    output_extension: str
    output_content_type: str


FORMATS: tuple[FormatDescriptor, ...] = (
    FormatDescriptor(
        title="JavaScript",
        extensions=frozenset({".js"}),
        output_extension=".js",
        output_content_type="text/javascript",
    ),
    FormatDescriptor(
        title="Vue SFC",
        extensions=frozenset({".vue"}),
        output_extension=".js",
        output_content_type="text/javascript",
    ),
    FormatDescriptor(
        title="SASS / SCSS",
        extensions=frozenset({".scss"}),
        output_extension=".css",
        output_content_type="text/css",
    ),
)


def find_format(path: str | Path) -> FormatDescriptor | None:
    """Look up the format for a path, returning None when unknown.

    Args:
        path: Source path (only the extension is inspected)

    Returns:
        Matching descriptor or None
    """
    suffix = Path(path).suffix
    for descriptor in FORMATS:
        if suffix in descriptor.extensions:
            return descriptor
    return None


def get_format_from_path(path: str | Path) -> FormatDescriptor:
    """Look up the format for a path.

    Args:
        path: Source path

    Returns:
        Matching descriptor

    Raises:
        UnsupportedFormatError: If no registered format handles the extension
    """
    descriptor = find_format(path)
    if descriptor is None:
        raise UnsupportedFormatError(f'Unable to determine supported format from path "{path}"')
    return descriptor


def get_output_path(source: str | Path, *, preserve_ext: bool = False) -> Path:
    """Compute the probable output path for a source path.

    Args:
        source: The full input path
        preserve_ext: Keep the source file extension

    Returns:
        The destination path

    Example:
        >>> get_output_path("src/widgets.vue")
        PosixPath('src/widgets.js')
    """
    source = Path(source)
    descriptor = get_format_from_path(source)
    if preserve_ext:
        return source
    return source.with_suffix(descriptor.output_extension)


def is_handled(path: str | Path) -> bool:
    """Return True when the path has a registered source extension."""
    return find_format(path) is not None
