"""Small shared helpers."""

from .awaitables import maybe_await

__all__ = [
    "maybe_await",
]
