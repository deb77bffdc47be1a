"""Evolution components: encodings, operators and population policy."""

from __future__ import annotations

__all__ = [
    "genome",
    "individual",
    "fitness",
    "scaling",
    "selection",
    "operators",
    "replacement",
    "population",
    "statistics",
]
