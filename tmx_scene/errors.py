"""
Error taxonomy for TMX/TSX import

=============================================================================
FATAL VS RECOVERABLE
=============================================================================

Structural problems in a document abort the whole parse:

    MalformedDocument  -> nothing partially usable is returned

Everything else is scoped to a single cell, tileset or property, so one
bad value does not block the rest of the map:

    UnresolvedTile     -> one cell, the sink substitutes an empty tile
    LayoutError        -> one tileset, other tilesets remain usable
    PropertyTypeError  -> one property, the sink treats it as absent

Recoverable failures are recorded as Diagnostic entries by the import
session (see importer.py).

=============================================================================
"""

from dataclasses import dataclass
from typing import Any, Optional


class TiledError(Exception):
    """Base class for every error raised by tmx_scene."""


class MalformedDocument(TiledError):
    """Schema or structural violation in a map or tileset document."""


class UnresolvedTile(TiledError):
    """A GID that no referenced tileset owns."""

    def __init__(self, gid: int, message: Optional[str] = None):
        self.gid = gid
        super().__init__(message or f"No tileset owns GID {gid}")


class LayoutError(TiledError):
    """Atlas geometry for a tileset cannot be computed."""

    def __init__(self, tileset_name: str, message: str):
        self.tileset_name = tileset_name
        super().__init__(f"Tileset '{tileset_name}': {message}")


class PropertyTypeError(TiledError):
    """A property value does not match its declared type."""

    def __init__(self, property_name: str, property_type: str, value: str,
                 owner: Optional[str] = None):
        self.property_name = property_name
        self.property_type = property_type
        self.value = value
        self.owner = owner
        where = f" on {owner}" if owner else ""
        super().__init__(
            f"Property '{property_name}'{where}: cannot read {value!r} as {property_type}"
        )


@dataclass(frozen=True)
class Diagnostic:
    """A recoverable failure collected during an import session."""
    kind: str                      # Error class name (UnresolvedTile, ...)
    message: str                   # Human readable description
    subject: Any = None            # The offending gid, tileset or property

    @classmethod
    def from_error(cls, error: TiledError, subject: Any = None) -> 'Diagnostic':
        return cls(kind=type(error).__name__, message=str(error), subject=subject)
