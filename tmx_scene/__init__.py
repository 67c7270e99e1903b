"""
tmx_scene - Tiled map (TMX/TSX) import core

Parses maps and tilesets into an immutable data model and resolves what a
scene builder needs: tile IDs to tilesets, atlas sprite rectangles and
per-tile collision shapes.

Requirements:
    pip install pillow numpy zstandard
"""

from .atlas import PixelRect, grid_size, iter_tile_rects, tile_rect
from .collision import derive_shape
from .color import WHITE, Color, color_from_string, color_to_string
from .errors import (
    Diagnostic, LayoutError, MalformedDocument, PropertyTypeError,
    TiledError, UnresolvedTile,
)
from .gid import DecodedGid, decode, encode
from .importer import Cell, Placement, ResolvedTile, TiledImport
from .model import (
    GroupLayer, Image, Layer, LayerKind, MapDocument, ObjectGroup, Point,
    TileLayer, TileObject, TileRecord, TilesetDefinition, TilesetReference,
)
from .parser import load_map, load_tileset, parse_map, parse_tileset
from .properties import Property, split_routed_name, typed_value
from .resolver import TilesetCache, TilesetResolver, resolve
from .routing import PropertyRouter
from .settings import ImportSettings

__version__ = "1.0.0"
__all__ = [
    "TiledImport",
    "ImportSettings",
    "parse_map",
    "parse_tileset",
    "load_map",
    "load_tileset",
    "resolve",
    "TilesetCache",
    "TilesetResolver",
    "tile_rect",
    "grid_size",
    "iter_tile_rects",
    "PixelRect",
    "derive_shape",
    "decode",
    "encode",
    "DecodedGid",
    "Color",
    "WHITE",
    "color_from_string",
    "color_to_string",
    "Property",
    "typed_value",
    "split_routed_name",
    "PropertyRouter",
    "MapDocument",
    "TilesetReference",
    "TilesetDefinition",
    "TileRecord",
    "Image",
    "Layer",
    "LayerKind",
    "TileLayer",
    "ObjectGroup",
    "GroupLayer",
    "TileObject",
    "Point",
    "ResolvedTile",
    "Cell",
    "Placement",
    "TiledError",
    "MalformedDocument",
    "UnresolvedTile",
    "LayoutError",
    "PropertyTypeError",
    "Diagnostic",
]
