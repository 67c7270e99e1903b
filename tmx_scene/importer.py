"""
Import session: the interface a scene builder consumes

=============================================================================
ARCHITECTURE ROLE
=============================================================================

    .tmx/.tsx bytes → [parser] → MapDocument ─┐
                                              ├→ [TiledImport] → scene builder
    TilesetCache (TSX + image sizes) → [resolver]┘

The scene builder (whatever creates nodes, sprites and colliders in the
host engine) only talks to TiledImport:

    session = TiledImport.load("maps/level1.tmx")

    for layer in session.get_layers():
        if layer.kind is LayerKind.TILE:
            for cell in session.iter_cells(layer):
                if cell.tile is None:
                    continue                       # unresolved, see diagnostics
                rect = session.tile_rect(cell.tile.tileset, cell.tile.local_index)
                shape = session.tile_shape(cell.tile.tileset, cell.tile.local_index)
                ...

    for diagnostic in session.diagnostics:
        log(diagnostic.message)

=============================================================================
COORDINATE CONVERSION
=============================================================================

Documents use pixels with the origin at the TOP-left, y down. Scene
builders usually want world units with y up. The placement helpers
convert using ImportSettings.pixels_per_unit (default: tile height):

    layer offset   (offsetx, offsety)  → (offsetx, -offsety) / ppu
    tile cell      (x, y)              → (x, layer.height - 1 - y)
    tile object    (x, y)              → (x, map_pixel_height - y) / ppu
    rotation       clockwise degrees   → counter-clockwise (negated)

=============================================================================
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, NamedTuple, Optional, Tuple

from . import atlas
from .collision import Polygon, derive_shape
from .errors import Diagnostic, LayoutError, TiledError, UnresolvedTile
from .gid import TILE_ID_MASK, decode
from .model import (
    Layer, LayerKind, MapDocument, TileLayer, TileObject, TileRecord,
    TilesetDefinition,
)
from .parser import parse_map
from .properties import Property, PropertyValue, typed_value
from .providers import DocumentProvider, ImageProvider, PathLike
from .resolver import TilesetCache, TilesetResolver
from .settings import ImportSettings

logger = logging.getLogger(__name__)


class ResolvedTile(NamedTuple):
    """A GID resolved to its tileset, with its flip flags."""
    tileset: TilesetDefinition
    local_index: int
    flip_h: bool = False
    flip_v: bool = False
    flip_d: bool = False


class Cell(NamedTuple):
    """A non-empty cell of a tile layer. tile is None when unresolved."""
    x: int
    y: int
    gid: int                       # Raw value incl. flip flags
    tile: Optional[ResolvedTile]


class Placement(NamedTuple):
    """Position of a tile object in world units, y up."""
    x: float
    y: float
    rotation: float                # Degrees, counter-clockwise
    visible: bool
    flip_x: bool
    flip_y: bool


def describe(entity: Any) -> str:
    """Short description of a model entity for messages."""
    if isinstance(entity, MapDocument):
        return "map"
    if isinstance(entity, TilesetDefinition):
        return f"tileset '{entity.name}'"
    if isinstance(entity, TileRecord):
        return f"tile {entity.id}"
    if isinstance(entity, TileObject):
        return f"object {entity.id} '{entity.name}'"
    kind = getattr(entity, 'kind', None)
    if isinstance(kind, LayerKind):
        return f"layer '{entity.name}'"
    return type(entity).__name__


class TiledImport:
    """
    One map being imported, with its resolved tilesets.

    Parameters:
    -----------
    document : MapDocument
        Parsed map
    path : str or Path, optional
        Where the map came from; relative tileset and image paths are
        resolved against it
    cache : TilesetCache, optional
        Shared tileset cache (a private one is created when omitted)
    settings : ImportSettings, optional
    """

    def __init__(self, document: MapDocument, path: Optional[PathLike] = None,
                 cache: Optional[TilesetCache] = None,
                 settings: Optional[ImportSettings] = None):
        self.document = document
        self.path = path
        self.settings = settings or ImportSettings()
        self.resolver = TilesetResolver(document.tilesets, path, cache)
        self.pixels_per_unit = self.settings.unit_scale(document.tileheight)
        self.diagnostics: List[Diagnostic] = []

    @property
    def cache(self) -> TilesetCache:
        return self.resolver.cache

    # =========================================================================
    # LOADING
    # =========================================================================

    @classmethod
    def load(cls, path: PathLike, documents: Optional[DocumentProvider] = None,
             images: Optional[ImageProvider] = None,
             cache: Optional[TilesetCache] = None,
             settings: Optional[ImportSettings] = None) -> 'TiledImport':
        """
        Read a .tmx file and resolve all of its tilesets.

        Every tileset is loaded up front so that a broken external
        tileset fails the import here rather than halfway through
        building the scene.

        Raises:
        -------
        OSError : the map itself cannot be read
        MalformedDocument : the map or one of its tilesets is invalid
        """
        if cache is None:
            cache = TilesetCache(documents, images)
        if documents is None:
            documents = cache.documents

        logger.info("Loading TMX: %s", path)
        return cls.from_bytes(documents(path), path, cache, settings)

    @classmethod
    def from_bytes(cls, data: bytes, path: Optional[PathLike] = None,
                   cache: Optional[TilesetCache] = None,
                   settings: Optional[ImportSettings] = None) -> 'TiledImport':
        """Parse map bytes and resolve all tilesets (see load())."""
        session = cls(parse_map(data), path, cache, settings)
        for ref, tileset in session.resolver.definitions():
            logger.debug("Tileset '%s' at firstgid %d", tileset.name, ref.firstgid)
        return session

    # =========================================================================
    # DIAGNOSTICS
    # =========================================================================

    def report(self, error: TiledError, subject: Any = None):
        """Record a recoverable error."""
        logger.warning("%s", error)
        self.diagnostics.append(Diagnostic.from_error(error, subject))

    # =========================================================================
    # LAYERS
    # =========================================================================

    def get_layers(self) -> List[Layer]:
        """Top-level layers, bottom-most first."""
        return list(self.document.layers)

    def walk_layers(self) -> Iterator[Tuple[Layer, int]]:
        """All layers depth-first as (layer, nesting depth)."""
        return self.document.walk_layers()

    def iter_cells(self, layer: TileLayer) -> Iterator[Cell]:
        """
        Non-empty cells of a tile layer, row by row from the top.

        A cell whose tile ID is 0 is empty even if flip flags are set.
        A GID no tileset owns yields a Cell with tile=None and records
        an UnresolvedTile diagnostic; the rest of the layer continues.
        """
        width = layer.width
        for index, raw in enumerate(layer.cells):
            if (raw & TILE_ID_MASK) == 0:
                continue
            y, x = divmod(index, width)
            try:
                tile = self.resolve_tile(raw)
            except UnresolvedTile as e:
                self.report(e, raw)
                tile = None
            yield Cell(x, y, raw, tile)

    # =========================================================================
    # TILES
    # =========================================================================

    def tilesets(self) -> List[TilesetDefinition]:
        """Definitions of every tileset, in declaration order."""
        return [tileset for _, tileset in self.resolver.definitions()]

    def usable_tilesets(self) -> List[TilesetDefinition]:
        """
        Tilesets whose atlas layout can be computed.

        The others are reported as LayoutError diagnostics and left out;
        tiles from them have no sprite rect.
        """
        usable = []
        for tileset in self.tilesets():
            try:
                atlas.columns(tileset)
            except LayoutError as e:
                self.report(e, tileset)
                continue
            usable.append(tileset)
        return usable

    def resolve_tile(self, gid: int) -> ResolvedTile:
        """
        Resolve a raw GID (flip flags allowed).

        Raises:
        -------
        UnresolvedTile : empty cell, or no tileset owns the tile ID
        """
        decoded = decode(gid)
        tileset, local_index = self.resolver.resolve(decoded.tile_id)
        return ResolvedTile(tileset, local_index, decoded.flip_h, decoded.flip_v, decoded.flip_d)

    def tile_rect(self, tileset: TilesetDefinition, local_index: int) -> atlas.PixelRect:
        """Sprite rectangle inside the atlas (raises LayoutError)."""
        return atlas.tile_rect(tileset, local_index)

    def tile_shape(self, tileset: TilesetDefinition, local_index: int) -> Optional[List[Polygon]]:
        """Collision polygons of a tile, None for "use the default collider"."""
        return derive_shape(tileset.tile(local_index), tileset.tileheight)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    def properties(self, entity: Any) -> List[Property]:
        """Raw properties of a map, layer, tileset, tile or object."""
        return list(getattr(entity, 'properties', ()))

    def typed_value(self, prop: Property, owner: Optional[str] = None) -> PropertyValue:
        """Typed value of one property (raises PropertyTypeError)."""
        return typed_value(prop, owner)

    def typed_properties(self, entity: Any) -> Dict[str, PropertyValue]:
        """
        Name -> typed value for every property of entity.

        Unconvertible properties are reported and left out, unless
        settings.strict_properties is set. A repeated name keeps its last
        value.
        """
        owner = describe(entity)
        values: Dict[str, PropertyValue] = {}
        for prop in self.properties(entity):
            try:
                values[prop.name] = typed_value(prop, owner)
            except TiledError as e:
                if self.settings.strict_properties:
                    raise
                self.report(e, prop)
        return values

    # =========================================================================
    # PLACEMENT
    # =========================================================================

    def layer_position(self, layer: Layer) -> Tuple[float, float]:
        """Layer offset in world units, y up."""
        ppu = self.pixels_per_unit
        return layer.offsetx / ppu, -layer.offsety / ppu

    def cell_position(self, layer: TileLayer, x: int, y: int) -> Tuple[int, int]:
        """Grid cell with row 0 at the bottom."""
        return x, layer.height - 1 - y

    def object_placement(self, obj: TileObject) -> Placement:
        """World position, rotation and flips of an object."""
        ppu = self.pixels_per_unit
        flip_x = flip_y = False
        if obj.gid:
            decoded = decode(obj.gid)
            flip_x, flip_y = decoded.flip_h, decoded.flip_v
        return Placement(
            x=obj.x / ppu,
            y=(self.document.pixel_height - obj.y) / ppu,
            rotation=-obj.rotation,
            visible=obj.visible,
            flip_x=flip_x,
            flip_y=flip_y,
        )

    def __repr__(self):
        name = Path(self.path).name if self.path else '<bytes>'
        return (f"<TiledImport {name} {self.document.width}x{self.document.height} "
                f"tilesets={len(self.document.tilesets)} diagnostics={len(self.diagnostics)}>")
