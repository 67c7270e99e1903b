"""
In-memory data model for Tiled maps and tilesets

=============================================================================
OVERVIEW
=============================================================================

    MapDocument
    ├── tilesets: TilesetReference (firstgid + inline or external TSX)
    │              └── TilesetDefinition
    │                  ├── Image (atlas)
    │                  └── tiles: local id -> TileRecord
    │                                         └── ObjectGroup (collision)
    └── layers (declaration order = bottom to top)
        ├── TileLayer    (grid of raw GIDs)
        ├── ObjectGroup  (TileObjects)
        └── GroupLayer   (nested layers)

Everything here is built once by the parser and never modified.

=============================================================================
LAYER VARIANTS
=============================================================================

The three layer types form a tagged union. Each carries a `kind` so a
consumer can dispatch on it exhaustively:

    for layer in doc.layers:
        if layer.kind is LayerKind.TILE:
            ...
        elif layer.kind is LayerKind.OBJECTS:
            ...
        elif layer.kind is LayerKind.GROUP:
            ...

=============================================================================
"""

import array
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Dict, Iterator, NamedTuple, Optional, Tuple, Union

import numpy as np

from .color import Color, WHITE
from .properties import Property


class LayerKind(Enum):
    TILE = 'layer'
    OBJECTS = 'objectgroup'
    GROUP = 'group'


class Point(NamedTuple):
    x: float
    y: float


@dataclass(frozen=True)
class Image:
    """
    Atlas image reference.

    width/height are 0 when the document does not declare them; the
    resolver fills them in from the decoded image.
    """
    source: str                          # Path relative to the declaring document
    width: int = 0                       # Pixels, 0 = unknown
    height: int = 0                      # Pixels, 0 = unknown
    trans: Optional[str] = None          # Transparent color key (RRGGBB)

    @property
    def has_size(self) -> bool:
        return self.width > 0 and self.height > 0


@dataclass(frozen=True)
class TileObject:
    """
    Object placed in an object layer, or the collision shape of a tile.

    ==========================================================================
    SHAPES
    ==========================================================================

    Rectangle:   x, y, width, height
    Point:       x, y only
    Polygon:     points relative to (x, y)
    Tile stamp:  nonzero gid, (x, y) is the BOTTOM-left of the tile

    ==========================================================================
    """
    id: int = 0                                      # Unique object ID
    name: str = ""                                   # Object name
    type: str = ""                                   # Object type/class
    x: float = 0                                     # X position (pixels)
    y: float = 0                                     # Y position (pixels)
    width: Optional[float] = None                    # Explicit width
    height: Optional[float] = None                   # Explicit height
    rotation: float = 0                              # Degrees, clockwise
    visible: bool = True                             # Is object visible?
    gid: Optional[int] = None                        # Raw GID incl. flip flags
    polygon: Optional[Tuple[Point, ...]] = None      # Points local to (x, y)
    properties: Tuple[Property, ...] = ()

    @property
    def is_tile(self) -> bool:
        return bool(self.gid)


@dataclass(frozen=True)
class TileLayer:
    """
    Grid of raw GIDs, stored row-major in an unsigned 32-bit array.

    Index calculation: cells[y * width + x]
    """
    kind: ClassVar[LayerKind] = LayerKind.TILE

    name: str
    width: int                                       # Width in tiles
    height: int                                      # Height in tiles
    cells: array.array = field(default_factory=lambda: array.array('I'))
    id: int = 0
    visible: bool = True
    opacity: float = 1.0
    offsetx: float = 0
    offsety: float = 0
    tintcolor: Color = WHITE
    properties: Tuple[Property, ...] = ()

    def gid_at(self, x: int, y: int) -> int:
        """Raw GID at column x, row y (0 when out of bounds)."""
        if 0 <= x < self.width and 0 <= y < self.height:
            return self.cells[y * self.width + x]
        return 0

    def as_array(self) -> np.ndarray:
        """Cells as a (height, width) uint32 numpy array."""
        return np.frombuffer(self.cells.tobytes(), dtype=np.uint32).reshape(
            (self.height, self.width))


@dataclass(frozen=True)
class ObjectGroup:
    """Object layer. Also used inside tiles for collision shapes."""
    kind: ClassVar[LayerKind] = LayerKind.OBJECTS

    name: str = ""
    objects: Tuple[TileObject, ...] = ()
    id: int = 0
    visible: bool = True
    opacity: float = 1.0
    offsetx: float = 0
    offsety: float = 0
    tintcolor: Color = WHITE
    properties: Tuple[Property, ...] = ()


@dataclass(frozen=True)
class GroupLayer:
    """Folder of layers. Children inherit no implicit size."""
    kind: ClassVar[LayerKind] = LayerKind.GROUP

    name: str = ""
    layers: Tuple['Layer', ...] = ()
    id: int = 0
    visible: bool = True
    opacity: float = 1.0
    offsetx: float = 0
    offsety: float = 0
    tintcolor: Color = WHITE
    properties: Tuple[Property, ...] = ()


Layer = Union[TileLayer, ObjectGroup, GroupLayer]


@dataclass(frozen=True)
class TileRecord:
    """
    Extra data for one tile of a tileset.

    Only tiles with properties or collision objects get a record; a
    missing record means a plain tile.
    """
    id: int                                          # Local tile ID
    type: str = ""                                   # Tile class
    objectgroup: Optional[ObjectGroup] = None        # Collision objects
    properties: Tuple[Property, ...] = ()


@dataclass(frozen=True)
class TilesetDefinition:
    """
    A tileset: same-sized tiles cut from one atlas image.

    columns/rows are None when the document leaves them to be inferred
    from the image (see atlas.py).
    """
    name: str
    tilewidth: int
    tileheight: int
    spacing: int = 0
    margin: int = 0
    tilecount: int = 0
    columns: Optional[int] = None
    rows: Optional[int] = None
    image: Optional[Image] = None
    tiles: Dict[int, TileRecord] = field(default_factory=dict)
    properties: Tuple[Property, ...] = ()

    def tile(self, local_index: int) -> Optional[TileRecord]:
        return self.tiles.get(local_index)


@dataclass(frozen=True)
class TilesetReference:
    """
    A map's use of a tileset.

    Exactly one of `tileset` (embedded definition) and `source` (path of
    an external .tsx, relative to the map) is set.
    """
    firstgid: int
    tileset: Optional[TilesetDefinition] = None
    source: Optional[str] = None

    @property
    def is_external(self) -> bool:
        return self.source is not None


@dataclass(frozen=True)
class MapDocument:
    """Root of a parsed .tmx file."""
    width: int                                       # Map width in tiles
    height: int                                      # Map height in tiles
    tilewidth: int                                   # Tile width in pixels
    tileheight: int                                  # Tile height in pixels
    version: str = "1.0"
    orientation: str = "orthogonal"
    renderorder: str = "right-down"
    tilesets: Tuple[TilesetReference, ...] = ()
    layers: Tuple[Layer, ...] = ()
    properties: Tuple[Property, ...] = ()

    @property
    def pixel_width(self) -> int:
        return self.width * self.tilewidth

    @property
    def pixel_height(self) -> int:
        return self.height * self.tileheight

    def walk_layers(self) -> Iterator[Tuple[Layer, int]]:
        """Depth-first (layer, depth) pairs, groups before their children."""
        def walk(layers, depth):
            for layer in layers:
                yield layer, depth
                if layer.kind is LayerKind.GROUP:
                    yield from walk(layer.layers, depth + 1)
        return walk(self.layers, 0)

    def get_layer_by_name(self, name: str) -> Optional[Layer]:
        """First layer with this name, searching groups recursively."""
        for layer, _ in self.walk_layers():
            if layer.name == name:
                return layer
        return None
