"""
Atlas layout: where each tile sits inside its tileset image

=============================================================================
LAYOUT PARAMETERS
=============================================================================

    margin  = pixels around the EDGE of the whole image
    spacing = pixels BETWEEN neighbouring tiles

Example with margin=2, spacing=1, 16x16 tiles:

    +--+================+-+================+
    |  |    TILE 0      | |    TILE 1      |   <- starts at y = 2
    |  |  x=2           | |  x=2+16+1=19   |
    +--+================+-+================+
    |  |              1px spacing
    +--+================+-+================+
    |  |    TILE 2      | |    TILE 3      |   <- y = 2+16+1 = 19

Tile i of a tileset with `columns` tiles per row:

    col = i % columns
    row = i // columns
    x   = margin + col * (tilewidth + spacing)
    y   = margin + row * (tileheight + spacing)

Coordinates are pixels from the TOP-LEFT of the image.

=============================================================================
INFERRED GRID
=============================================================================

When the tileset does not state columns/rows they are derived from the
image size. n tiles need n*tile + (n-1)*spacing + 2*margin pixels, so:

    columns = (image.width  - 2*margin + spacing) // (tilewidth  + spacing)
    rows    = (image.height - 2*margin + spacing) // (tileheight + spacing)

Leftover pixels on the right/bottom edge are ignored.

=============================================================================
"""

from typing import Iterator, NamedTuple, Optional, Tuple

from .errors import LayoutError
from .model import TilesetDefinition


class PixelRect(NamedTuple):
    x: int
    y: int
    width: int
    height: int


def _infer(length: int, margin: int, spacing: int, tile: int) -> int:
    return (length - 2 * margin + spacing) // (tile + spacing)


def _check_tile_size(tileset: TilesetDefinition):
    if tileset.tilewidth <= 0 or tileset.tileheight <= 0:
        raise LayoutError(
            tileset.name,
            f"tile size {tileset.tilewidth}x{tileset.tileheight} is not positive")


def columns(tileset: TilesetDefinition) -> int:
    """
    Tiles per atlas row, explicit or inferred from the image width.

    Raises:
    -------
    LayoutError : invalid tile size, or no column count and no image width
    """
    _check_tile_size(tileset)
    if tileset.columns:
        return tileset.columns

    image = tileset.image
    if image is None or image.width <= 0:
        raise LayoutError(tileset.name, "no column count and image width is unknown")

    count = _infer(image.width, tileset.margin, tileset.spacing, tileset.tilewidth)
    if count < 1:
        raise LayoutError(
            tileset.name, f"image width {image.width} holds no {tileset.tilewidth}px tile")
    return count


def rows(tileset: TilesetDefinition) -> Optional[int]:
    """
    Atlas row count, explicit or inferred from the image HEIGHT.

    None when neither is available: rects can still be computed, only
    the bounds check is lost.
    """
    _check_tile_size(tileset)
    if tileset.rows:
        return tileset.rows

    image = tileset.image
    if image is None or image.height <= 0:
        return None
    return max(0, _infer(image.height, tileset.margin, tileset.spacing, tileset.tileheight))


def grid_size(tileset: TilesetDefinition) -> Tuple[int, int]:
    """
    (columns, rows) of the atlas grid.

    Raises:
    -------
    LayoutError : either dimension cannot be determined
    """
    row_count = rows(tileset)
    col_count = columns(tileset)
    if row_count is None:
        raise LayoutError(tileset.name, "no row count and image height is unknown")
    return col_count, row_count


def tile_rect(tileset: TilesetDefinition, local_index: int) -> PixelRect:
    """
    Pixel rectangle of a tile inside the atlas image.

    Parameters:
    -----------
    tileset : TilesetDefinition
        Tileset with its image dimensions filled in
    local_index : int
        Tile index within the tileset (gid - firstgid)

    Raises:
    -------
    LayoutError : geometry cannot be computed, or the index lies outside
                  the atlas grid
    """
    col_count = columns(tileset)
    row_count = rows(tileset)

    if local_index < 0 or (row_count is not None and local_index >= col_count * row_count):
        raise LayoutError(tileset.name, f"tile {local_index} is outside the atlas grid")

    col = local_index % col_count
    row = local_index // col_count

    return PixelRect(
        tileset.margin + col * (tileset.tilewidth + tileset.spacing),
        tileset.margin + row * (tileset.tileheight + tileset.spacing),
        tileset.tilewidth,
        tileset.tileheight,
    )


def iter_tile_rects(tileset: TilesetDefinition) -> Iterator[Tuple[int, int, int, PixelRect]]:
    """
    Every cell of the atlas as (local_index, column, row, rect).

    Row-major, top row first: the order a sink slices sprites in.
    """
    col_count, row_count = grid_size(tileset)
    for row in range(row_count):
        for col in range(col_count):
            local_index = row * col_count + col
            yield local_index, col, row, tile_rect(tileset, local_index)
