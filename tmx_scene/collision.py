"""
Per-tile collision shapes

In Tiled's tile collision editor a tile gets an embedded object group:

    <tile id="7">
        <objectgroup>
            <object id="1" x="4" y="8">
                <polygon points="0,0 24,0 24,16"/>
            </object>
        </objectgroup>
    </tile>

Document coordinates start at the TOP-left of the tile, y down. Physics
shapes are wanted with the origin at the BOTTOM-left, y up, so every
point is translated by the object position and flipped about the sprite
height:

    x' = p.x + obj.x
    y' = sprite_height - (p.y + obj.y)

Objects without a polygon become a rectangle (0,0) (0,h) (w,h) (w,0)
relative to the object, flipped the same way. Only the first object of
the group is used; a tile yields at most one polygon.
"""

from typing import List, Optional, Tuple

from .model import Point, TileObject, TileRecord


Polygon = List[Tuple[float, float]]


def _outline(obj: TileObject) -> Tuple[Point, ...]:
    if obj.polygon is not None:
        return obj.polygon
    w = obj.width or 0
    h = obj.height or 0
    return (Point(0, 0), Point(0, h), Point(w, h), Point(w, 0))


def derive_shape(tile: Optional[TileRecord], sprite_height: float) -> Optional[List[Polygon]]:
    """
    Collision polygons of a tile in bottom-left sprite space.

    Returns None when the tile has no custom shape (no record, no object
    group, or an empty group); the sink then applies its default collider.
    """
    if tile is None or tile.objectgroup is None or not tile.objectgroup.objects:
        return None

    obj = tile.objectgroup.objects[0]
    path = [(p.x + obj.x, sprite_height - (p.y + obj.y)) for p in _outline(obj)]
    return [path]
