"""
Parser for TMX (map) and TSX (tileset) documents

=============================================================================
DOCUMENT STRUCTURE
=============================================================================

    <map version="1.10" orientation="orthogonal" width="100" height="100"
         tilewidth="32" tileheight="32">

        <tileset firstgid="1" source="terrain.tsx"/>
        <tileset firstgid="257" name="props" tilewidth="32" tileheight="32"
                 spacing="2" margin="1" columns="8">
            <image source="props.png" width="290" height="290"/>
            <tile id="3">
                <objectgroup>
                    <object x="0" y="16" width="32" height="16"/>
                </objectgroup>
            </tile>
        </tileset>

        <layer name="Ground" width="100" height="100">
            <data encoding="csv">1,2,3,...</data>
        </layer>

        <objectgroup name="Things">
            <object id="1" gid="260" x="64" y="96" width="32" height="32"/>
        </objectgroup>

        <group name="Decoration">
            <layer .../>
        </group>
    </map>

A .tsx file has the same <tileset> element as its root (without firstgid).

=============================================================================
ERROR POLICY
=============================================================================

Any structural problem raises MalformedDocument and no partial document
is returned:

- XML syntax errors, unexpected root element
- missing required attributes, non-numeric numbers, invalid colors
- unknown data encoding/compression, corrupt base64/compressed data
- cell count different from width x height

Unknown elements and attributes are ignored, so documents written by
newer Tiled versions still load.

=============================================================================
CELL DATA ENCODINGS
=============================================================================

- XML (deprecated):    <tile gid="1"/><tile gid="2"/>...
- CSV:                 1,2,3,4,...
- Base64:              little-endian uint32 values, optionally compressed
                       with zlib, gzip or zstd

=============================================================================
"""

import array
import base64
import binascii
import gzip
import logging
import sys
import xml.etree.ElementTree as ET
import zlib
from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple, Union

import zstandard

from .color import WHITE, color_from_string
from .errors import MalformedDocument
from .gid import MAX_RAW
from .model import (
    GroupLayer, Image, Layer, MapDocument, ObjectGroup, Point, TileLayer,
    TileObject, TileRecord, TilesetDefinition, TilesetReference,
)
from .properties import STRING, Property
from .providers import FileDocumentProvider

logger = logging.getLogger(__name__)

_REQUIRED = object()


# =============================================================================
# ATTRIBUTE HELPERS
# =============================================================================

def _flag(text: str) -> bool:
    lowered = text.strip().lower()
    if lowered in ('1', 'true'):
        return True
    if lowered in ('0', 'false'):
        return False
    raise ValueError(text)


def _raw_gid(text: str) -> int:
    value = int(text)
    if not 0 <= value <= MAX_RAW:
        raise ValueError(text)
    return value


_TYPE_NAMES = {int: 'integer', float: 'number', _flag: 'boolean', _raw_gid: 'GID'}


def _attr(elem: ET.Element, name: str, conv: Callable[[str], Any] = str,
          default: Any = _REQUIRED) -> Any:
    """
    Read and convert an attribute.

    Missing attributes without a default, and values the converter
    rejects, raise MalformedDocument.
    """
    text = elem.get(name)
    if text is None:
        if default is _REQUIRED:
            raise MalformedDocument(
                f"<{elem.tag}> is missing required attribute '{name}'")
        return default
    try:
        return conv(text)
    except ValueError as e:
        kind = _TYPE_NAMES.get(conv, conv.__name__)
        raise MalformedDocument(
            f"<{elem.tag}> attribute {name}={text!r} is not a valid {kind}") from e


def _color_attr(elem: ET.Element, name: str):
    text = elem.get(name)
    if text is None:
        return WHITE
    try:
        return color_from_string(text)
    except ValueError as e:
        raise MalformedDocument(f"<{elem.tag}> attribute {name}={text!r} is not a color") from e


def _parse_root(data: bytes, expected: str) -> ET.Element:
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise MalformedDocument(f"Invalid XML: {e}") from e
    if root.tag != expected:
        raise MalformedDocument(f"Expected <{expected}> root element, found <{root.tag}>")
    return root


# =============================================================================
# PROPERTIES
# =============================================================================

def _properties_from_xml(elem: ET.Element) -> Tuple[Property, ...]:
    """
    Read the <properties> child of elem, in declaration order.

    Values stay raw strings; see properties.typed_value().
    Multi-line string values are written as element text instead of a
    value attribute.
    """
    props_elem = elem.find('properties')
    if props_elem is None:
        return ()
    props = []
    for prop_elem in props_elem.findall('property'):
        value = prop_elem.get('value')
        if value is None:
            value = prop_elem.text or ''
        props.append(Property(
            name=_attr(prop_elem, 'name'),
            type=prop_elem.get('type', STRING),
            value=value,
        ))
    return tuple(props)


# =============================================================================
# OBJECTS
# =============================================================================

def _points_from_xml(elem: ET.Element) -> Tuple[Point, ...]:
    """Parse points="x1,y1 x2,y2 ..." of a <polygon>."""
    text = _attr(elem, 'points')
    points = []
    for pair in text.split():
        try:
            x, y = pair.split(',')
            points.append(Point(float(x), float(y)))
        except ValueError as e:
            raise MalformedDocument(f"<polygon> has an invalid point {pair!r}") from e
    return tuple(points)


def _object_from_xml(elem: ET.Element) -> TileObject:
    polygon_elem = elem.find('polygon')
    return TileObject(
        id=_attr(elem, 'id', int, 0),
        name=elem.get('name', ''),
        # Tiled 1.9 renamed "type" to "class"
        type=elem.get('type', elem.get('class', '')),
        x=_attr(elem, 'x', float, 0.0),
        y=_attr(elem, 'y', float, 0.0),
        width=_attr(elem, 'width', float, None),
        height=_attr(elem, 'height', float, None),
        rotation=_attr(elem, 'rotation', float, 0.0),
        visible=_attr(elem, 'visible', _flag, True),
        gid=_attr(elem, 'gid', _raw_gid, None),
        polygon=_points_from_xml(polygon_elem) if polygon_elem is not None else None,
        properties=_properties_from_xml(elem),
    )


def _layer_common(elem: ET.Element) -> dict:
    """Attributes shared by every layer type."""
    return dict(
        name=elem.get('name', ''),
        id=_attr(elem, 'id', int, 0),
        visible=_attr(elem, 'visible', _flag, True),
        opacity=_attr(elem, 'opacity', float, 1.0),
        offsetx=_attr(elem, 'offsetx', float, 0.0),
        offsety=_attr(elem, 'offsety', float, 0.0),
        tintcolor=_color_attr(elem, 'tintcolor'),
        properties=_properties_from_xml(elem),
    )


def _objectgroup_from_xml(elem: ET.Element) -> ObjectGroup:
    objects = tuple(_object_from_xml(obj_elem) for obj_elem in elem.findall('object'))
    return ObjectGroup(objects=objects, **_layer_common(elem))


# =============================================================================
# TILE LAYER DATA
# =============================================================================

def _decompress(raw: bytes, compression: Optional[str]) -> bytes:
    if not compression:
        return raw
    try:
        if compression == 'zlib':
            return zlib.decompress(raw)
        if compression == 'gzip':
            return gzip.decompress(raw)
        if compression == 'zstd':
            # Tiled's frames do not always record the content size, which
            # the one-shot ZstdDecompressor.decompress() requires
            return zstandard.ZstdDecompressor().decompressobj().decompress(raw)
    except (zlib.error, OSError, EOFError, zstandard.ZstdError) as e:
        raise MalformedDocument(f"Corrupt {compression} tile data: {e}") from e
    raise MalformedDocument(f"Unsupported tile data compression '{compression}'")


def _decode_cells(data_elem: ET.Element) -> array.array:
    """
    Decode a <data> element into an array of raw 32-bit GIDs.

    The three encodings produce the same result: one unsigned int per
    cell, row-major, flip flags still packed in the high bits.
    """
    encoding = data_elem.get('encoding')
    compression = data_elem.get('compression')

    if encoding == 'csv':
        text = data_elem.text or ''
        try:
            gids = [_raw_gid(x) for x in text.replace('\n', '').split(',') if x.strip()]
        except ValueError as e:
            raise MalformedDocument(f"Invalid CSV tile data: {e}") from e
        return array.array('I', gids)

    if encoding == 'base64':
        text = ''.join((data_elem.text or '').split())
        try:
            raw = base64.b64decode(text, validate=True)
        except binascii.Error as e:
            raise MalformedDocument(f"Invalid base64 tile data: {e}") from e
        raw = _decompress(raw, compression)
        if len(raw) % 4:
            raise MalformedDocument(
                f"Tile data length {len(raw)} is not a multiple of 4 bytes")
        cells = array.array('I')
        cells.frombytes(raw)
        # Stored little-endian regardless of platform
        if sys.byteorder == 'big':
            cells.byteswap()
        return cells

    if encoding is None:
        return array.array('I', [
            _attr(tile_elem, 'gid', _raw_gid, 0) for tile_elem in data_elem.findall('tile')
        ])

    raise MalformedDocument(f"Unsupported tile data encoding '{encoding}'")


def _tilelayer_from_xml(elem: ET.Element, map_width: int, map_height: int) -> TileLayer:
    width = _attr(elem, 'width', int, map_width)
    height = _attr(elem, 'height', int, map_height)
    name = elem.get('name', '')

    if width > map_width or height > map_height:
        raise MalformedDocument(
            f"Layer '{name}' is {width}x{height}, larger than the "
            f"{map_width}x{map_height} map")

    data_elem = elem.find('data')
    if data_elem is None:
        raise MalformedDocument(f"Layer '{name}' has no <data> element")

    cells = _decode_cells(data_elem)
    if len(cells) != width * height:
        raise MalformedDocument(
            f"Layer '{name}' has {len(cells)} cells, expected {width}x{height}={width * height}")

    return TileLayer(width=width, height=height, cells=cells, **_layer_common(elem))


def _layers_from_xml(parent: ET.Element, map_width: int, map_height: int) -> Tuple[Layer, ...]:
    """
    Parse the layer children of <map> or <group>, recursively.

    Declaration order is kept: the first layer is the bottom-most.
    """
    layers: List[Layer] = []
    for child in parent:
        if child.tag == 'layer':
            layers.append(_tilelayer_from_xml(child, map_width, map_height))
        elif child.tag == 'objectgroup':
            layers.append(_objectgroup_from_xml(child))
        elif child.tag == 'group':
            layers.append(GroupLayer(
                layers=_layers_from_xml(child, map_width, map_height),
                **_layer_common(child)))
        # imagelayer and anything newer are skipped
    return tuple(layers)


# =============================================================================
# TILESETS
# =============================================================================

def _image_from_xml(elem: ET.Element) -> Image:
    return Image(
        source=elem.get('source', ''),
        width=_attr(elem, 'width', int, 0),
        height=_attr(elem, 'height', int, 0),
        trans=elem.get('trans'),
    )


def _tile_from_xml(elem: ET.Element) -> TileRecord:
    group_elem = elem.find('objectgroup')
    return TileRecord(
        id=_attr(elem, 'id', int),
        type=elem.get('type', elem.get('class', '')),
        objectgroup=_objectgroup_from_xml(group_elem) if group_elem is not None else None,
        properties=_properties_from_xml(elem),
    )


def _positive_or_none(value: Optional[int]) -> Optional[int]:
    # Tiled writes columns="0" for image collection tilesets
    return value if value else None


def _tileset_from_xml(elem: ET.Element) -> TilesetDefinition:
    """
    Parse a tileset definition from a <tileset> element.

    Used both for the root of a .tsx file and for tilesets embedded in a
    map (the firstgid attribute, if any, is read by the caller).
    """
    img_elem = elem.find('image')
    tiles = {}
    for tile_elem in elem.findall('tile'):
        tile = _tile_from_xml(tile_elem)
        tiles[tile.id] = tile

    return TilesetDefinition(
        name=elem.get('name', ''),
        tilewidth=_attr(elem, 'tilewidth', int),
        tileheight=_attr(elem, 'tileheight', int),
        spacing=_attr(elem, 'spacing', int, 0),
        margin=_attr(elem, 'margin', int, 0),
        tilecount=_attr(elem, 'tilecount', int, 0),
        columns=_positive_or_none(_attr(elem, 'columns', int, None)),
        rows=_positive_or_none(_attr(elem, 'rows', int, None)),
        image=_image_from_xml(img_elem) if img_elem is not None else None,
        tiles=tiles,
        properties=_properties_from_xml(elem),
    )


def _tileset_reference_from_xml(elem: ET.Element) -> TilesetReference:
    firstgid = _attr(elem, 'firstgid', int)
    source = elem.get('source')
    if source:
        # External: the TSX holds the definition, loaded on demand
        return TilesetReference(firstgid=firstgid, source=source)
    return TilesetReference(firstgid=firstgid, tileset=_tileset_from_xml(elem))


# =============================================================================
# PUBLIC API
# =============================================================================

def parse_tileset(data: bytes) -> TilesetDefinition:
    """
    Parse the bytes of a .tsx document.

    Raises:
    -------
    MalformedDocument : invalid XML, wrong root or schema violation
    """
    root = _parse_root(data, 'tileset')
    tileset = _tileset_from_xml(root)
    logger.debug("Parsed tileset '%s' (%d tile records)", tileset.name, len(tileset.tiles))
    return tileset


def parse_map(data: bytes) -> MapDocument:
    """
    Parse the bytes of a .tmx document.

    External tilesets are NOT loaded here: their references keep the
    source path and are resolved later through a TilesetResolver.

    Raises:
    -------
    MalformedDocument : invalid XML, wrong root or schema violation
    """
    root = _parse_root(data, 'map')

    width = _attr(root, 'width', int)
    height = _attr(root, 'height', int)

    tilesets = []
    for tileset_elem in root.findall('tileset'):
        ref = _tileset_reference_from_xml(tileset_elem)
        if tilesets and ref.firstgid <= tilesets[-1].firstgid:
            raise MalformedDocument(
                f"Tileset firstgid {ref.firstgid} does not follow {tilesets[-1].firstgid}")
        tilesets.append(ref)

    doc = MapDocument(
        width=width,
        height=height,
        tilewidth=_attr(root, 'tilewidth', int),
        tileheight=_attr(root, 'tileheight', int),
        version=root.get('version', '1.0'),
        orientation=root.get('orientation', 'orthogonal'),
        renderorder=root.get('renderorder', 'right-down'),
        tilesets=tuple(tilesets),
        layers=_layers_from_xml(root, width, height),
        properties=_properties_from_xml(root),
    )
    logger.debug("Parsed map %dx%d with %d tilesets and %d top-level layers",
                 doc.width, doc.height, len(doc.tilesets), len(doc.layers))
    return doc


def load_map(path: Union[str, Path], documents=None) -> MapDocument:
    """Read and parse a .tmx file through a document provider."""
    if documents is None:
        documents = FileDocumentProvider()
    return parse_map(documents(path))


def load_tileset(path: Union[str, Path], documents=None) -> TilesetDefinition:
    """Read and parse a .tsx file through a document provider."""
    if documents is None:
        documents = FileDocumentProvider()
    return parse_tileset(documents(path))
