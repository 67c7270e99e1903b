"""Shared fixtures: a small map with one external and one embedded tileset."""

import pytest

from tmx_scene.providers import MemoryDocumentProvider, normalize_path
from tmx_scene.resolver import TilesetCache


TERRAIN_TSX = """<?xml version="1.0" encoding="UTF-8"?>
<tileset version="1.10" name="terrain" tilewidth="16" tileheight="16"
         spacing="2" margin="1" tilecount="6">
 <image source="terrain.png"/>
 <tile id="3">
  <properties>
   <property name="solid" type="bool" value="true"/>
  </properties>
  <objectgroup draworder="index">
   <object id="1" x="0" y="8" width="16" height="8"/>
  </objectgroup>
 </tile>
</tileset>
"""

LEVEL_TMX = """<?xml version="1.0" encoding="UTF-8"?>
<map version="1.10" orientation="orthogonal" renderorder="right-down"
     width="4" height="3" tilewidth="16" tileheight="16" infinite="0">
 <properties>
  <property name="music" value="forest.ogg"/>
 </properties>
 <tileset firstgid="1" source="../tilesets/terrain.tsx"/>
 <tileset firstgid="13" name="props" tilewidth="32" tileheight="32" columns="4">
  <image source="props.png" width="128" height="64"/>
  <tile id="1">
   <objectgroup>
    <object id="1" x="4" y="2">
     <polygon points="0,0 24,0 24,28"/>
    </object>
   </objectgroup>
  </tile>
 </tileset>
 <layer id="1" name="Ground" width="4" height="3">
  <data encoding="csv">
1,2,3,4,
0,2147483653,0,13,
14,0,0,4
</data>
 </layer>
 <group id="2" name="Decor" offsetx="8" offsety="16" tintcolor="#80ff0000">
  <objectgroup id="3" name="Things">
   <object id="1" name="door" gid="14" x="32" y="48" width="32" height="32" rotation="90">
    <properties>
     <property name="SpriteRenderer.sortingOrder" type="int" value="3"/>
     <property name="health" type="int" value="N/A"/>
     <property name="label" value="Front door"/>
    </properties>
   </object>
   <object id="2" name="spawn" x="8" y="8"/>
  </objectgroup>
  <layer id="4" name="Overlay" width="4" height="3">
   <data encoding="csv">0,0,0,0,0,0,0,0,0,0,0,99</data>
  </layer>
 </group>
</map>
"""

IMAGE_SIZES = {
    "tilesets/terrain.png": (70, 52),
}


class FakeImages:
    """Image provider answering from a dict and counting lookups."""

    def __init__(self, sizes):
        self.sizes = {normalize_path(k): v for k, v in sizes.items()}
        self.calls = []

    def __call__(self, path):
        self.calls.append(normalize_path(path))
        try:
            return self.sizes[normalize_path(path)]
        except KeyError:
            raise FileNotFoundError(str(path)) from None


class CountingDocuments(MemoryDocumentProvider):
    def __init__(self, documents):
        super().__init__(documents)
        self.calls = []

    def __call__(self, path):
        self.calls.append(normalize_path(path))
        return super().__call__(path)


@pytest.fixture
def documents():
    return CountingDocuments({
        "maps/level1.tmx": LEVEL_TMX,
        "tilesets/terrain.tsx": TERRAIN_TSX,
    })


@pytest.fixture
def images():
    return FakeImages(IMAGE_SIZES)


@pytest.fixture
def cache(documents, images):
    return TilesetCache(documents, images)


def _make_map(body: str, width: int = 2, height: int = 2, tile: int = 16) -> bytes:
    return (
        f'<map version="1.10" width="{width}" height="{height}" '
        f'tilewidth="{tile}" tileheight="{tile}">{body}</map>'
    ).encode('utf-8')


@pytest.fixture
def make_map():
    """Factory wrapping layer/tileset XML in a <map> root."""
    return _make_map
