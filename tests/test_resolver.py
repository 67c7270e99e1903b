"""Tests for GID resolution and the tileset cache."""

import threading

import pytest

from conftest import LEVEL_TMX, TERRAIN_TSX
from tmx_scene.errors import MalformedDocument, UnresolvedTile
from tmx_scene.model import Image, TilesetDefinition, TilesetReference
from tmx_scene.parser import parse_map
from tmx_scene.providers import MemoryDocumentProvider
from tmx_scene.resolver import TilesetCache, TilesetResolver, resolve, select_reference


def _tileset(name: str) -> TilesetDefinition:
    return TilesetDefinition(name=name, tilewidth=16, tileheight=16)


@pytest.fixture
def references():
    return [
        TilesetReference(firstgid=1, tileset=_tileset("a")),
        TilesetReference(firstgid=50, tileset=_tileset("b")),
        TilesetReference(firstgid=200, tileset=_tileset("c")),
    ]


class TestResolve:
    """Greatest firstgid <= gid wins."""

    def test_middle_tileset(self, references) -> None:
        tileset, local_index = resolve(75, references)
        assert tileset.name == "b"
        assert local_index == 25

    @pytest.mark.parametrize("gid, name, local_index", [
        (1, "a", 0),
        (49, "a", 48),
        (50, "b", 0),
        (199, "b", 149),
        (200, "c", 0),
        (100000, "c", 99800),
    ])
    def test_boundaries(self, references, gid, name, local_index) -> None:
        tileset, index = resolve(gid, references)
        assert (tileset.name, index) == (name, local_index)

    def test_zero_is_unresolved(self, references) -> None:
        with pytest.raises(UnresolvedTile) as excinfo:
            resolve(0, references)
        assert excinfo.value.gid == 0

    def test_no_tilesets(self) -> None:
        with pytest.raises(UnresolvedTile):
            resolve(5, [])

    def test_flip_flags_must_be_removed_first(self, references) -> None:
        with pytest.raises(ValueError):
            select_reference(0x80000005, references)

    def test_external_reference_needs_a_resolver(self) -> None:
        refs = [TilesetReference(firstgid=1, source="a.tsx")]
        with pytest.raises(UnresolvedTile, match="not loaded"):
            resolve(3, refs)


class TestTilesetResolver:
    """External tilesets relative to the map, through the cache."""

    @pytest.fixture
    def doc(self):
        return parse_map(LEVEL_TMX.encode('utf-8'))

    def test_empty_cache_is_kept(self, doc, cache) -> None:
        assert len(cache) == 0
        resolver = TilesetResolver(doc.tilesets, "maps/level1.tmx", cache)
        assert resolver.cache is cache

    def test_empty_memory_provider_is_kept(self, images) -> None:
        documents = MemoryDocumentProvider({})
        assert TilesetCache(documents, images).documents is documents

    def test_external_tileset_loaded_relative_to_map(self, doc, cache, documents) -> None:
        resolver = TilesetResolver(doc.tilesets, "maps/level1.tmx", cache)
        tileset, local_index = resolver.resolve(4)
        assert tileset.name == "terrain"
        assert local_index == 3
        assert documents.calls == ["tilesets/terrain.tsx"]

    def test_image_size_filled_in(self, doc, cache, images) -> None:
        resolver = TilesetResolver(doc.tilesets, "maps/level1.tmx", cache)
        tileset, _ = resolver.resolve(1)
        assert (tileset.image.width, tileset.image.height) == (70, 52)
        assert images.calls == ["tilesets/terrain.png"]

    def test_declared_image_size_is_kept(self, doc, cache, images) -> None:
        resolver = TilesetResolver(doc.tilesets, "maps/level1.tmx", cache)
        tileset, local_index = resolver.resolve(14)
        assert tileset.name == "props"
        assert local_index == 1
        assert (tileset.image.width, tileset.image.height) == (128, 64)
        assert images.calls == []

    def test_loaded_once_per_path(self, doc, cache, documents) -> None:
        first = TilesetResolver(doc.tilesets, "maps/level1.tmx", cache)
        second = TilesetResolver(doc.tilesets, "maps/./level1.tmx", cache)
        assert first.resolve(2)[0] is second.resolve(3)[0]
        assert documents.calls.count("tilesets/terrain.tsx") == 1
        assert "tilesets/terrain.tsx" in cache
        assert len(cache) == 1

    def test_definitions_in_order(self, doc, cache) -> None:
        resolver = TilesetResolver(doc.tilesets, "maps/level1.tmx", cache)
        pairs = resolver.definitions()
        assert [(ref.firstgid, t.name) for ref, t in pairs] == [(1, "terrain"), (13, "props")]
        assert resolver.first_gid(pairs[1][1]) == 13

    def test_missing_external_tileset(self, doc, images) -> None:
        cache = TilesetCache(MemoryDocumentProvider({}), images)
        resolver = TilesetResolver(doc.tilesets, "maps/level1.tmx", cache)
        with pytest.raises(MalformedDocument, match="terrain.tsx"):
            resolver.resolve(1)
        # Tiles of the embedded tileset still resolve
        assert resolver.resolve(13)[0].name == "props"

    def test_malformed_external_tileset(self, doc, images) -> None:
        documents = MemoryDocumentProvider({"tilesets/terrain.tsx": "<tileset name='x'/>"})
        resolver = TilesetResolver(doc.tilesets, "maps/level1.tmx", TilesetCache(documents, images))
        with pytest.raises(MalformedDocument, match="tilewidth"):
            resolver.resolve(1)

    def test_unreadable_image_leaves_size_unknown(self, doc) -> None:
        documents = MemoryDocumentProvider({"tilesets/terrain.tsx": TERRAIN_TSX})

        def no_images(path):
            raise FileNotFoundError(path)

        resolver = TilesetResolver(doc.tilesets, "maps/level1.tmx", TilesetCache(documents, no_images))
        tileset, _ = resolver.resolve(1)
        assert not tileset.image.has_size


class TestTilesetCacheConcurrency:
    """Concurrent first loads converge on one definition."""

    def test_threads_share_one_load(self) -> None:
        calls = []
        lock = threading.Lock()
        memory = MemoryDocumentProvider({"t.tsx": TERRAIN_TSX})

        def documents(path):
            with lock:
                calls.append(path)
            return memory(path)

        cache = TilesetCache(documents, lambda path: (70, 52))
        results = []

        def load():
            results.append(cache.tileset("t.tsx"))

        threads = [threading.Thread(target=load) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(calls) == 1
        assert len(results) == 8
        assert all(result is results[0] for result in results)

    def test_image_completion_for_embedded_tileset(self) -> None:
        cache = TilesetCache(MemoryDocumentProvider({}), lambda path: (64, 32))
        tileset = TilesetDefinition(name="t", tilewidth=16, tileheight=16,
                                    image=Image(source="../img/t.png"))
        completed = cache.complete_image(tileset, "maps/level.tmx")
        assert (completed.image.width, completed.image.height) == (64, 32)
        assert tileset.image.width == 0
