"""
Resolution of global tile IDs to tilesets

=============================================================================
ALGORITHM
=============================================================================

A map numbers the tiles of all its tilesets in one global ID space. Each
tileset reference claims the range starting at its firstgid:

    Tileset A: firstgid=1
    Tileset B: firstgid=50
    Tileset C: firstgid=200

    GID 0:   below every firstgid       -> UnresolvedTile (empty cell)
    GID 20:  A, local index 19
    GID 75:  B, local index 25
    GID 250: C, local index 50

The owner is the LAST reference (in declaration order) whose firstgid is
<= gid, and local index = gid - firstgid.

=============================================================================
EXTERNAL TILESETS AND THE CACHE
=============================================================================

    <tileset firstgid="1" source="../tilesets/terrain.tsx"/>

The source path is relative to the map. The TSX is read and parsed the
first time a resolver needs it, through a TilesetCache keyed by the
normalized path. Several maps sharing a tileset (possibly loaded from
different threads) share one parsed definition.

The cache also remembers atlas image sizes, used to fill in an <image>
whose width/height were not written in the document.

Entries are immutable and never evicted; create a new cache to start
over.

=============================================================================
"""

import dataclasses
import logging
import threading
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import MalformedDocument, UnresolvedTile
from .gid import TILE_ID_MASK
from .model import TilesetDefinition, TilesetReference
from .parser import parse_tileset
from .providers import (
    DocumentProvider, FileDocumentProvider, ImageProvider, PathLike,
    PILImageProvider, normalize_path, resolve_relative,
)

logger = logging.getLogger(__name__)


def select_reference(gid: int, references: Sequence[TilesetReference]) -> Tuple[TilesetReference, int]:
    """
    Find the reference owning a GID and the GID's local index.

    Parameters:
    -----------
    gid : int
        Tile ID with the flip flags already removed (see gid.decode)
    references : sequence of TilesetReference
        In declaration order

    Raises:
    -------
    UnresolvedTile : gid is smaller than every firstgid
    """
    if not 0 <= gid <= TILE_ID_MASK:
        raise ValueError(f"GID {gid} still carries flip flags or is out of range")

    owner = None
    for ref in references:
        if ref.firstgid <= gid:
            owner = ref
    if owner is None:
        raise UnresolvedTile(gid)
    return owner, gid - owner.firstgid


def resolve(gid: int, references: Sequence[TilesetReference]) -> Tuple[TilesetDefinition, int]:
    """
    Resolve a GID against references with embedded definitions.

    Maps using external tilesets go through TilesetResolver.resolve().
    """
    ref, local_index = select_reference(gid, references)
    if ref.tileset is None:
        raise UnresolvedTile(gid, f"GID {gid} belongs to external tileset "
                                  f"'{ref.source}', which is not loaded")
    return ref.tileset, local_index


class TilesetCache:
    """
    Read-through cache of external tilesets and atlas image sizes.

    A single lock serializes first loads: the first caller for a path
    reads and parses it, later callers get the stored result.
    """

    def __init__(self, documents: Optional[DocumentProvider] = None,
                 images: Optional[ImageProvider] = None):
        self.documents = documents if documents is not None else FileDocumentProvider()
        self.images = images if images is not None else PILImageProvider()
        # Reentrant: loading a tileset looks up its image size
        self._lock = threading.RLock()
        self._tilesets: Dict[str, TilesetDefinition] = {}
        self._image_sizes: Dict[str, Tuple[int, int]] = {}

    def __len__(self):
        return len(self._tilesets)

    def __contains__(self, path: PathLike) -> bool:
        return normalize_path(path) in self._tilesets

    def tileset(self, path: PathLike) -> TilesetDefinition:
        """
        Parsed (and image-completed) definition of the .tsx at path.

        Raises:
        -------
        MalformedDocument : the file cannot be read or is not a valid TSX
        """
        key = normalize_path(path)
        with self._lock:
            cached = self._tilesets.get(key)
            if cached is not None:
                return cached

            try:
                data = self.documents(key)
            except OSError as e:
                raise MalformedDocument(f"Cannot read tileset '{key}': {e}") from e

            try:
                tileset = parse_tileset(data)
            except MalformedDocument as e:
                raise MalformedDocument(f"{key}: {e}") from e

            tileset = self.complete_image(tileset, key)
            self._tilesets[key] = tileset
            logger.info("Loaded tileset '%s' from %s", tileset.name, key)
            return tileset

    def image_size(self, path: PathLike) -> Optional[Tuple[int, int]]:
        """
        Pixel size of the image at path, or None if it cannot be read.

        Failures are logged and not cached.
        """
        key = normalize_path(path)
        with self._lock:
            size = self._image_sizes.get(key)
            if size is not None:
                return size
            try:
                width, height = self.images(key)
            except OSError as e:
                logger.warning("Could not read image size of %s: %s", key, e)
                return None
            self._image_sizes[key] = (width, height)
            return width, height

    def complete_image(self, tileset: TilesetDefinition,
                       document_path: Optional[PathLike]) -> TilesetDefinition:
        """
        Fill in undeclared image dimensions from the image itself.

        The image source is relative to document_path, the file that
        declares the tileset (the .tsx for external tilesets, the map for
        embedded ones).
        """
        image = tileset.image
        if image is None or image.has_size or not image.source:
            return tileset

        if document_path is None:
            image_path = normalize_path(image.source)
        else:
            image_path = resolve_relative(document_path, image.source)

        size = self.image_size(image_path)
        if size is None:
            return tileset
        width, height = size
        return dataclasses.replace(
            tileset, image=dataclasses.replace(image, width=width, height=height))


class TilesetResolver:
    """
    Resolves GIDs for one map, loading its external tilesets on demand.

    Parameters:
    -----------
    references : sequence of TilesetReference
        MapDocument.tilesets, in declaration order
    base_path : str or Path, optional
        Path of the map document; external sources and image paths are
        relative to it
    cache : TilesetCache, optional
        Shared cache; a private one is created when omitted
    """

    def __init__(self, references: Sequence[TilesetReference],
                 base_path: Optional[PathLike] = None,
                 cache: Optional[TilesetCache] = None):
        self.references = tuple(references)
        self.base_path = base_path
        self.cache = cache if cache is not None else TilesetCache()
        self._definitions: Dict[int, TilesetDefinition] = {}

    def source_path(self, ref: TilesetReference) -> str:
        """Normalized path of an external reference's .tsx."""
        if self.base_path is None:
            return normalize_path(ref.source)
        return resolve_relative(self.base_path, ref.source)

    def definition(self, ref: TilesetReference) -> TilesetDefinition:
        """Definition behind a reference, loading it on first use."""
        definition = self._definitions.get(ref.firstgid)
        if definition is None:
            if ref.is_external:
                definition = self.cache.tileset(self.source_path(ref))
            else:
                definition = self.cache.complete_image(ref.tileset, self.base_path)
            self._definitions[ref.firstgid] = definition
        return definition

    def definitions(self) -> List[Tuple[TilesetReference, TilesetDefinition]]:
        """Every (reference, definition) pair, loading all of them."""
        return [(ref, self.definition(ref)) for ref in self.references]

    def resolve(self, gid: int) -> Tuple[TilesetDefinition, int]:
        """
        Owning tileset and local index of a GID.

        Raises:
        -------
        UnresolvedTile : no tileset owns gid
        MalformedDocument : the owning external tileset cannot be loaded
        """
        ref, local_index = select_reference(gid, self.references)
        return self.definition(ref), local_index

    def first_gid(self, tileset: TilesetDefinition) -> Optional[int]:
        """firstgid under which this map references tileset."""
        for ref in self.references:
            if self.definition(ref) is tileset:
                return ref.firstgid
        return None
