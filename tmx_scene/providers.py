"""
Collaborators that give the core access to files

The parser and resolver never touch the file system themselves. They are
handed two callables:

    documents(path) -> bytes             contents of a .tmx/.tsx file
    images(path)    -> (width, height)   pixel size of an atlas image

The defaults below read from disk; a host with its own asset database
(or a test) passes its own.
"""

import os.path
from pathlib import Path
from typing import Callable, Dict, Mapping, Tuple, Union

from PIL import Image


PathLike = Union[str, Path]
DocumentProvider = Callable[[PathLike], bytes]
ImageProvider = Callable[[PathLike], Tuple[int, int]]


class FileDocumentProvider:
    """Reads documents from the local file system."""

    def __call__(self, path: PathLike) -> bytes:
        return Path(path).read_bytes()


class PILImageProvider:
    """
    Reads image dimensions with Pillow.

    Image.open() only parses the header; pixel data is never decoded,
    so this is cheap even for large atlases.
    """

    def __call__(self, path: PathLike) -> Tuple[int, int]:
        with Image.open(str(path)) as image:
            return image.size


class MemoryDocumentProvider:
    """
    Serves documents from a dict keyed by path.

    Paths are normalized the same way the resolver normalizes them, so
    "maps/../tiles/a.tsx" and "tiles/a.tsx" are the same entry.
    """

    def __init__(self, documents: Mapping[PathLike, Union[str, bytes]]):
        self.documents: Dict[str, bytes] = {}
        for path, data in documents.items():
            if isinstance(data, str):
                data = data.encode('utf-8')
            self.documents[normalize_path(path)] = data

    def __call__(self, path: PathLike) -> bytes:
        try:
            return self.documents[normalize_path(path)]
        except KeyError:
            raise FileNotFoundError(str(path)) from None


def normalize_path(path: PathLike) -> str:
    """Collapse "." and ".." segments without touching the file system."""
    return os.path.normpath(str(path)).replace('\\', '/')


def resolve_relative(document_path: PathLike, reference: str) -> str:
    """
    Resolve a path written inside a document.

    Tiled stores paths relative to the directory of the document that
    contains them:

        document_path = "maps/level1.tmx"
        reference     = "../tilesets/terrain.tsx"
        result        = "tilesets/terrain.tsx"
    """
    return normalize_path(Path(document_path).parent / reference)
