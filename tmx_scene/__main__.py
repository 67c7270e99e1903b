#!/usr/bin/env python3

"""
TMX Scene - summary of what an import would produce

Usage:
    python -m tmx_scene [-v] <map.tmx>

Prints the layer tree, the resolved tilesets with their atlas grids and
every diagnostic collected while resolving the tile layers.
"""

import logging
import sys
from pathlib import Path

from . import atlas
from .errors import LayoutError, TiledError
from .importer import TiledImport
from .model import LayerKind


def print_summary(session: TiledImport):
    doc = session.document
    print(f"Map: {doc.width}x{doc.height} tiles of {doc.tilewidth}x{doc.tileheight} px "
          f"({doc.pixel_width}x{doc.pixel_height} px, {doc.orientation})")

    print("\nTilesets:")
    for ref, tileset in session.resolver.definitions():
        origin = ref.source or "embedded"
        try:
            columns, rows = atlas.grid_size(tileset)
            grid = f"{columns}x{rows}"
        except LayoutError as e:
            grid = f"no layout ({e})"
        print(f"  [{ref.firstgid}] {tileset.name} - {origin} - {grid}")

    print("\nLayers:")
    for layer, depth in session.walk_layers():
        indent = "  " * (depth + 1)
        if layer.kind is LayerKind.TILE:
            cells = sum(1 for _ in session.iter_cells(layer))
            print(f"{indent}{layer.name} (tiles, {cells} cells)")
        elif layer.kind is LayerKind.OBJECTS:
            print(f"{indent}{layer.name} (objects, {len(layer.objects)})")
        else:
            print(f"{indent}{layer.name} (group)")

    if session.diagnostics:
        print(f"\nDiagnostics: {len(session.diagnostics)}")
        for diagnostic in session.diagnostics:
            print(f"  {diagnostic.kind}: {diagnostic.message}")


def main():
    args = sys.argv[1:]
    verbose = '-v' in args
    args = [a for a in args if a != '-v']

    if len(args) != 1:
        print(__doc__)
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )

    source_path = args[0]
    if not Path(source_path).exists():
        print(f"Error: File '{source_path}' not found")
        sys.exit(1)

    try:
        session = TiledImport.load(source_path)
    except TiledError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print_summary(session)


if __name__ == "__main__":
    main()
