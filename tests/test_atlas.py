"""Tests for atlas layout."""

import pytest

from tmx_scene.atlas import PixelRect, columns, grid_size, iter_tile_rects, rows, tile_rect
from tmx_scene.errors import LayoutError
from tmx_scene.model import Image, TilesetDefinition


def _tileset(**kwargs) -> TilesetDefinition:
    values = dict(name="t", tilewidth=32, tileheight=32)
    values.update(kwargs)
    return TilesetDefinition(**values)


class TestExplicitGrid:
    """columns given in the document."""

    def test_second_row_second_column(self) -> None:
        tileset = _tileset(columns=4)
        assert tile_rect(tileset, 5) == PixelRect(32, 32, 32, 32)

    def test_first_tile(self) -> None:
        assert tile_rect(_tileset(columns=4), 0) == PixelRect(0, 0, 32, 32)

    def test_margin_and_spacing(self) -> None:
        tileset = _tileset(tilewidth=16, tileheight=16, margin=2, spacing=1, columns=3)
        # local 4 -> col 1, row 1
        assert tile_rect(tileset, 4) == PixelRect(19, 19, 16, 16)

    def test_explicit_rows_bound_the_grid(self) -> None:
        tileset = _tileset(columns=2, rows=2)
        assert tile_rect(tileset, 3) == PixelRect(32, 32, 32, 32)
        with pytest.raises(LayoutError):
            tile_rect(tileset, 4)


class TestInferredGrid:
    """columns/rows derived from the image."""

    def test_columns_from_width(self) -> None:
        tileset = _tileset(spacing=2, image=Image("a.png", 130, 64))
        assert columns(tileset) == 3

    def test_rows_use_height_not_width(self) -> None:
        tileset = _tileset(image=Image("a.png", 256, 64))
        assert grid_size(tileset) == (8, 2)

    def test_margin_on_both_sides(self) -> None:
        tileset = _tileset(tilewidth=16, tileheight=16, margin=1, spacing=2,
                           image=Image("a.png", 70, 52))
        assert grid_size(tileset) == (3, 2)
        assert tile_rect(tileset, 5) == PixelRect(37, 19, 16, 16)

    def test_leftover_pixels_ignored(self) -> None:
        tileset = _tileset(image=Image("a.png", 100, 40))
        assert grid_size(tileset) == (3, 1)

    def test_index_beyond_image(self) -> None:
        tileset = _tileset(image=Image("a.png", 64, 64))
        with pytest.raises(LayoutError, match="outside"):
            tile_rect(tileset, 4)

    def test_unknown_height_keeps_rects_available(self) -> None:
        tileset = _tileset(columns=4, image=Image("a.png", 128, 0))
        assert rows(tileset) is None
        assert tile_rect(tileset, 9) == PixelRect(32, 64, 32, 32)
        with pytest.raises(LayoutError, match="row"):
            grid_size(tileset)


class TestLayoutErrors:
    """Geometry that cannot be computed."""

    @pytest.mark.parametrize("width, height", [(0, 32), (32, 0), (-1, 32)])
    def test_tile_size_must_be_positive(self, width, height) -> None:
        tileset = _tileset(tilewidth=width, tileheight=height, columns=4)
        with pytest.raises(LayoutError, match="tile size"):
            tile_rect(tileset, 0)

    def test_unknown_image_size(self) -> None:
        tileset = _tileset(image=Image("a.png"))
        with pytest.raises(LayoutError, match="image width"):
            tile_rect(tileset, 0)

    def test_no_image(self) -> None:
        with pytest.raises(LayoutError):
            tile_rect(_tileset(), 0)

    def test_image_narrower_than_a_tile(self) -> None:
        with pytest.raises(LayoutError):
            columns(_tileset(image=Image("a.png", 16, 64)))

    def test_negative_index(self) -> None:
        with pytest.raises(LayoutError):
            tile_rect(_tileset(columns=4), -1)

    def test_error_names_tileset(self) -> None:
        with pytest.raises(LayoutError) as excinfo:
            tile_rect(_tileset(name="broken"), 0)
        assert excinfo.value.tileset_name == "broken"


class TestIterTileRects:
    def test_row_major(self) -> None:
        tileset = _tileset(tilewidth=16, tileheight=16, image=Image("a.png", 32, 32))
        cells = list(iter_tile_rects(tileset))
        assert [(i, col, row) for i, col, row, _ in cells] == [
            (0, 0, 0), (1, 1, 0), (2, 0, 1), (3, 1, 1)]
        assert cells[3][3] == PixelRect(16, 16, 16, 16)
