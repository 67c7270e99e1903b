"""
Global tile ID (GID) codec

=============================================================================
BIT LAYOUT
=============================================================================

Every cell of a tile layer (and the gid of a tile object) is an unsigned
32-bit integer. The three highest bits are transform flags, the rest is
the tile ID:

    bit 31   bit 30   bit 29   bits 28..0
    +------+--------+--------+---------------------------+
    |  H   |   V    |   D    |        tile id            |
    +------+--------+--------+---------------------------+

    H = flipped horizontally
    V = flipped vertically
    D = flipped diagonally (swap X/Y axes, used for 90 degree rotations)

Tile ID 0 is the empty cell. Any other value is a GLOBAL ID that has to
be resolved to a tileset (see resolver.py).

Example:
    0x80000005 -> tile 5, mirrored horizontally
    0x60000005 -> tile 5, flipped vertically and diagonally

The diagonal flag is kept in the decoded value even though the placement
helpers in importer.py only apply H and V.

=============================================================================
"""

from typing import NamedTuple, Tuple

import numpy as np


FLIPPED_HORIZONTALLY = 1 << 31
FLIPPED_VERTICALLY = 1 << 30
FLIPPED_DIAGONALLY = 1 << 29

FLIP_MASK = FLIPPED_HORIZONTALLY | FLIPPED_VERTICALLY | FLIPPED_DIAGONALLY
TILE_ID_MASK = ~FLIP_MASK & 0xFFFFFFFF

MAX_RAW = 0xFFFFFFFF


class DecodedGid(NamedTuple):
    """A raw cell value split into tile ID and flip flags."""
    tile_id: int
    flip_h: bool = False
    flip_v: bool = False
    flip_d: bool = False

    @property
    def is_empty(self) -> bool:
        return self.tile_id == 0


def decode(raw: int) -> DecodedGid:
    """
    Split a raw 32-bit cell value into (tile_id, flip_h, flip_v, flip_d).

    Raises:
    -------
    ValueError : raw is outside the unsigned 32-bit range
    """
    if not 0 <= raw <= MAX_RAW:
        raise ValueError(f"GID out of 32-bit range: {raw}")
    return DecodedGid(
        raw & TILE_ID_MASK,
        bool(raw & FLIPPED_HORIZONTALLY),
        bool(raw & FLIPPED_VERTICALLY),
        bool(raw & FLIPPED_DIAGONALLY),
    )


def encode(tile_id: int, flip_h: bool = False, flip_v: bool = False,
           flip_d: bool = False) -> int:
    """
    Pack a tile ID and flip flags back into a raw cell value.

    Exact inverse of decode(): encode(*decode(x)) == x.
    """
    if not 0 <= tile_id <= TILE_ID_MASK:
        raise ValueError(f"Tile ID out of 29-bit range: {tile_id}")
    raw = tile_id
    if flip_h:
        raw |= FLIPPED_HORIZONTALLY
    if flip_v:
        raw |= FLIPPED_VERTICALLY
    if flip_d:
        raw |= FLIPPED_DIAGONALLY
    return raw


def decode_array(raw: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Vectorized decode() for a whole grid.

    Returns (tile_ids, flip_h, flip_v, flip_d) with the same shape as
    the input; tile_ids is uint32, the flags are bool arrays.
    """
    raw = np.asarray(raw, dtype=np.uint32)
    tile_ids = raw & np.uint32(TILE_ID_MASK)
    flip_h = (raw & np.uint32(FLIPPED_HORIZONTALLY)) != 0
    flip_v = (raw & np.uint32(FLIPPED_VERTICALLY)) != 0
    flip_d = (raw & np.uint32(FLIPPED_DIAGONALLY)) != 0
    return tile_ids, flip_h, flip_v, flip_d
