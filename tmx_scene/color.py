"""
Color values in Tiled's textual form

Tiled writes colors as #RRGGBB (opaque) or #AARRGGBB (alpha FIRST, unlike
most HTML-style notations). Opaque white is the "no tint" sentinel: it is
what an absent tintcolor attribute means, and it serializes back to None.
"""

import re
from typing import NamedTuple, Optional


_HEX_RE = re.compile(r'^[0-9a-fA-F]+$')


class Color(NamedTuple):
    """RGBA color, 8 bits per channel."""
    r: int
    g: int
    b: int
    a: int = 255

    @property
    def is_opaque(self) -> bool:
        return self.a == 255


WHITE = Color(255, 255, 255, 255)


def color_from_string(text: Optional[str]) -> Color:
    """
    Parse a Tiled color string.

    None means "attribute absent" and yields opaque white.

    Raises:
    -------
    ValueError : the text is not 6 or 8 hex digits
    """
    if text is None:
        return WHITE

    digits = text.strip()
    if digits.startswith('#'):
        digits = digits[1:]

    if len(digits) not in (6, 8) or not _HEX_RE.match(digits):
        raise ValueError(f"Invalid color: {text!r}")

    # #AARRGGBB -> alpha is the leading byte
    if len(digits) == 8:
        alpha = int(digits[0:2], 16)
        digits = digits[2:]
    else:
        alpha = 255

    return Color(
        int(digits[0:2], 16),
        int(digits[2:4], 16),
        int(digits[4:6], 16),
        alpha,
    )


def color_to_string(color: Color) -> Optional[str]:
    """
    Format a color the way Tiled writes it.

    White -> None (attribute omitted), opaque -> #rrggbb,
    translucent -> #aarrggbb. Always lowercase.
    """
    if color == WHITE:
        return None
    rgb = f"{color.r:02x}{color.g:02x}{color.b:02x}"
    if color.is_opaque:
        return "#" + rgb
    return f"#{color.a:02x}" + rgb
