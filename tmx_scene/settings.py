"""Import settings"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class ImportSettings:
    """
    Options of an import session.

    pixels_per_unit : float, optional
        Document pixels per world unit. None (or <= 0) uses the map's
        tile height, so one tile row is one unit.
    strict_properties : bool
        Raise PropertyTypeError instead of recording a diagnostic.
    """
    pixels_per_unit: Optional[float] = None
    strict_properties: bool = False

    def unit_scale(self, tileheight: int) -> float:
        """Pixels per unit to use for a map with this tile height."""
        if self.pixels_per_unit is not None and self.pixels_per_unit > 0:
            return float(self.pixels_per_unit)
        return float(tileheight) if tileheight > 0 else 1.0
