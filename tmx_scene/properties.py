"""
Custom properties: a flat bag of (name, type, value) triples

=============================================================================
STORAGE VS CONVERSION
=============================================================================

Tiled lets any map, layer, tileset, tile or object carry properties:

    <properties>
        <property name="solid" type="bool" value="true"/>
        <property name="SpriteRenderer.sortingOrder" type="int" value="3"/>
        <property name="description">A long
multi-line text</property>
    </properties>

Parsing stores them losslessly, raw string value and declared type tag,
in declaration order. Conversion to Python values happens on demand in
typed_value(), so one malformed value never breaks the parse of the
document that contains it.

=============================================================================
TYPES
=============================================================================

    float  -> float  (plain decimal, optional exponent; no nan or inf)
    int    -> int    (plain decimal digits, optional sign)
    bool   -> bool   ("true"/"false", any case; "1"/"0")
    color  -> Color  (#RRGGBB or #AARRGGBB)
    string -> str    (default when the type attribute is absent)

Other Tiled tags (file, object, class) are kept verbatim and read as
strings.

=============================================================================
ROUTING NAMES
=============================================================================

A name of the form "Target.member" addresses a member of a component on
the host object, e.g. "SpriteRenderer.sortingOrder". The bag itself does
not interpret names; split_routed_name() is the helper the routing table
(routing.py) uses.

=============================================================================
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple, Union

from .color import Color, color_from_string
from .errors import PropertyTypeError


PropertyValue = Union[float, int, bool, Color, str]

STRING = 'string'
TYPED_TAGS = ('float', 'int', 'bool', 'color', STRING)

# Plain decimal forms only: no digit separators, no nan or inf
_INT_RE = re.compile(r'[+-]?[0-9]+')
_FLOAT_RE = re.compile(r'[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?')


@dataclass(frozen=True)
class Property:
    """Custom property attached to a map element."""
    name: str                    # Property name, may contain "Target.member"
    type: str = STRING           # Declared type tag
    value: str = ''              # Raw value as written in the document

    @property
    def type_specified(self) -> bool:
        return self.type != STRING


def _parse_number(text: str, pattern, conv):
    text = text.strip()
    if not pattern.fullmatch(text):
        raise ValueError(text)
    return conv(text)


def _parse_bool(text: str) -> bool:
    lowered = text.strip().lower()
    if lowered in ('true', '1'):
        return True
    if lowered in ('false', '0'):
        return False
    raise ValueError(text)


def typed_value(prop: Property, owner: Optional[str] = None) -> PropertyValue:
    """
    Convert a property's raw value according to its type tag.

    Parameters:
    -----------
    prop : Property
        The property to convert
    owner : str, optional
        Description of the element carrying the property, used in errors

    Raises:
    -------
    PropertyTypeError : the raw value does not parse as the declared type
    """
    try:
        if prop.type == 'int':
            return _parse_number(prop.value, _INT_RE, int)
        if prop.type == 'float':
            return _parse_number(prop.value, _FLOAT_RE, float)
        if prop.type == 'bool':
            return _parse_bool(prop.value)
        if prop.type == 'color':
            return color_from_string(prop.value)
    except ValueError as e:
        raise PropertyTypeError(prop.name, prop.type, prop.value, owner) from e
    return prop.value


def find_property(properties: Iterable[Property], name: str) -> Optional[Property]:
    """First property with the given name, or None."""
    for prop in properties:
        if prop.name == name:
            return prop
    return None


def split_routed_name(name: str) -> Optional[Tuple[str, str]]:
    """
    Split "Target.member" into ("Target", "member").

    Returns None for names that are not routable: no dot, more than one
    dot, or an empty segment.
    """
    parts = name.split('.')
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return None
    return parts[0], parts[1]


def routed_properties(properties: Iterable[Property]) -> List[Property]:
    """Properties whose names follow the Target.member convention."""
    return [p for p in properties if split_routed_name(p.name) is not None]
