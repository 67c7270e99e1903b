"""
Routing of "Target.member" properties to host objects

A property named "SpriteRenderer.sortingOrder" on a tile object asks the
host to set `sortingOrder` on the object's SpriteRenderer component. The
core never looks types up at runtime: the host registers, up front, one
handler per (target, member) pair it supports, and anything else is
skipped.

    router = PropertyRouter()

    @router.handler('SpriteRenderer', 'sortingOrder')
    def set_sorting_order(node, value, prop):
        node.sprite.sorting_order = value

    diagnostics = router.route(node, tile_object.properties, owner="object 'door'")
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .errors import Diagnostic, PropertyTypeError
from .properties import Property, PropertyValue, split_routed_name, typed_value

logger = logging.getLogger(__name__)

Handler = Callable[[Any, PropertyValue, Property], None]


class PropertyRouter:
    """Closed table of (target, member) -> handler."""

    def __init__(self):
        self._handlers: Dict[Tuple[str, str], Tuple[Handler, bool]] = {}

    def register(self, target: str, member: str, handler: Handler, raw: bool = False):
        """
        Register a handler.

        raw=True hands over the raw string when the property carries no
        type attribute, for members whose meaning depends on the host (e.g.
        a layer name that the host maps to a layer number). A typed
        property is always converted.
        """
        self._handlers[(target, member)] = (handler, raw)

    def handler(self, target: str, member: str, raw: bool = False):
        """Decorator form of register()."""
        def decorator(func: Handler) -> Handler:
            self.register(target, member, func, raw)
            return func
        return decorator

    def handles(self, name: str) -> bool:
        key = split_routed_name(name)
        return key is not None and key in self._handlers

    def route(self, host: Any, properties: Iterable[Property],
              owner: Optional[str] = None) -> List[Diagnostic]:
        """
        Apply every routable property to host.

        Returns the diagnostics of properties whose value could not be
        converted; those properties are skipped, the rest still apply.
        """
        diagnostics = []
        for prop in properties:
            key = split_routed_name(prop.name)
            if key is None:
                continue
            entry = self._handlers.get(key)
            if entry is None:
                logger.debug("No handler for property '%s'", prop.name)
                continue

            handler, raw = entry
            if raw and not prop.type_specified:
                value = prop.value
            else:
                try:
                    value = typed_value(prop, owner)
                except PropertyTypeError as e:
                    logger.warning("%s", e)
                    diagnostics.append(Diagnostic.from_error(e, prop))
                    continue
            handler(host, value, prop)
        return diagnostics
