"""The floating origin marker and the root of a high precision hierarchy."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from bigspace.world import World

logger = logging.getLogger(__name__)


class FloatingOrigin:
    """Marks the entity whose cell is the rendering origin of its big space.

    There should be exactly one such entity within each :class:`BigSpace` hierarchy.
    """

    def __eq__(self, other: object) -> bool:
        return isinstance(other, FloatingOrigin)

    def __hash__(self) -> int:
        return hash(FloatingOrigin)

    def __repr__(self) -> str:
        return "FloatingOrigin()"


@dataclass
class BigSpace:
    """Marks the root of a hierarchy of grids and tracks its floating origin."""

    floating_origin: int | None = None

    def validate_floating_origin(self, this_entity: int, world: World) -> int | None:
        """The floating origin, if it exists and descends from ``this_entity``."""
        origin = self.floating_origin
        if origin is None or origin not in world:
            return None
        root = None
        for root in world.ancestors(origin):
            pass
        if root is None or root != this_entity:
            return None
        return origin


def _root_of(world: World, entity: int) -> int | None:
    root = None
    for root in world.ancestors(entity):
        pass
    return root


def find_floating_origin(world: World) -> None:
    """Point every :class:`BigSpace` at the single floating origin in its hierarchy.

    A big space with several floating origins, or none, is left without one and an
    error is logged.
    """
    origin_counts: dict[int, int] = {}
    for entity, space in world.query(BigSpace):
        space.floating_origin = None
        origin_counts[entity] = 0

    for origin, _ in world.query(FloatingOrigin):
        root = _root_of(world, origin)
        if root is None:
            continue
        space = world.get(root, BigSpace)
        if space is None:
            continue
        origin_counts[root] = origin_counts.get(root, 0) + 1
        if origin_counts[root] > 1:
            logger.error(
                "BigSpace %r has multiple floating origins. There must be exactly one. "
                "Resetting this big space and disabling the floating origin to avoid "
                "unexpected propagation behavior.",
                root,
            )
            space.floating_origin = None
        else:
            space.floating_origin = origin

    for space_entity, total in origin_counts.items():
        if total == 0:
            logger.error(
                "BigSpace %r has no floating origins. There must be exactly one. "
                "Transform propagation will not work until there is a FloatingOrigin "
                "in the hierarchy.",
                space_entity,
            )