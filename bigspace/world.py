"""A small entity store with typed component storage and a parent/child hierarchy."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Iterator
from itertools import count

from bigspace.math3d import GlobalTransform, Transform


class World:
    """Entities identified by integers, each holding at most one component of each type.

    Components are keyed by their type. Passing a class instead of an instance stores a
    fresh instance of it, which suits marker components. Tuples and lists are flattened,
    so a bundle of components can be passed as one argument.
    """

    def __init__(self) -> None:
        self._components: dict[int, dict[type, object]] = {}
        self._parents: dict[int, int] = {}
        self._children: dict[int, list[int]] = {}
        self._ids = count()

    def __contains__(self, entity: object) -> bool:
        return entity in self._components

    def __len__(self) -> int:
        return len(self._components)

    def __iter__(self) -> Iterator[int]:
        return iter(list(self._components))

    def _require(self, entity: int) -> dict[type, object]:
        try:
            return self._components[entity]
        except KeyError:
            raise KeyError(f"entity {entity!r} does not exist") from None

    @classmethod
    def _flatten(cls, items: Iterable[object]) -> Iterator[object]:
        for item in items:
            if isinstance(item, (tuple, list)):
                yield from cls._flatten(item)
            elif isinstance(item, type):
                yield item()
            else:
                yield item

    def spawn(self, *args) -> int:
        """Create an entity holding the given components and return its id."""
        entity = next(self._ids)
        self._components[entity] = {}
        self.insert(entity, *args)
        return entity

    def insert(self, entity: int, *args) -> None:
        """Add components to an entity, replacing any of the same type."""
        components = self._require(entity)
        for component in self._flatten(args):
            components[type(component)] = component

    def remove(self, entity: int, component_type: type):
        """Remove and return a component, or return None if the entity lacks it."""
        return self._require(entity).pop(component_type, None)

    def get(self, entity: int, component_type: type):
        """The entity's component of the given type, or None."""
        components = self._components.get(entity)
        if components is None:
            return None
        return components.get(component_type)

    def has(self, entity: int, component_type: type) -> bool:
        components = self._components.get(entity)
        return components is not None and component_type in components

    def query(self, *args) -> Iterator[tuple]:
        """Yield ``(entity, *components)`` for every entity holding all the given types."""
        for entity, components in list(self._components.items()):
            if entity not in self._components:
                continue
            if all(t in components for t in args):
                yield (entity, *(components[t] for t in args))

    def _detach(self, child: int) -> None:
        old = self._parents.pop(child, None)
        if old is None:
            return
        siblings = self._children[old]
        siblings.remove(child)
        if not siblings:
            del self._children[old]

    def add_child(self, parent: int, child: int) -> None:
        """Make ``child`` a child of ``parent``, moving it from any previous parent."""
        self._require(parent)
        self._require(child)
        if parent == child or child in self.ancestors(parent):
            raise ValueError(
                f"making {child!r} a child of {parent!r} would create a cycle in the hierarchy"
            )
        if self._parents.get(child) == parent:
            return
        self._detach(child)
        self._parents[child] = parent
        self._children.setdefault(parent, []).append(child)

    def add_children(self, parent: int, children: Iterable[int]) -> None:
        for child in children:
            self.add_child(parent, child)

    def parent(self, entity: int) -> int | None:
        self._require(entity)
        return self._parents.get(entity)

    def children(self, entity: int) -> list[int]:
        self._require(entity)
        return list(self._children.get(entity, ()))

    def ancestors(self, entity: int) -> Iterator[int]:
        """Yield the parent, the grandparent and so on up to the root."""
        self._require(entity)
        current = self._parents.get(entity)
        while current is not None:
            yield current
            current = self._parents.get(current)

    def descendants(self, entity: int) -> Iterator[int]:
        """Yield every descendant, breadth first."""
        self._require(entity)
        pending = deque(self._children.get(entity, ()))
        while pending:
            current = pending.popleft()
            yield current
            pending.extend(self._children.get(current, ()))

    def despawn(self, entity: int) -> None:
        """Delete an entity together with all of its descendants."""
        doomed = [entity, *self.descendants(entity)]
        self._detach(entity)
        for item in doomed:
            del self._components[item]
            self._parents.pop(item, None)
            self._children.pop(item, None)


def propagate_parent_transforms(world: World) -> None:
    """Compute ``GlobalTransform`` for plain transform hierarchies.

    Starts from every root that has a ``Transform``, a ``GlobalTransform`` and at least
    one child, and walks down through descendants that carry both components.
    """
    for root, transform, _ in world.query(Transform, GlobalTransform):
        if world.parent(root) is not None:
            continue
        children = world.children(root)
        if not children:
            continue
        root_global = GlobalTransform.from_transform(transform)
        world.insert(root, root_global)
        stack = [
            (root_global, child)
            for child in reversed(children)
            if world.has(child, GlobalTransform)
        ]
        while stack:
            parent_global, entity = stack.pop()
            local = world.get(entity, Transform)
            if local is None:
                continue
            own = parent_global.mul_transform(local)
            world.insert(entity, own)
            stack.extend(
                (own, child)
                for child in reversed(world.children(entity))
                if world.has(child, GlobalTransform)
            )