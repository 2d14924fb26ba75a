"""
Capability Tags - Runtime "does this instance support trait X" checks.

Each trait unit mints one CapabilityTag. Applying the unit registers its tag
for the resulting class in a CapabilityRegistry. Queries walk the instance's
class MRO, so a tag is visible on subclasses and on unrelated classes that
had the same unit applied.
"""

import itertools
import weakref
from typing import Any

_serial = itertools.count(1)


class CapabilityTag:
    """
    Unique, unforgeable capability marker.

    Equality is identity. The name is for diagnostics only; two tags with the
    same name are still different capabilities.
    """

    __slots__ = ("name", "serial", "__weakref__")

    def __init__(self, name: str):
        self.name = name
        self.serial = next(_serial)

    def __repr__(self) -> str:
        return f"<CapabilityTag {self.name}#{self.serial}>"

    def __reduce__(self):
        raise TypeError("CapabilityTag cannot be copied or pickled")

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


class CapabilityRegistry:
    """
    Explicit mapping from class identity to applied capability tags.

    Classes are held weakly so that registering a tag never keeps a class
    alive. The registry does no locking; register during setup.
    """

    def __init__(self):
        self._tags: weakref.WeakKeyDictionary[type, set[CapabilityTag]] = (
            weakref.WeakKeyDictionary()
        )

    def mark(self, target: type, tag: CapabilityTag) -> bool:
        """
        Register a tag on a class.

        Returns:
            True if the class already carried the tag as its own
        """
        own = self._tags.setdefault(target, set())
        seen = tag in own
        own.add(tag)
        return seen

    def own_tags(self, target: type) -> frozenset[CapabilityTag]:
        """Tags registered directly on a class."""
        return frozenset(self._tags.get(target, ()))

    def tags_of(self, target: type) -> frozenset[CapabilityTag]:
        """Tags registered on a class or any class in its MRO."""
        tags: set[CapabilityTag] = set()
        for klass in target.__mro__:
            tags.update(self._tags.get(klass, ()))
        return frozenset(tags)

    def carries(self, target: type, tag: CapabilityTag) -> bool:
        """Check whether a class or any ancestor had the tag applied."""
        return any(tag in self._tags.get(klass, ()) for klass in target.__mro__)

    def has_capability(self, tag: CapabilityTag, obj: Any) -> bool:
        """Check whether an instance's class carries the tag."""
        return self.carries(type(obj), tag)

    def clear(self) -> None:
        """Forget every registration."""
        self._tags.clear()

    def __len__(self) -> int:
        return len(self._tags)


# Global registry instance
_global_registry = CapabilityRegistry()


def default_registry() -> CapabilityRegistry:
    """Return the process-wide registry used by trait units."""
    return _global_registry
