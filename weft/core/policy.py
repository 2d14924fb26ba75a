"""
Conflict Policy - Decides whether a trait may touch a method name.

A policy is a pure predicate over "does this name currently resolve on the
target's method table". Resolution walks the class MRO through each class's
own namespace, so descriptors are returned raw and __getattr__ hooks are
never triggered.
"""

from enum import Enum
from typing import Any

from weft.core.errors import AbsenceViolation, ConflictError, PresenceViolation


class _Missing:
    """Marker for a name that does not resolve on a class."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


def lookup(target: type, name: str, include_object: bool = False) -> Any:
    """
    Find the raw attribute a name resolves to on a class.

    Args:
        target: Class whose method table is searched
        name: Attribute name
        include_object: Whether members defined only on ``object`` count

    Returns:
        The raw namespace entry (function, descriptor, value), or MISSING
    """
    for klass in target.__mro__:
        if klass is object and not include_object:
            break
        namespace = vars(klass)
        if name in namespace:
            return namespace[name]
    return MISSING


def resolves(target: type, name: str, include_object: bool = False) -> bool:
    """Check whether a name resolves on the class's method table."""
    return lookup(target, name, include_object) is not MISSING


class ConflictPolicy(Enum):
    """Precondition gating whether a method name may be touched."""

    MUST_BE_ABSENT = "must-be-absent"
    MUST_BE_PRESENT = "must-be-present"

    def permits(self, target: type, name: str, include_object: bool = False) -> bool:
        """
        Evaluate the policy for one name.

        Args:
            target: Class being extended
            name: Method name from the behavior map
            include_object: Whether members defined only on ``object`` block
                must-be-absent; must-be-present always sees them

        Returns:
            True if the name may be touched
        """
        if self is ConflictPolicy.MUST_BE_ABSENT:
            return not resolves(target, name, include_object)
        return resolves(target, name, include_object=True)

    @property
    def error(self) -> type[ConflictError]:
        """Exception class raised when this policy is violated."""
        if self is ConflictPolicy.MUST_BE_ABSENT:
            return AbsenceViolation
        return PresenceViolation

    def first_violation(
        self, target: type, names, include_object: bool = False
    ) -> str | None:
        """
        Find the first name, in iteration order, that the policy rejects.

        Returns:
            The offending name, or None if every name passes
        """
        for name in names:
            if not self.permits(target, name, include_object):
                return name
        return None
