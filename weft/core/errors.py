"""
Trait Errors - Exception hierarchy for trait construction and application.

Construction errors surface when a unit is built from bad input.
Conflict errors surface only when a unit is applied to a class.
"""


class TraitError(Exception):
    """Base exception for trait-related errors."""

    pass


class TraitDefinitionError(TraitError):
    """Raised when a trait unit is constructed from invalid input."""

    pass


class ConflictError(TraitError):
    """
    Raised when a conflict policy rejects a method name.

    Attributes:
        unit: Name of the trait unit being applied
        kind: Kind of the trait unit (define, override, ...)
        policy: The conflict policy that was violated
        key: The offending method name
        target: The class the unit was applied to
    """

    def __init__(self, unit: str, kind: str, policy, key: str, target: type):
        self.unit = unit
        self.kind = kind
        self.policy = policy
        self.key = key
        self.target = target
        super().__init__(self._format())

    def _format(self) -> str:
        return (
            f"{self.unit} ({self.kind}) cannot touch '{self.key}' on "
            f"{self.target.__qualname__}: {self.policy.value} violated"
        )


class AbsenceViolation(ConflictError):
    """Raised when a must-be-absent name is already defined on the target."""

    def _format(self) -> str:
        return (
            f"{self.unit} ({self.kind}) cannot define '{self.key}': "
            f"already defined on {self.target.__qualname__}"
        )


class PresenceViolation(ConflictError):
    """Raised when a must-be-present name is missing from the target."""

    def _format(self) -> str:
        return (
            f"{self.unit} ({self.kind}) cannot {self.kind} '{self.key}': "
            f"not defined on {self.target.__qualname__}"
        )
