"""
Trait Units - Named transformers that extend a class's method table.

A TraitUnit is built from a behavior map, an optional shared-behavior map, a
conflict policy and a method composer. Applying it to a class checks every
name against the policy first and installs composed methods only if all of
them pass, so a failed application leaves the class untouched.

The four kinds differ only by policy and composer:

    Kind.DEFINE    must be absent   install unchanged
    Kind.OVERRIDE  must be present  fn(self, original, *args, **kwargs)
    Kind.PREPEND   must be present  guard runs first, falsy result skips original
    Kind.APPEND    must be present  original runs first, fn's result discarded
"""

import itertools
import logging
import warnings
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any

import weft.config
from weft.core.capability import (
    CapabilityRegistry,
    CapabilityTag,
    default_registry,
)
from weft.core.composer import APPEND, INSTALL, OVERRIDE, PREPEND, MethodComposer
from weft.core.errors import TraitDefinitionError
from weft.core.policy import MISSING, ConflictPolicy, lookup

logger = logging.getLogger(__name__)

_unit_counter = itertools.count(1)


class Kind(Enum):
    """Trait unit specializations."""

    DEFINE = "define"
    OVERRIDE = "override"
    PREPEND = "prepend"
    APPEND = "append"


_KIND_TABLE: dict[Kind, tuple[ConflictPolicy, MethodComposer]] = {
    Kind.DEFINE: (ConflictPolicy.MUST_BE_ABSENT, INSTALL),
    Kind.OVERRIDE: (ConflictPolicy.MUST_BE_PRESENT, OVERRIDE),
    Kind.PREPEND: (ConflictPolicy.MUST_BE_PRESENT, PREPEND),
    Kind.APPEND: (ConflictPolicy.MUST_BE_PRESENT, APPEND),
}


class Mode(Enum):
    """Where composed methods are installed."""

    IN_PLACE = "in_place"
    PERSISTENT = "persistent"


@dataclass(frozen=True)
class Shared:
    """
    A shared-behavior entry with explicit enumerability.

    Non-enumerable entries are reachable as attributes of the unit but are
    left out of shared_names() and dir().
    """

    value: Any
    enumerable: bool = True


class TraitUnit:
    """
    Immutable class transformer.

    Usage:
        Coloured = TraitUnit(
            {"set_colour": set_colour, "get_colour": get_colour},
            policy=ConflictPolicy.MUST_BE_ABSENT,
            composer=INSTALL,
            name="Coloured",
        )
        Todo = Coloured(Todo)
        isinstance(Todo("x"), Coloured)  # True
    """

    def __init__(
        self,
        behavior: Mapping[str, Callable],
        shared: Mapping[str, Any] | None = None,
        *,
        policy: ConflictPolicy,
        composer: MethodComposer,
        kind: Kind | None = None,
        name: str | None = None,
        mode: Mode | str | None = None,
        registry: CapabilityRegistry | None = None,
    ):
        """
        Args:
            behavior: Method name -> implementation; non-empty
            shared: Name -> value attached to the unit itself; wrap a value in
                Shared to control its enumerability
            policy: Conflict policy checked for every behavior name
            composer: How each implementation combines with the prior one
            kind: Specialization label used in diagnostics
            name: Unit name used in diagnostics and the capability tag
            mode: Application mode; defaults to the configured mode
            registry: Capability registry; defaults to the global one

        Raises:
            TraitDefinitionError: If behavior or shared maps are invalid
        """
        name = name or f"Trait{next(_unit_counter)}"
        behavior = _check_behavior(name, behavior)
        shared_values, hidden = _check_shared(name, shared or {})

        if mode is None:
            mode = weft.config.get().mode
        try:
            mode = Mode(mode)
        except ValueError as e:
            raise TraitDefinitionError(f"{name}: unknown mode {mode!r}") from e

        # Bypass our __setattr__ for internal state
        init = object.__setattr__
        init(self, "_name", name)
        init(self, "_kind", kind)
        init(self, "_policy", policy)
        init(self, "_composer", composer)
        init(self, "_mode", mode)
        init(self, "_behavior", MappingProxyType(behavior))
        init(self, "_shared", MappingProxyType(shared_values))
        init(self, "_hidden", frozenset(hidden))
        init(
            self, "_registry", registry if registry is not None else default_registry()
        )
        init(self, "_tag", CapabilityTag(name))

        # Shared behavior lives on the unit itself, attached once
        for key, value in shared_values.items():
            init(self, key, value)

        logger.debug(
            "Constructed %s (%s): behavior=%s shared=%s mode=%s",
            name,
            self.kind_label,
            list(behavior),
            list(shared_values),
            mode.value,
        )

    # Read-only views

    @property
    def name(self) -> str:
        return self._name

    @property
    def kind(self) -> Kind | None:
        return self._kind

    @property
    def kind_label(self) -> str:
        """Kind value, or the composer name for units built without a kind."""
        return self._kind.value if self._kind is not None else self._composer.name

    @property
    def policy(self) -> ConflictPolicy:
        return self._policy

    @property
    def composer(self) -> MethodComposer:
        return self._composer

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def behavior(self) -> Mapping[str, Callable]:
        return self._behavior

    @property
    def shared(self) -> Mapping[str, Any]:
        """Every shared entry, enumerable or not."""
        return self._shared

    @property
    def tag(self) -> CapabilityTag:
        return self._tag

    @property
    def registry(self) -> CapabilityRegistry:
        return self._registry

    def shared_names(self) -> list[str]:
        """Enumerable shared names in declaration order."""
        return [key for key in self._shared if key not in self._hidden]

    # Application

    def apply(self, target: type) -> type:
        """
        Apply this unit to a class.

        Args:
            target: Class to extend

        Returns:
            The extended class: ``target`` itself in in-place mode, a new
            subclass of it in persistent mode

        Raises:
            TypeError: If target is not a class
            AbsenceViolation: If a must-be-absent name is already defined
            PresenceViolation: If a must-be-present name is missing
        """
        if not isinstance(target, type):
            raise TypeError(f"{self._name} can only be applied to a class, got {target!r}")

        settings = weft.config.get()
        include_object = settings.include_object_members

        offending = self._policy.first_violation(target, self._behavior, include_object)
        if offending is not None:
            raise self._policy.error(
                self._name, self.kind_label, self._policy, offending, target
            )

        if settings.warn_on_reapply and self._registry.carries(target, self._tag):
            warnings.warn(
                f"{self._name} is applied again to {target.__qualname__}",
                RuntimeWarning,
                stacklevel=2,
            )

        result = target if self._mode is Mode.IN_PLACE else _derive(target)
        self._install(result)
        self._registry.mark(result, self._tag)

        logger.debug(
            "Applied %s (%s) to %s [%s]",
            self._name,
            self.kind_label,
            result.__qualname__,
            self._mode.value,
        )
        return result

    __call__ = apply

    def _install(self, target: type) -> None:
        """Install every composed method, rolling back if any install fails."""
        previous: dict[str, Any] = {}
        try:
            for key, fn in self._behavior.items():
                prior = lookup(target, key, include_object=True)
                previous[key] = vars(target).get(key, MISSING)
                method = self._composer.compose(
                    key, fn, None if prior is MISSING else prior, owner=target
                )
                setattr(target, key, method)
        except Exception:
            for key, old in reversed(previous.items()):
                if old is not MISSING:
                    setattr(target, key, old)
                elif key in vars(target):
                    delattr(target, key)
            raise

    # Capability queries

    def applied_to(self, cls: type) -> bool:
        """Check whether this unit was applied to cls or any of its ancestors."""
        return self._registry.carries(cls, self._tag)

    def has_capability(self, obj: Any) -> bool:
        """Check whether an instance's class carries this unit."""
        return self._registry.has_capability(self._tag, obj)

    def __instancecheck__(self, obj: Any) -> bool:
        return self.has_capability(obj)

    def __subclasscheck__(self, cls: type) -> bool:
        return isinstance(cls, type) and self.applied_to(cls)

    # Immutability

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{self._name} is immutable; cannot set '{name}'")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{self._name} is immutable; cannot delete '{name}'")

    def __dir__(self):
        return [name for name in super().__dir__() if name not in self._hidden]

    def __repr__(self) -> str:
        return f"<TraitUnit {self._name} ({self.kind_label}) {list(self._behavior)}>"


_RESERVED = frozenset(dir(TraitUnit))


def _check_behavior(name: str, behavior: Mapping[str, Callable]) -> dict[str, Callable]:
    """Copy and validate a behavior map."""
    if not isinstance(behavior, Mapping):
        raise TraitDefinitionError(
            f"{name}: behavior must be a mapping, got {type(behavior).__name__}"
        )
    if not behavior:
        raise TraitDefinitionError(f"{name}: behavior map must not be empty")

    checked = {}
    for key, fn in behavior.items():
        if not isinstance(key, str) or not key.isidentifier():
            raise TraitDefinitionError(f"{name}: invalid method name {key!r}")
        if not callable(fn):
            raise TraitDefinitionError(
                f"{name}: behavior '{key}' is not callable ({type(fn).__name__})"
            )
        checked[key] = fn
    return checked


def _check_shared(name: str, shared: Mapping[str, Any]) -> tuple[dict[str, Any], set[str]]:
    """
    Unwrap and validate a shared-behavior map.

    Returns:
        (values by name, names declared non-enumerable)
    """
    if not isinstance(shared, Mapping):
        raise TraitDefinitionError(
            f"{name}: shared behavior must be a mapping, got {type(shared).__name__}"
        )

    values: dict[str, Any] = {}
    hidden: set[str] = set()
    for key, entry in shared.items():
        if not isinstance(key, str) or not key.isidentifier() or key.startswith("_"):
            raise TraitDefinitionError(f"{name}: invalid shared name {key!r}")
        if key in _RESERVED:
            raise TraitDefinitionError(
                f"{name}: shared name '{key}' shadows the trait unit API"
            )
        if isinstance(entry, Shared):
            values[key] = entry.value
            if not entry.enumerable:
                hidden.add(key)
        else:
            values[key] = entry
    return values, hidden


def _derive(target: type) -> type:
    """Create a subclass standing in for target, named like it."""
    namespace = {
        "__module__": target.__module__,
        "__qualname__": target.__qualname__,
        "__doc__": target.__doc__,
    }
    return type(target)(target.__name__, (target,), namespace)


def construct(
    kind: Kind | str,
    behavior: Mapping[str, Callable],
    shared: Mapping[str, Any] | None = None,
    **options: Any,
) -> TraitUnit:
    """
    Build a trait unit of the given kind.

    Args:
        kind: Kind member or its value ("define", "override", ...)
        behavior: Method name -> implementation
        shared: Values attached to the unit itself
        **options: name, mode, registry (see TraitUnit)

    Raises:
        TraitDefinitionError: If kind is unknown or the maps are invalid
    """
    try:
        kind = Kind(kind)
    except ValueError as e:
        raise TraitDefinitionError(f"Unknown trait kind: {kind!r}") from e

    policy, composer = _KIND_TABLE[kind]
    return TraitUnit(
        behavior, shared, policy=policy, composer=composer, kind=kind, **options
    )


def define(behavior, shared=None, **options) -> TraitUnit:
    """Unit installing methods that must not exist yet."""
    return construct(Kind.DEFINE, behavior, shared, **options)


def override(behavior, shared=None, **options) -> TraitUnit:
    """Unit replacing methods; each function receives the bound original."""
    return construct(Kind.OVERRIDE, behavior, shared, **options)


def prepend(behavior, shared=None, **options) -> TraitUnit:
    """Unit running a guard before existing methods."""
    return construct(Kind.PREPEND, behavior, shared, **options)


def append(behavior, shared=None, **options) -> TraitUnit:
    """Unit running functions after existing methods."""
    return construct(Kind.APPEND, behavior, shared, **options)


def apply(unit: Callable[[type], type], target: type) -> type:
    """Apply a unit (or any class transformer) to a class."""
    return unit(target)


def has_capability(unit: TraitUnit, obj: Any) -> bool:
    """Check whether obj's class, or an ancestor, had unit applied."""
    return unit.has_capability(obj)


def traits_of(obj: Any, registry: CapabilityRegistry | None = None) -> frozenset[CapabilityTag]:
    """Capability tags carried by an instance's class."""
    if registry is None:
        registry = default_registry()
    return registry.tags_of(type(obj))
