"""
weft - Trait composition for Python classes.

Traits are named, reusable units that install new methods on a class,
override existing ones with access to the original, or wrap them with
guarded before/after behavior. Conflicts are detected by an explicit policy
and units chain into pipelines.

Example:
    Coloured = weft.define({"set_colour": set_colour, "get_colour": get_colour})
    Urgent = weft.override({"get_colour": urgent_colour})
    Todo = weft.pipeline(Coloured, Urgent)(Todo)
"""

__version__ = "0.1.0"

from types import SimpleNamespace

from weft.core.capability import CapabilityRegistry, CapabilityTag
from weft.core.composer import MethodComposer
from weft.core.errors import (
    AbsenceViolation,
    ConflictError,
    PresenceViolation,
    TraitDefinitionError,
    TraitError,
)
from weft.core.pipeline import Pipeline, PipelineError, pipeline
from weft.core.policy import ConflictPolicy
from weft.core.unit import (
    Kind,
    Mode,
    Shared,
    TraitUnit,
    append,
    apply,
    construct,
    define,
    has_capability,
    override,
    prepend,
    traits_of,
)
from weft.core import composer as _composer

# Composer strategies namespace
composers = SimpleNamespace(
    install=_composer.INSTALL,
    override=_composer.OVERRIDE,
    prepend=_composer.PREPEND,
    append=_composer.APPEND,
)

__all__ = [
    "__version__",
    "AbsenceViolation",
    "CapabilityRegistry",
    "CapabilityTag",
    "ConflictError",
    "ConflictPolicy",
    "Kind",
    "MethodComposer",
    "Mode",
    "Pipeline",
    "PipelineError",
    "PresenceViolation",
    "Shared",
    "TraitDefinitionError",
    "TraitError",
    "TraitUnit",
    "append",
    "apply",
    "composers",
    "construct",
    "define",
    "has_capability",
    "override",
    "pipeline",
    "prepend",
    "traits_of",
]
