"""
Tests for Trait Units - construction and application.

This test suite covers:
1. Construction validation
2. Define / override / prepend / append application
3. Conflict detection and atomic failure
4. Rollback when installation fails
5. Shared behavior attached to the unit
6. Persistent (subclass-deriving) mode
7. Re-application warnings
"""

import warnings

import pytest

import weft
import weft.config
from weft.core.composer import INSTALL
from weft.core.errors import (
    AbsenceViolation,
    ConflictError,
    PresenceViolation,
    TraitDefinitionError,
)
from weft.core.policy import ConflictPolicy
from weft.core.unit import Kind, Mode, Shared, TraitUnit


def make_counter():
    class Counter:
        def __init__(self):
            self.value = 0
            self.log = []

        def bump(self, by=1):
            self.log.append(("bump", by))
            self.value += by
            return self.value

    return Counter


def describe(self):
    return f"counter at {self.value}"


def reset(self):
    self.value = 0


class TestConstruction:
    """Test trait unit construction."""

    def test_empty_behavior_rejected(self):
        """A unit must carry at least one behavior."""
        with pytest.raises(TraitDefinitionError, match="must not be empty"):
            weft.define({})

    def test_non_callable_behavior_rejected(self):
        """Every behavior value must be callable."""
        with pytest.raises(TraitDefinitionError, match="not callable"):
            weft.define({"describe": describe, "colour": "red"})

    def test_invalid_method_name_rejected(self):
        """Behavior keys must be identifiers."""
        with pytest.raises(TraitDefinitionError, match="invalid method name"):
            weft.define({"not a name": describe})

    def test_non_mapping_rejected(self):
        """Behavior must be a mapping."""
        with pytest.raises(TraitDefinitionError, match="must be a mapping"):
            weft.define([describe])

    def test_unknown_kind_rejected(self):
        """construct() should reject kinds it does not know."""
        with pytest.raises(TraitDefinitionError, match="Unknown trait kind"):
            weft.construct("wrap", {"describe": describe})

    def test_kind_by_value(self):
        """construct() should accept a kind's string value."""
        unit = weft.construct("prepend", {"bump": describe})
        assert unit.kind is Kind.PREPEND
        assert unit.policy is ConflictPolicy.MUST_BE_PRESENT

    def test_kind_table(self):
        """Each kind should pair the right policy and composer."""
        assert weft.define({"a": describe}).policy is ConflictPolicy.MUST_BE_ABSENT
        assert weft.override({"a": describe}).composer is weft.composers.override
        assert weft.prepend({"a": describe}).composer is weft.composers.prepend
        assert weft.append({"a": describe}).composer is weft.composers.append

    def test_construction_never_inspects_targets(self):
        """Construction should succeed regardless of any class's contents."""
        unit = weft.override({"does_not_exist_anywhere": describe})
        assert unit.behavior["does_not_exist_anywhere"] is describe

    def test_default_names_are_unique(self):
        """Unnamed units should get distinct names."""
        a = weft.define({"a": describe})
        b = weft.define({"a": describe})
        assert a.name != b.name

    def test_behavior_is_read_only(self):
        """The behavior map should be a read-only copy."""
        source = {"describe": describe}
        unit = weft.define(source)
        source["reset"] = reset

        assert list(unit.behavior) == ["describe"]
        with pytest.raises(TypeError):
            unit.behavior["reset"] = reset

    def test_unit_is_immutable(self):
        """Setting or deleting attributes on a unit should fail."""
        unit = weft.define({"describe": describe}, name="Describable")

        with pytest.raises(AttributeError, match="immutable"):
            unit.name = "Other"
        with pytest.raises(AttributeError, match="immutable"):
            unit.anything = 1
        with pytest.raises(AttributeError, match="immutable"):
            del unit.name

    def test_unknown_mode_rejected(self):
        """Mode must be in_place or persistent."""
        with pytest.raises(TraitDefinitionError, match="unknown mode"):
            weft.define({"describe": describe}, mode="sideways")

    def test_generic_constructor(self):
        """TraitUnit can be built from a policy and composer directly."""
        unit = TraitUnit(
            {"describe": describe},
            policy=ConflictPolicy.MUST_BE_ABSENT,
            composer=INSTALL,
        )
        assert unit.kind is None
        assert unit.kind_label == "install"
        Counter = unit(make_counter())
        assert Counter().describe() == "counter at 0"


class TestDefine:
    """Test define units."""

    def test_installs_unchanged(self):
        """Every behavior should be installed as the very same function."""
        Counter = make_counter()
        unit = weft.define({"describe": describe, "reset": reset})

        result = unit(Counter)

        assert result is Counter
        assert Counter.__dict__["describe"] is describe
        assert Counter.__dict__["reset"] is reset
        assert Counter().describe() == "counter at 0"

    def test_conflict_names_key_and_kind(self):
        """Defining an existing name should raise AbsenceViolation with details."""
        Counter = make_counter()
        unit = weft.define({"describe": describe, "bump": describe}, name="Bumpy")

        with pytest.raises(AbsenceViolation) as exc_info:
            unit(Counter)

        err = exc_info.value
        assert isinstance(err, ConflictError)
        assert err.key == "bump"
        assert err.kind == "define"
        assert err.unit == "Bumpy"
        assert err.policy is ConflictPolicy.MUST_BE_ABSENT
        assert err.target is Counter
        assert "bump" in str(err) and "Bumpy" in str(err)

    def test_conflict_is_atomic(self):
        """A failed define should leave the class untouched."""
        Counter = make_counter()
        before = dict(vars(Counter))
        unit = weft.define({"describe": describe, "reset": reset, "bump": describe})

        with pytest.raises(AbsenceViolation):
            unit(Counter)

        assert dict(vars(Counter)) == before
        assert not unit.applied_to(Counter)

    def test_inherited_name_conflicts(self):
        """Names inherited from a base class count as defined."""
        Counter = make_counter()

        class Sub(Counter):
            pass

        with pytest.raises(AbsenceViolation):
            weft.define({"bump": describe})(Sub)

    def test_object_members_are_definable(self):
        """Dunder methods only found on object may be defined."""
        Counter = make_counter()
        weft.define({"__repr__": describe})(Counter)
        assert repr(Counter()) == "counter at 0"

    def test_object_members_conflict_when_configured(self):
        """include_object_members should make object's members count as defined."""
        weft.config.configure(include_object_members=True)
        with pytest.raises(AbsenceViolation):
            weft.define({"__repr__": describe})(make_counter())


class TestOverride:
    """Test override units."""

    def test_calls_with_bound_original(self):
        """instance.m(*args) should equal f(self, bound original, *args)."""
        Counter = make_counter()

        def bump(self, original, by=1):
            return original(by * 10) + 0.5

        weft.override({"bump": bump})(Counter)
        counter = Counter()

        assert counter.bump(2) == 20.5
        assert counter.log == [("bump", 20)]

    def test_missing_name_fails(self):
        """Overriding an undefined name should raise PresenceViolation."""
        Counter = make_counter()
        with pytest.raises(PresenceViolation) as exc_info:
            weft.override({"shrink": describe}, name="Shrinker")(Counter)

        assert exc_info.value.key == "shrink"
        assert exc_info.value.kind == "override"
        assert "shrink" not in vars(Counter)

    def test_presence_is_atomic(self):
        """A later missing name should prevent earlier overrides from installing."""
        Counter = make_counter()
        original = Counter.__dict__["bump"]
        unit = weft.override({"bump": lambda self, o, by=1: 0, "shrink": describe})

        with pytest.raises(PresenceViolation):
            unit(Counter)

        assert Counter.__dict__["bump"] is original

    def test_override_inherited_method(self):
        """Overriding an inherited method should install on the subclass only."""
        Counter = make_counter()

        class Sub(Counter):
            pass

        weft.override({"bump": lambda self, original, by=1: original(by) * 100})(Sub)

        assert Sub().bump() == 100
        assert Counter().bump() == 1
        assert "bump" in vars(Sub)

    def test_stacked_overrides(self):
        """Later overrides should wrap earlier ones."""
        Counter = make_counter()
        weft.override({"bump": lambda self, original, by=1: original(by) + 1})(Counter)
        weft.override({"bump": lambda self, original, by=1: original(by) * 2})(Counter)

        assert Counter().bump(3) == 8


class TestPrependAppend:
    """Test guarded prepend and unconditional append units."""

    def test_prepend_guard_allows(self):
        """A guard returning None should let the original run."""
        Counter = make_counter()
        weft.prepend({"bump": lambda self, by=1: None})(Counter)
        assert Counter().bump(4) == 4

    def test_prepend_guard_blocks(self):
        """A falsy guard should skip the original and return None."""
        Counter = make_counter()
        weft.prepend({"bump": lambda self, by=1: by < 10})(Counter)
        counter = Counter()

        assert counter.bump(20) is None
        assert counter.log == []
        assert counter.bump(3) == 3

    def test_prepend_requires_presence(self):
        """Prepending to a missing method should fail."""
        with pytest.raises(PresenceViolation):
            weft.prepend({"shrink": describe})(make_counter())

    def test_append_runs_after(self):
        """Append should run after the original and keep the original's result."""
        Counter = make_counter()

        def audit(self, by=1):
            self.log.append(("audit", self.value))
            return "discarded"

        weft.append({"bump": audit})(Counter)
        counter = Counter()

        assert counter.bump(5) == 5
        assert counter.log == [("bump", 5), ("audit", 5)]

    def test_append_requires_presence(self):
        """Appending to a missing method should fail."""
        with pytest.raises(PresenceViolation):
            weft.append({"shrink": describe})(make_counter())


class TestWrappingDescriptorsAndObjectMembers:
    """Test wrapping classmethods, staticmethods and members inherited from object."""

    def test_override_object_member(self):
        """Names inherited from object should be wrappable on a plain class."""

        class Todo:
            pass

        weft.override({"__str__": lambda self, original: original().upper()})(Todo)
        todo = Todo()

        assert str(todo) == object.__str__(todo).upper()
        assert "__str__" in vars(Todo)

    def test_prepend_object_member(self):
        """A guard on an object member should wrap object's implementation."""

        class Todo:
            pass

        seen = []
        weft.prepend({"__eq__": lambda self, other: seen.append(other)})(Todo)
        todo = Todo()

        assert todo == todo
        assert seen == [todo]

    def test_override_classmethod(self):
        """An overridden classmethod should still work on the class and instances."""

        class Todo:
            @classmethod
            def make(cls, title):
                return (cls, title)

        weft.override(
            {"make": lambda cls, original, title: original(title.upper())}
        )(Todo)

        assert isinstance(Todo.__dict__["make"], classmethod)
        assert Todo.make("a") == (Todo, "A")
        assert Todo().make("b") == (Todo, "B")

    def test_override_classmethod_on_subclass(self):
        """The wrapped classmethod should receive the calling subclass."""

        class Todo:
            @classmethod
            def make(cls):
                return cls

        weft.override({"make": lambda cls, original: original()})(Todo)

        class Urgent(Todo):
            pass

        assert Urgent.make() is Urgent

    def test_append_staticmethod(self):
        """An appended staticmethod should be called without a receiver."""

        class Todo:
            @staticmethod
            def slug(title):
                return title.lower()

        seen = []
        weft.append({"slug": lambda title: seen.append(title)})(Todo)

        assert isinstance(Todo.__dict__["slug"], staticmethod)
        assert Todo.slug("A") == "a"
        assert Todo().slug("B") == "b"
        assert seen == ["A", "B"]

    def test_override_staticmethod(self):
        """An overriding function receives the original first, with no receiver."""

        class Todo:
            @staticmethod
            def slug(title):
                return title.lower()

        weft.override({"slug": lambda original, title: original(title) + "!"})(Todo)

        assert Todo.slug("A") == "a!"

    def test_wrapper_qualname_names_target(self):
        """Installed wrappers should report the target class in their qualname."""
        Counter = make_counter()
        weft.override({"bump": lambda self, original, by=1: original(by)})(Counter)

        assert Counter.__dict__["bump"].__qualname__ == f"{Counter.__qualname__}.bump"


class TestRollback:
    """Test rollback when installing a method raises."""

    def test_partial_install_rolled_back(self):
        """Entries installed before a failing one should be removed again."""

        class Picky(type):
            def __setattr__(cls, name, value):
                if name == "explode":
                    raise RuntimeError("refused")
                super().__setattr__(name, value)

        class Target(metaclass=Picky):
            def keep(self):
                return "kept"

        unit = weft.define({"fresh": describe, "explode": describe})

        with pytest.raises(RuntimeError, match="refused"):
            unit(Target)

        assert "fresh" not in vars(Target)
        assert not unit.applied_to(Target)

    def test_replaced_entries_restored(self):
        """Own entries replaced before a failure should be put back."""

        class Picky(type):
            def __setattr__(cls, name, value):
                if name == "explode" and value is not Target.__dict__.get(name):
                    raise RuntimeError("refused")
                super().__setattr__(name, value)

        class Target(metaclass=Picky):
            def keep(self):
                return "kept"

            def explode(self):
                return "boom"

        original = Target.__dict__["keep"]
        unit = weft.override(
            {"keep": lambda self, o: "changed", "explode": lambda self, o: "x"}
        )

        with pytest.raises(RuntimeError):
            unit(Target)

        assert Target.__dict__["keep"] is original
        assert Target().keep() == "kept"

    def test_non_class_target_rejected(self):
        """Units only apply to classes."""
        with pytest.raises(TypeError, match="only be applied to a class"):
            weft.define({"describe": describe})(object())


class TestSharedBehavior:
    """Test shared behavior attached to units."""

    def test_shared_attached_to_unit(self):
        """Shared entries should be attributes of the unit."""
        unit = weft.define({"describe": describe}, {"RED": "#ff0000", "helper": len})

        assert unit.RED == "#ff0000"
        assert unit.helper is len
        assert dict(unit.shared) == {"RED": "#ff0000", "helper": len}

    def test_shared_never_reaches_target(self):
        """Applying a unit should not copy shared entries to the class."""
        Counter = make_counter()
        unit = weft.define({"describe": describe}, {"RED": "#ff0000"})
        unit(Counter)

        assert not hasattr(Counter, "RED")
        assert not hasattr(Counter(), "RED")

    def test_enumerability(self):
        """Non-enumerable entries are reachable but not listed."""
        unit = weft.define(
            {"describe": describe},
            {"RED": "#ff0000", "secret": Shared(42, enumerable=False)},
        )

        assert unit.secret == 42
        assert unit.shared_names() == ["RED"]
        assert "RED" in dir(unit)
        assert "secret" not in dir(unit)
        assert unit.shared["secret"] == 42

    def test_reserved_names_rejected(self):
        """Shared names may not shadow the unit API."""
        for bad in ("apply", "tag", "name", "behavior"):
            with pytest.raises(TraitDefinitionError, match="shadows"):
                weft.define({"describe": describe}, {bad: 1})

    def test_private_names_rejected(self):
        """Shared names may not start with an underscore."""
        with pytest.raises(TraitDefinitionError, match="invalid shared name"):
            weft.define({"describe": describe}, {"_tag": 1})

    def test_shared_immutable(self):
        """Shared entries cannot be rebound after construction."""
        unit = weft.define({"describe": describe}, {"RED": "#ff0000"})
        with pytest.raises(AttributeError):
            unit.RED = "#00ff00"


class TestPersistentMode:
    """Test subclass-deriving application."""

    def test_original_class_untouched(self):
        """Persistent application should derive a subclass and leave the target alone."""
        Counter = make_counter()
        before = dict(vars(Counter))
        unit = weft.define({"describe": describe}, mode="persistent")

        Derived = unit(Counter)

        assert unit.mode is Mode.PERSISTENT
        assert Derived is not Counter
        assert issubclass(Derived, Counter)
        assert Derived.__name__ == Counter.__name__
        assert Derived.__qualname__ == Counter.__qualname__
        assert dict(vars(Counter)) == before
        assert Derived().describe() == "counter at 0"

    def test_capability_on_derived_only(self):
        """Only the derived class's instances should carry the capability."""
        Counter = make_counter()
        unit = weft.define({"describe": describe}, mode=Mode.PERSISTENT)
        Derived = unit(Counter)

        assert weft.has_capability(unit, Derived())
        assert not weft.has_capability(unit, Counter())

    def test_override_in_persistent_mode(self):
        """Overrides should see the base implementation as original."""
        Counter = make_counter()
        unit = weft.override(
            {"bump": lambda self, original, by=1: original(by) * 3}, mode="persistent"
        )
        Derived = unit(Counter)

        assert Derived().bump(2) == 6
        assert Counter().bump(2) == 2

    def test_mode_from_settings(self):
        """Units built without a mode should use the configured one."""
        weft.config.configure(mode="persistent")
        assert weft.define({"describe": describe}).mode is Mode.PERSISTENT

        weft.config.configure(mode="in_place")
        assert weft.define({"describe": describe}).mode is Mode.IN_PLACE


class TestReapply:
    """Test applying the same unit twice."""

    def test_reapply_warns(self):
        """Applying a unit to a class that already carries it should warn."""
        Counter = make_counter()
        unit = weft.override({"bump": lambda self, original, by=1: original(by)})
        unit(Counter)

        with pytest.warns(RuntimeWarning, match="applied again"):
            unit(Counter)

    def test_reapply_silent_when_disabled(self):
        """warn_on_reapply=False should suppress the warning."""
        weft.config.configure(warn_on_reapply=False)
        Counter = make_counter()
        unit = weft.override({"bump": lambda self, original, by=1: original(by)})
        unit(Counter)

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            unit(Counter)

    def test_reapply_define_still_conflicts(self):
        """A define unit cannot be applied twice: its names are now present."""
        Counter = make_counter()
        unit = weft.define({"describe": describe})
        unit(Counter)

        with pytest.raises(AbsenceViolation):
            unit(Counter)


class TestApplyFunction:
    """Test the functional apply() entry point."""

    def test_apply_matches_call(self):
        """apply(unit, cls) should behave like unit(cls)."""
        Counter = make_counter()
        unit = weft.define({"describe": describe})

        assert weft.apply(unit, Counter) is Counter
        assert weft.has_capability(unit, Counter())
