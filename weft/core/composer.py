"""
Method Composer - Strategies combining a new implementation with a prior one.

Every wrapping strategy has the explicit shape:

    strategy(fn, original, receiver, *args, **kwargs)

where ``fn`` is the trait's function, ``original`` is the prior implementation
already bound to ``receiver``, and ``receiver`` is the instance the method was
called on (the class for classmethods). ``None`` plays the role of "no value"
for the prepend guard.
"""

import functools
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


def _override(fn: Callable, original: Callable, receiver: Any, *args, **kwargs) -> Any:
    return fn(receiver, original, *args, **kwargs)


def _prepend(fn: Callable, original: Callable, receiver: Any, *args, **kwargs) -> Any:
    verdict = fn(receiver, *args, **kwargs)
    if verdict is None or verdict:
        return original(*args, **kwargs)
    return None


def _append(fn: Callable, original: Callable, receiver: Any, *args, **kwargs) -> Any:
    result = original(*args, **kwargs)
    fn(receiver, *args, **kwargs)
    return result


def bind(prior: Any, receiver: Any) -> Callable:
    """
    Bind a raw namespace entry to an instance.

    Functions, staticmethods and classmethods go through the descriptor
    protocol; plain callables without __get__ are returned as-is.
    """
    getter = getattr(type(prior), "__get__", None)
    if getter is None:
        return prior
    return getter(prior, receiver, type(receiver))


@dataclass(frozen=True)
class MethodComposer:
    """
    Describes how a trait function combines with the prior implementation.

    Attributes:
        name: Short strategy name used in diagnostics
        strategy: Wrapping strategy, or None to install the function unchanged
    """

    name: str
    strategy: Callable | None = None

    @property
    def wraps_prior(self) -> bool:
        return self.strategy is not None

    def compose(
        self, name: str, fn: Callable, prior: Any = None, owner: type | None = None
    ) -> Any:
        """
        Build the attribute to install under ``name``.

        A classmethod prior yields a classmethod whose receiver is the class.
        A staticmethod prior yields a staticmethod; there is no receiver, so
        ``fn`` is called without one.

        Args:
            name: Method name on the target class
            fn: The trait's implementation
            prior: Raw namespace entry currently resolved for ``name``
            owner: Class the attribute is installed on, for ``__qualname__``

        Returns:
            ``fn`` itself for installers, otherwise a wrapper method
        """
        if self.strategy is None:
            return fn

        strategy = self.strategy

        if isinstance(prior, staticmethod):
            original = prior.__func__

            def without_receiver(_receiver, *args, **kwargs):
                return fn(*args, **kwargs)

            @functools.wraps(fn)
            def method(*args, **kwargs):
                return strategy(without_receiver, original, None, *args, **kwargs)

        elif isinstance(prior, classmethod):

            @functools.wraps(fn)
            def method(cls, *args, **kwargs):
                return strategy(fn, prior.__get__(None, cls), cls, *args, **kwargs)

        else:

            @functools.wraps(fn)
            def method(self, *args, **kwargs):
                return strategy(fn, bind(prior, self), self, *args, **kwargs)

        method.__name__ = name
        method.__qualname__ = f"{owner.__qualname__}.{name}" if owner else name

        if isinstance(prior, staticmethod):
            return staticmethod(method)
        if isinstance(prior, classmethod):
            return classmethod(method)
        return method

    def __repr__(self) -> str:
        return f"MethodComposer({self.name})"


INSTALL = MethodComposer("install")
OVERRIDE = MethodComposer("override", _override)
PREPEND = MethodComposer("prepend", _prepend)
APPEND = MethodComposer("append", _append)
