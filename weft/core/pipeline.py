"""
Pipeline - Left-to-right composition of class transformers.

pipeline(a, b, c)(C) is c(b(a(C))). Steps are trait units or any other
callable taking and returning a class. The pipeline does no conflict checking
of its own: each unit checks itself, and the first failure aborts the run.
Steps that already ran stay applied.
"""

import logging
from collections.abc import Callable
from typing import Any

from weft.core.unit import TraitUnit

logger = logging.getLogger(__name__)


class PipelineError(Exception):
    """Base exception for pipeline errors."""

    pass


class Pipeline:
    """
    A sequence of class transformers applied in order.

    Example:
        Todo = pipeline(Coloured, DeadlineSensitive)(Todo)
    """

    def __init__(self, steps: list[Callable[[type], type]]):
        self._steps = tuple(steps)

    @property
    def steps(self) -> tuple[Callable[[type], type], ...]:
        return self._steps

    @property
    def units(self) -> tuple[TraitUnit, ...]:
        """The trait units among the steps."""
        return tuple(step for step in self._steps if isinstance(step, TraitUnit))

    def __call__(self, target: type) -> type:
        """
        Run every step on the class in order.

        Returns:
            Whatever the last step returned (target itself if there are no steps)
        """
        for idx, step in enumerate(self._steps):
            logger.debug(
                "Pipeline step %d/%d: %r on %s",
                idx + 1,
                len(self._steps),
                step,
                getattr(target, "__qualname__", target),
            )
            target = step(target)
        return target

    def __instancecheck__(self, obj: Any) -> bool:
        units = self.units
        if not units:
            return False
        return all(unit.has_capability(obj) for unit in units)

    def __len__(self) -> int:
        return len(self._steps)

    def __repr__(self) -> str:
        return f"Pipeline({', '.join(repr(step) for step in self._steps)})"


def pipeline(*steps: Callable[[type], type]) -> Pipeline:
    """
    Compose class transformers left to right.

    Nested pipelines are flattened. An empty pipeline returns its input.

    Raises:
        PipelineError: If a step is not callable
    """
    flat: list[Callable[[type], type]] = []
    for idx, step in enumerate(steps):
        if isinstance(step, Pipeline):
            flat.extend(step.steps)
        elif callable(step):
            flat.append(step)
        else:
            raise PipelineError(
                f"Pipeline step {idx} is not callable: {type(step).__name__}"
            )
    return Pipeline(flat)
