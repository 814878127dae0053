from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

import numpy as np

if TYPE_CHECKING:
    import numpy.typing as npt

    from separationsolver.projection.constraint import Constraint
    from separationsolver.projection.variable import Variable


def positions(variables: Sequence[Variable]) -> npt.NDArray[np.float64]:
    """Current positions of `variables` as an array, in order."""
    return np.fromiter((v.current for v in variables), dtype=np.float64, count=len(variables))


def desired_positions(variables: Sequence[Variable]) -> npt.NDArray[np.float64]:
    """Desired positions of `variables` as an array, in order."""
    return np.fromiter((v.desired for v in variables), dtype=np.float64, count=len(variables))


def displacement(variables: Sequence[Variable]) -> float:
    """
    Sum of squared distances between current and desired positions.

    This is the objective minimized by the projection.
    """
    if not variables:
        return 0.0
    diff = positions(variables) - desired_positions(variables)
    return float(np.dot(diff, diff))


def slacks(constraints: Sequence[Constraint]) -> npt.NDArray[np.float64]:
    """
    Slack `right - left - gap` of each constraint at current positions.

    Negative entries are violations.
    """
    return np.fromiter(
        (c.slack() for c in constraints),
        dtype=np.float64,
        count=len(constraints),
    )


def max_violation(constraints: Sequence[Constraint]) -> float:
    """Largest constraint violation at current positions (0.0 when all hold)."""
    if not constraints:
        return 0.0
    return float(max(0.0, -np.min(slacks(constraints))))
