"""
Input Validation
================
Checks run on a projection problem before the solver touches it.

The projection assumes well-formed constraints, finite data, a feasible
starting placement and a constraint graph without infeasible cycles. This
module verifies those assumptions and can compute a feasible start.

Functions:
    validate_problem: Reject malformed variables and constraints.
    check_feasible: Reject starting positions that violate a constraint.
    feasible_start: Push desired positions apart until every constraint holds.
"""
from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Sequence

import numpy as np

from separationsolver.config import FEASIBILITY_TOLERANCE
from separationsolver.utils import positions, slacks

if TYPE_CHECKING:
    import numpy.typing as npt

    from separationsolver.projection.constraint import Constraint
    from separationsolver.projection.variable import Variable

logger = logging.getLogger(__name__)


def validate_problem(variables: Sequence[Variable], constraints: Sequence[Constraint]) -> None:
    """
    Check that the variables and constraints describe a well-formed problem.

    Args:
        variables: Variables of the problem.
        constraints: Separation constraints between the variables.

    Raises:
        ValueError: If a variable is listed twice or has a non-finite position,
            or if a constraint references an unknown variable, relates a
            variable to itself, or has a negative or non-finite gap.
    """
    known: set[int] = set()
    for v in variables:
        if id(v) in known:
            raise ValueError(f"Variable {v!r} is listed more than once.")
        known.add(id(v))
        if not (math.isfinite(v.desired) and math.isfinite(v.current)):
            raise ValueError(f"Variable {v!r} has a non-finite position.")

    for c in constraints:
        if id(c.left) not in known or id(c.right) not in known:
            raise ValueError(f"Constraint {c!r} references a variable outside the problem.")
        if c.left is c.right:
            raise ValueError(f"Constraint {c!r} relates a variable to itself.")
        if not math.isfinite(c.gap) or c.gap < 0.0:
            raise ValueError(f"Constraint {c!r} has an invalid gap {c.gap}; gaps must be finite and non-negative.")


def check_feasible(
    constraints: Sequence[Constraint],
    tolerance: float = FEASIBILITY_TOLERANCE,
) -> None:
    """
    Check that the current positions satisfy every constraint.

    Args:
        constraints: Constraints to check.
        tolerance: Allowed violation.

    Raises:
        ValueError: If any constraint is violated by more than `tolerance`.
    """
    if not constraints:
        return
    s = slacks(constraints)
    violated = np.flatnonzero(s < -tolerance)
    if violated.size:
        worst = int(np.argmin(s))
        raise ValueError(
            f"Starting positions violate {violated.size} constraint(s); "
            f"worst is {constraints[worst]!r} by {-s[worst]:.6g}."
        )


def feasible_start(
    variables: Sequence[Variable],
    constraints: Sequence[Constraint],
) -> npt.NDArray[np.float64]:
    """
    Compute a feasible starting placement from the desired positions.

    Each variable starts at its desired position and is pushed right until
    it clears every constraint it is the right endpoint of (longest-path
    relaxation). The current positions of the variables are overwritten.

    Args:
        variables: Variables of the problem.
        constraints: Separation constraints between the variables.

    Raises:
        ValueError: If the constraints contain a cycle with positive total gap,
            which no placement can satisfy.

    Returns:
        The feasible positions in variable order.
    """
    for v in variables:
        v.current = v.desired

    # Longest paths settle within len(variables) sweeps unless a positive cycle exists
    for sweep in range(len(variables) + 1):
        changed = False
        for c in constraints:
            needed = c.left.current + c.gap
            if c.right.current < needed:
                c.right.current = needed
                changed = True
        if not changed:
            logger.debug(f"Feasible start found after {sweep + 1} sweep(s).")
            return positions(variables)

    raise ValueError("Constraints contain a cycle with positive total gap; no feasible placement exists.")
