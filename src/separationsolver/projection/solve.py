from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

import numpy as np

from separationsolver.config import SolverSettings
from separationsolver.projection.algorithm import FeasibleProjectionAlgorithm
from separationsolver.projection.constraint import Constraint
from separationsolver.projection.validation import feasible_start
from separationsolver.projection.variable import Variable

if TYPE_CHECKING:
    import numpy.typing as npt


def build_problem(
    desired: Sequence[float] | npt.NDArray[np.float64],
    separations: Sequence[tuple[int, int, float]] | npt.NDArray[np.float64],
    start: Sequence[float] | npt.NDArray[np.float64] | None = None,
) -> tuple[list[Variable], list[Constraint]]:
    """
    Create variables and constraints from plain arrays.

    Args:
        desired: Desired position of each variable.
        separations: Rows of (left index, right index, gap).
        start: Starting positions; defaults to the desired positions.

    Raises:
        ValueError: If the arrays have the wrong shape or an index is out of range.

    Returns:
        The variables and constraints, in input order.
    """
    desired_arr = np.asarray(desired, dtype=np.float64).reshape(-1)
    if start is None:
        start_arr = desired_arr
    else:
        start_arr = np.asarray(start, dtype=np.float64).reshape(-1)
        if start_arr.shape != desired_arr.shape:
            raise ValueError(f"Expected {desired_arr.size} starting positions, got {start_arr.size}.")

    rows = np.asarray(separations, dtype=np.float64)
    if rows.size == 0:
        rows = rows.reshape(0, 3)
    if rows.ndim != 2 or rows.shape[1] != 3:
        raise ValueError(f"Expected separations of shape (M, 3), got {rows.shape}.")

    variables = [Variable(i, d, s) for i, (d, s) in enumerate(zip(desired_arr, start_arr))]

    constraints: list[Constraint] = []
    n = len(variables)
    for left, right, gap in rows:
        if left != int(left) or right != int(right) or not (0 <= left < n and 0 <= right < n):
            raise ValueError(f"Separation ({left}, {right}, {gap}) references an unknown variable.")
        constraints.append(Constraint(variables[int(left)], variables[int(right)], gap))

    return variables, constraints


def solve_separation(
    desired: Sequence[float] | npt.NDArray[np.float64],
    separations: Sequence[tuple[int, int, float]] | npt.NDArray[np.float64],
    start: Sequence[float] | npt.NDArray[np.float64] | None = None,
    settings: SolverSettings | None = None,
) -> npt.NDArray[np.float64]:
    """
    Project desired positions onto separation constraints.

    Args:
        desired: Desired position of each variable.
        separations: Rows of (left index, right index, gap) meaning
            x[right] - x[left] >= gap.
        start: Feasible starting positions. When omitted, a feasible start is
            computed from the desired positions.
        settings: Solver tolerances and checks.

    Returns:
        The projected positions.
    """
    variables, constraints = build_problem(desired, separations, start)
    if start is None:
        feasible_start(variables, constraints)
    return FeasibleProjectionAlgorithm(variables, constraints, settings=settings).solve().positions
