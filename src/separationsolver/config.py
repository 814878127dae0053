"""
Solver Configuration
====================
This module serves as the central registry for numerical tolerances and
global constants used by the projection solver.

Why is this file needed?
------------------------
1. Abstraction: It prevents magic epsilons scattered throughout the code.
2. Tuning: Callers adjust tolerances by passing a `SolverSettings` instance
   instead of patching module constants.

Exports:
    ALPHA_EPSILON (float): Guard for near-zero relative block velocities.
    MULTIPLIER_TOLERANCE (float): Multipliers below -tol trigger a split.
    FEASIBILITY_TOLERANCE (float): Allowed constraint violation.
    MAX_ITERATIONS_FACTOR (int): Iteration cap per (variables + constraints).
    SolverSettings: Data class bundling the above.
"""
from __future__ import annotations

from dataclasses import dataclass


# Global Constants
ALPHA_EPSILON: float = 1e-10
MULTIPLIER_TOLERANCE: float = 1e-9
FEASIBILITY_TOLERANCE: float = 1e-7
MAX_ITERATIONS_FACTOR: int = 100


@dataclass
class SolverSettings:
    """
    Holds the solver configuration for a single projection pass.
    """
    alpha_epsilon: float = ALPHA_EPSILON
    multiplier_tolerance: float = MULTIPLIER_TOLERANCE
    feasibility_tolerance: float = FEASIBILITY_TOLERANCE
    max_iterations_factor: int = MAX_ITERATIONS_FACTOR

    # Reject malformed input and infeasible starting positions up front
    validate_input: bool = True

    # Raise on re-activation of a constraint across the same block split
    check_invariants: bool = True

    def max_iterations(self, n_variables: int, n_constraints: int) -> int:
        """Return the merge/split iteration cap for a problem of the given size."""
        return self.max_iterations_factor * (n_variables + n_constraints + 1)
