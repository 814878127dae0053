"""Feasible projection of one-dimensional variables onto separation constraints."""
from separationsolver.config import SolverSettings
from separationsolver.projection import (
    Block,
    Constraint,
    FeasibleProjectionAlgorithm,
    ProjectionResult,
    Variable,
    build_problem,
    check_feasible,
    feasible_start,
    project,
    solve_separation,
    validate_problem,
)

__version__ = "0.1.0"
