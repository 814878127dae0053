from separationsolver.projection.variable import Variable
from separationsolver.projection.constraint import Constraint
from separationsolver.projection.block import Block
from separationsolver.projection.algorithm import FeasibleProjectionAlgorithm, ProjectionResult, project
from separationsolver.projection.validation import check_feasible, feasible_start, validate_problem
from separationsolver.projection.solve import build_problem, solve_separation
