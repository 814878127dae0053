"""Command-line benchmark: project a random layout instance."""
from __future__ import annotations

import argparse
import logging

import numpy as np

from separationsolver.dev import timer
from separationsolver.logging_config import setup_logging
from separationsolver.projection import FeasibleProjectionAlgorithm, ProjectionResult, build_problem, feasible_start

logger = logging.getLogger("separationsolver.cli")


def random_instance(
    n_variables: int,
    n_constraints: int,
    seed: int,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Build a random instance: a unit-gap chain plus random forward constraints.

    Constraints only point from lower to higher index, so the instance is
    always feasible.
    """
    rng = np.random.default_rng(seed)
    desired = rng.normal(0.0, 0.25 * n_variables, size=n_variables)

    rows = [(i, i + 1, 1.0) for i in range(n_variables - 1)]
    for _ in range(max(0, n_constraints - len(rows))):
        left, right = sorted(rng.choice(n_variables, size=2, replace=False))
        rows.append((int(left), int(right), float(rng.uniform(0.0, 3.0))))
    return desired, np.asarray(rows, dtype=np.float64).reshape(-1, 3)


@timer
def run(desired: np.ndarray, separations: np.ndarray) -> ProjectionResult:
    variables, constraints = build_problem(desired, separations)
    feasible_start(variables, constraints)
    return FeasibleProjectionAlgorithm(variables, constraints).solve()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="separationsolver", description=__doc__)
    parser.add_argument("--variables", type=int, default=200, help="number of variables")
    parser.add_argument("--constraints", type=int, default=400, help="number of constraints (at least the chain)")
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--debug", action="store_true", help="log every merge and split")
    parser.add_argument("--log-file", default=None)
    args = parser.parse_args(argv)

    if args.variables < 2:
        parser.error("--variables must be at least 2")

    setup_logging(level=logging.DEBUG if args.debug else logging.INFO, log_file=args.log_file)

    desired, separations = random_instance(args.variables, args.constraints, args.seed)
    result = run(desired, separations)
    logger.info(
        f"iterations={result.iterations} merges={result.merges} splits={result.splits} "
        f"blocks={result.blocks} objective={result.objective:.6g} max_violation={result.max_violation:.3g}"
    )


if __name__ == "__main__":
    main()
