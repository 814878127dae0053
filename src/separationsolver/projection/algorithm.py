from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Sequence

import numpy as np

from separationsolver.config import SolverSettings
from separationsolver.projection.block import Block
from separationsolver.projection.validation import check_feasible, validate_problem
from separationsolver.utils import displacement, max_violation, positions

if TYPE_CHECKING:
    import numpy.typing as npt

    from separationsolver.projection.constraint import Constraint
    from separationsolver.projection.variable import Variable

logger = logging.getLogger(__name__)


@dataclass
class ProjectionResult:
    """
    Outcome of one projection pass.
    """
    positions: npt.NDArray[np.float64]
    iterations: int
    merges: int
    splits: int
    blocks: int
    objective: float
    max_violation: float


class FeasibleProjectionAlgorithm:
    """
    Projects desired positions onto separation constraints while staying feasible.

    Starting from a feasible placement, every block moves towards its optimal
    position. Whenever the move would violate an inactive constraint, the
    move stops at the binding point, the constraint becomes active and
    merges its two blocks. Merged blocks whose active constraints carry a
    negative Lagrange multiplier are split again. The pass ends when every
    block can reach its optimal position.

    An instance handles a single projection pass.
    """

    def __init__(
        self,
        variables: Sequence[Variable],
        constraints: Sequence[Constraint],
        settings: SolverSettings | None = None,
    ) -> None:
        """
        Initialize the algorithm with the problem to solve.

        Args:
            variables: Variables with desired and feasible current positions.
            constraints: Separation constraints between the variables.
            settings: Solver tolerances and checks. Defaults to `SolverSettings()`.

        Raises:
            ValueError: If input validation is enabled and the problem is
                malformed or the current positions are infeasible.
        """
        self.variables = list(variables)
        self.constraints = list(constraints)
        self.settings = settings if settings is not None else SolverSettings()

        if self.settings.validate_input:
            validate_problem(self.variables, self.constraints)
            check_feasible(self.constraints, tolerance=self.settings.feasibility_tolerance)

        self.blocks: list[Block] = []
        self.inactive: list[Constraint] = list(self.constraints)

        self.iterations = 0
        self.merges = 0
        self.splits = 0

        # (constraint, left members, right members) recorded at every split
        self._split_history: set[tuple[Constraint, frozenset[Variable], frozenset[Variable]]] = set()
        self._solved = False

    def init_blocks(self) -> None:
        """Place every variable in its own block and deactivate all constraints."""
        for c in self.constraints:
            c.active = False
            c.multiplier = 0.0
        self.blocks = [Block.from_variable(v) for v in self.variables]

    def solve(self) -> ProjectionResult:
        """
        Run the projection pass.

        Raises:
            RuntimeError: If called twice, if the iteration cap is exceeded or
                if an internal invariant is broken.

        Returns:
            The result of the pass. Variables hold the projected positions.
        """
        if self._solved:
            raise RuntimeError("FeasibleProjectionAlgorithm instances solve a single pass.")
        self._solved = True

        self.init_blocks()
        max_iterations = self.settings.max_iterations(len(self.variables), len(self.constraints))

        self._update_targets()
        constraint, alpha = self.max_safe_alpha()
        while constraint is not None and alpha < 1.0:
            self.iterations += 1
            if self.iterations > max_iterations:
                raise RuntimeError(f"Projection did not converge after {max_iterations} iterations.")

            self._move_blocks(alpha)
            self.make_active(constraint, alpha)

            self._update_targets()
            constraint, alpha = self.max_safe_alpha()

        self._move_blocks(1.0)
        return self._result()

    def _update_targets(self) -> None:
        """Start a new interpolation step from the blocks' current positions."""
        for b in self.blocks:
            b.ideal_position = b.position
            if b.target is None:
                b.target = b.optimal_position()

    def _move_blocks(self, alpha: float) -> None:
        """Move every block the fraction `alpha` from its ideal to its target position."""
        for b in self.blocks:
            if alpha >= 1.0:
                b.move_to(b.target)
            else:
                b.move_to(b.ideal_position + alpha * (b.target - b.ideal_position))

    def max_safe_alpha(self) -> tuple[Constraint | None, float]:
        """
        Find the first inactive constraint hit on the way to the block targets.

        For an inactive constraint between different blocks, with
        Al, Ar the endpoint positions at the ideal block positions and Bl, Br
        the block displacements to their targets, the constraint becomes
        tight at alpha = (gap + Al - Ar) / (Br - Bl). Constraints that hold at
        the targets, lie inside one block, or have a vanishing denominator are
        safe for the whole step (alpha = 1).

        Returns:
            The binding constraint with the smallest alpha (first in pool order
            on ties) and that alpha, or (None, 1.0) when nothing is inactive.
        """
        pool = self.inactive
        n = len(pool)
        if n == 0:
            return None, 1.0

        eps = self.settings.alpha_epsilon
        gap = np.fromiter((c.gap for c in pool), dtype=np.float64, count=n)
        offset_l = np.fromiter((c.left.offset for c in pool), dtype=np.float64, count=n)
        offset_r = np.fromiter((c.right.offset for c in pool), dtype=np.float64, count=n)
        ideal_l = np.fromiter((c.left.block.ideal_position for c in pool), dtype=np.float64, count=n)
        ideal_r = np.fromiter((c.right.block.ideal_position for c in pool), dtype=np.float64, count=n)
        target_l = np.fromiter((c.left.block.target for c in pool), dtype=np.float64, count=n)
        target_r = np.fromiter((c.right.block.target for c in pool), dtype=np.float64, count=n)
        same_block = np.fromiter((c.left.block is c.right.block for c in pool), dtype=bool, count=n)

        holds_at_target = target_l + offset_l + gap <= target_r + offset_r + eps

        a_l = ideal_l + offset_l
        a_r = ideal_r + offset_r
        denominator = (target_r - ideal_r) - (target_l - ideal_l)
        numerator = gap + a_l - a_r

        binding = ~(holds_at_target | same_block) & (np.abs(denominator) > eps)

        alpha = np.ones(n, dtype=np.float64)
        alpha[binding] = np.clip(numerator[binding] / denominator[binding], 0.0, 1.0)

        i = int(np.argmin(alpha))
        return pool[i], float(alpha[i])

    def make_active(self, constraint: Constraint, alpha: float = 0.0) -> Block:
        """
        Activate `constraint`, merging the blocks of its endpoints.

        The merged block is then split on negative multipliers until every
        resulting block is locally optimal.

        Args:
            constraint: Inactive constraint between two blocks.
            alpha: Step fraction at which the constraint became tight, for logging.

        Raises:
            RuntimeError: If invariant checks are enabled and the constraint
                rejoins the same two member sets it was split from.

        Returns:
            The merged block.
        """
        left_block = constraint.left.block
        right_block = constraint.right.block
        if self.settings.check_invariants:
            key = (constraint, frozenset(left_block.members), frozenset(right_block.members))
            if key in self._split_history:
                raise RuntimeError(f"{constraint!r} re-activated across the split that released it.")

        self.inactive.remove(constraint)
        merged = Block.merge(constraint)
        self.merges += 1
        logger.debug(
            f"Merged {len(left_block)} + {len(right_block)} variables through {constraint!r} at alpha={alpha:.6g}"
        )

        self._replace_blocks([merged])
        self.split_blocks([merged])
        return merged

    def make_inactive(self, constraint: Constraint) -> tuple[Block, Block]:
        """
        Deactivate `constraint`, splitting its block in two.

        Args:
            constraint: Active constraint to release.

        Returns:
            The blocks holding the constraint's left and right endpoints.
        """
        block = constraint.left.block
        multiplier = constraint.multiplier
        left_block, right_block = block.split(constraint)
        self.inactive.append(constraint)
        self.splits += 1

        if self.settings.check_invariants:
            self._split_history.add(
                (constraint, frozenset(left_block.members), frozenset(right_block.members))
            )
        logger.debug(
            f"Split {len(block)} variables into {len(left_block)} + {len(right_block)} "
            f"at {constraint!r} (multiplier={multiplier:.6g})"
        )

        self._replace_blocks([left_block, right_block])
        return left_block, right_block

    def split_blocks(self, blocks: Sequence[Block]) -> None:
        """
        Split `blocks` until no active constraint has a negative multiplier.

        Each round releases the constraint with the most negative multiplier
        and re-checks both halves.
        """
        tolerance = self.settings.multiplier_tolerance
        pending = list(blocks)
        while pending:
            block = pending.pop()
            block.compute_multipliers()
            constraint = block.min_multiplier()
            if constraint is None or constraint.multiplier >= -tolerance:
                continue
            pending.extend(self.make_inactive(constraint))

    def _replace_blocks(self, new_blocks: Sequence[Block]) -> None:
        """Drop tombstoned blocks and append `new_blocks`."""
        self.blocks = [b for b in self.blocks if not b.deleted]
        self.blocks.extend(new_blocks)

    def _result(self) -> ProjectionResult:
        """Collect the outcome of the pass and log a summary."""
        violation = max_violation(self.constraints)
        result = ProjectionResult(
            positions=positions(self.variables),
            iterations=self.iterations,
            merges=self.merges,
            splits=self.splits,
            blocks=len(self.blocks),
            objective=displacement(self.variables),
            max_violation=violation,
        )
        if violation > self.settings.feasibility_tolerance:
            logger.warning(f"Projection finished with constraint violation {violation:.6g}.")
        logger.info(
            f"Projected {len(self.variables)} variables onto {len(self.constraints)} constraints: "
            f"{result.merges} merges, {result.splits} splits, {result.blocks} blocks, "
            f"objective={result.objective:.6g}"
        )
        return result


def project(
    variables: Sequence[Variable],
    constraints: Sequence[Constraint],
    settings: SolverSettings | None = None,
) -> ProjectionResult:
    """
    Project the variables' desired positions onto the constraints.

    Args:
        variables: Variables whose current positions are feasible.
        constraints: Separation constraints between the variables.
        settings: Solver tolerances and checks.

    Returns:
        The result of the pass. Variables hold the projected positions.
    """
    return FeasibleProjectionAlgorithm(variables, constraints, settings=settings).solve()
