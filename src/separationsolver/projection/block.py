from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

import numpy as np

if TYPE_CHECKING:
    from separationsolver.projection.constraint import Constraint
    from separationsolver.projection.variable import Variable


class Block:
    """
    Group of variables moved as a rigid unit.

    Every member sits at `position + member.offset`. The members are held
    together by `active_constraints`, which form a spanning tree over them.
    """
    def __init__(
        self,
        members: list[Variable],
        position: float,
        active_constraints: Iterable[Constraint] = (),
    ) -> None:
        """
        Initialize the block and claim ownership of its members.

        Member offsets must already be expressed relative to `position`.

        Args:
            members: Variables of the block, in deterministic order.
            position: Reference position of the block.
            active_constraints: Constraints spanning the members.
        """
        if not members:
            raise ValueError("A block needs at least one member.")

        self.members = members
        self.active_constraints: list[Constraint] = list(active_constraints)
        self.position = position

        # Start of the current interpolation step
        self.ideal_position = position

        # Optimal position, cached by the projection algorithm
        self.target: float | None = None

        # Tombstone set when the block is replaced by a merge or split
        self.deleted = False

        for v in self.members:
            v.block = self

    def __repr__(self) -> str:
        """String representation of the block."""
        labels = ", ".join(v.label for v in self.members)
        return f"{self.__class__.__name__}([{labels}], position={self.position})"

    def __len__(self) -> int:
        return len(self.members)

    @classmethod
    def from_variable(cls, variable: Variable) -> Block:
        """Create a singleton block anchored at the variable's current position."""
        variable.offset = 0.0
        return cls(members=[variable], position=variable.current)

    @classmethod
    def merge(cls, constraint: Constraint) -> Block:
        """
        Join the blocks of the constraint's endpoints through the constraint.

        The left block keeps its reference position. Members of the right
        block are rebased so that the constraint holds with equality.

        Args:
            constraint: Inactive constraint between two different blocks.

        Returns:
            The merged block. Its constraint is marked active.
        """
        left_block = constraint.left.block
        right_block = constraint.right.block
        if left_block is right_block:
            raise RuntimeError(f"{constraint!r} already lies inside a single block.")

        shift = constraint.left.offset + constraint.gap - constraint.right.offset
        for v in right_block.members:
            v.offset += shift

        constraint.active = True
        merged = cls(
            members=left_block.members + right_block.members,
            position=left_block.position,
            active_constraints=left_block.active_constraints + right_block.active_constraints + [constraint],
        )
        merged.move_to(merged.position)

        left_block.deleted = True
        right_block.deleted = True
        return merged

    def optimal_position(self) -> float:
        """
        Compute the unconstrained optimal reference position of the block.

        For members with desired positions d_i and offsets b_i, minimizing
        sum((position + b_i - d_i)^2) gives position = mean(d_i - b_i).
        """
        desired = np.fromiter((v.desired for v in self.members), dtype=np.float64, count=len(self.members))
        offsets = np.fromiter((v.offset for v in self.members), dtype=np.float64, count=len(self.members))
        return float(np.mean(desired - offsets))

    def move_to(self, position: float) -> None:
        """Set the reference position and update the members' current positions."""
        self.position = position
        for v in self.members:
            v.current = v.position_at(position)

    def _traverse(
        self,
        root: Variable,
        skip: Constraint | None = None,
    ) -> list[tuple[Variable, Constraint | None]]:
        """
        Walk the active constraint tree from `root`.

        Args:
            root: Starting member.
            skip: Active constraint treated as removed.

        Raises:
            RuntimeError: If the active constraints contain a cycle.

        Returns:
            (variable, constraint it was reached through) pairs. Every
            variable appears after the variable it was reached from.
        """
        order: list[tuple[Variable, Constraint | None]] = [(root, None)]
        arrived_by: dict[Variable, Constraint | None] = {root: None}
        stack = [root]
        while stack:
            v = stack.pop()
            for c in v.active_constraints():
                if c is skip or c is arrived_by[v]:
                    continue
                u = c.other(v)
                if u in arrived_by:
                    raise RuntimeError(f"Active constraints of {self!r} contain a cycle through {c!r}.")
                arrived_by[u] = c
                order.append((u, c))
                stack.append(u)
        return order

    def compute_multipliers(self) -> None:
        """
        Compute Lagrange multipliers of the active constraints.

        The derivative of the objective at a member v is 2(x_v - d_v) plus the
        contributions of the active subtrees hanging off v. An outgoing
        constraint takes the derivative of its right subtree as multiplier,
        an incoming one takes the negated derivative of its left subtree.

        x_v is the member's position with the block at `optimal_position()`,
        not its current position. Mid-step the current position is not
        optimal for the block, and derivatives taken there give multipliers
        that depend on the traversal root. At the optimal position they sum
        to zero over the block and are the KKT multipliers used for splitting.

        Raises:
            RuntimeError: If the active constraints are not a spanning tree.
        """
        for c in self.active_constraints:
            c.multiplier = 0.0

        reference = self.optimal_position()
        order = self._traverse(self.members[0])
        if len(order) != len(self.members) or len(order) - 1 != len(self.active_constraints):
            raise RuntimeError(
                f"Active constraints of {self!r} do not span its members: "
                f"reached {len(order)} of {len(self.members)} members "
                f"through {len(self.active_constraints)} constraints."
            )

        dfdv = {v: 2.0 * (v.position_at(reference) - v.desired) for v, _ in order}
        for v, via in reversed(order):
            if via is None:
                continue
            parent = via.other(v)
            if via.left is parent:
                via.multiplier = dfdv[v]
            else:
                via.multiplier = -dfdv[v]
            dfdv[parent] += dfdv[v]

    def min_multiplier(self) -> Constraint | None:
        """Return the active constraint with the smallest multiplier, if any."""
        if not self.active_constraints:
            return None
        return min(self.active_constraints, key=lambda c: c.multiplier)

    def split(self, constraint: Constraint) -> tuple[Block, Block]:
        """
        Deactivate `constraint` and split the block into the two trees it joined.

        Current positions of all members are kept. Each half is rebased so
        that its first member has zero offset.

        Args:
            constraint: Active constraint of this block.

        Returns:
            The blocks containing the constraint's left and right endpoints.
        """
        if not constraint.active or constraint.left.block is not self:
            raise ValueError(f"{constraint!r} is not an active constraint of {self!r}.")

        left_side = {v for v, _ in self._traverse(constraint.left, skip=constraint)}

        constraint.active = False
        constraint.multiplier = 0.0

        left_members = [v for v in self.members if v in left_side]
        right_members = [v for v in self.members if v not in left_side]
        left_active = [c for c in self.active_constraints if c is not constraint and c.left in left_side]
        right_active = [c for c in self.active_constraints if c is not constraint and c.left not in left_side]

        halves = []
        for members, active in ((left_members, left_active), (right_members, right_active)):
            anchor = members[0].offset
            for v in members:
                v.offset -= anchor
            halves.append(Block(members=members, position=self.position + anchor, active_constraints=active))

        self.deleted = True
        return halves[0], halves[1]
