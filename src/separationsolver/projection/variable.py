from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from separationsolver.projection.block import Block
    from separationsolver.projection.constraint import Constraint


class Variable:
    """
    Represents a scalar unknown placed along one axis of the layout.
    """
    def __init__(
        self,
        index: int,
        desired: float,
        current: float | None = None,
        name: str | None = None,
    ) -> None:
        """
        Initialize the variable.

        Args:
            index: Position of the variable in the caller's ordered collection.
            desired: Target position the projection pulls the variable towards.
            current: Feasible starting position. Defaults to `desired`.
            name: Optional label used in logs.
        """
        self.index = index
        self.name = name
        self.desired = float(desired)
        self.current = float(desired if current is None else current)

        # Block membership, assigned by the projection algorithm
        self.block: Block | None = None
        self.offset: float = 0.0

        self.outgoing: list[Constraint] = []
        self.incoming: list[Constraint] = []

    def __repr__(self) -> str:
        """String representation of the variable."""
        label = self.name if self.name is not None else self.index
        return f"{self.__class__.__name__}({label}, desired={self.desired}, current={self.current})"

    @property
    def label(self) -> str:
        """Name of the variable, falling back to its index."""
        return self.name if self.name is not None else str(self.index)

    def position_at(self, reference: float) -> float:
        """Position of the variable when its block sits at `reference`."""
        return reference + self.offset

    def active_constraints(self) -> list[Constraint]:
        """Active constraints incident to the variable, outgoing first."""
        return [c for c in self.outgoing if c.active] + [c for c in self.incoming if c.active]
