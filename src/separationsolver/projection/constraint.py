from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from separationsolver.projection.variable import Variable


class Constraint:
    """
    Separation constraint `right - left >= gap` between two variables.

    The constraint registers itself with both endpoints on creation; it is
    shared between them and owned by the caller's constraint collection.
    """
    def __init__(
        self,
        left: Variable,
        right: Variable,
        gap: float,
    ) -> None:
        """
        Initialize the constraint and register it with its endpoints.

        Args:
            left: Variable that must stay at least `gap` before `right`.
            right: Variable that must stay at least `gap` after `left`.
            gap: Minimum required separation.
        """
        self.left = left
        self.right = right
        self.gap = float(gap)

        self.active: bool = False
        self.multiplier: float = 0.0

        left.outgoing.append(self)
        right.incoming.append(self)

    def __repr__(self) -> str:
        """String representation of the constraint."""
        state = "active" if self.active else "inactive"
        return f"{self.__class__.__name__}({self.left.label} + {self.gap} <= {self.right.label}, {state})"

    def slack(self) -> float:
        """Slack at current positions; negative when violated."""
        return self.right.current - self.left.current - self.gap

    def other(self, variable: Variable) -> Variable:
        """Return the endpoint opposite to `variable`."""
        if variable is self.left:
            return self.right
        if variable is self.right:
            return self.left
        raise ValueError(f"{variable!r} is not an endpoint of {self!r}")

    def detach(self) -> None:
        """Remove the constraint from its endpoints' adjacency lists."""
        self.left.outgoing.remove(self)
        self.right.incoming.remove(self)
