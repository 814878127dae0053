import itertools
import unittest

import numpy as np
from scipy.linalg import lstsq

from separationsolver.projection import solve_separation


def _reference_projection(desired: np.ndarray, rows: np.ndarray) -> np.ndarray:
    """
    Exact least-squares projection by enumerating active sets.

    The optimum is the projection of `desired` onto the affine set where its
    active constraints hold with equality, and every such projection that is
    feasible is no better than the optimum. The best feasible candidate over
    all subsets is therefore the optimum.
    """
    n = desired.size
    left, right, gap = rows[:, 0].astype(int), rows[:, 1].astype(int), rows[:, 2]
    a = np.zeros((len(rows), n))
    a[np.arange(len(rows)), right] += 1.0
    a[np.arange(len(rows)), left] -= 1.0

    best, best_objective = None, np.inf
    for size in range(len(rows) + 1):
        for subset in itertools.combinations(range(len(rows)), size):
            x = desired.copy()
            if subset:
                a_s = a[list(subset)]
                y = lstsq(a_s @ a_s.T, a_s @ desired - gap[list(subset)])[0]
                x = desired - a_s.T @ y
            if np.all(a @ x >= gap - 1e-9):
                objective = float(np.sum((x - desired) ** 2))
                if objective < best_objective:
                    best, best_objective = x, objective
    assert best is not None
    return best


def _small_instance(rng: np.random.Generator) -> tuple[np.ndarray, np.ndarray]:
    n = int(rng.integers(2, 7))
    m = int(rng.integers(1, 9))
    order = rng.permutation(n)
    rows = []
    for _ in range(m):
        i, j = sorted(rng.choice(n, size=2, replace=False))
        rows.append((order[i], order[j], rng.uniform(0.0, 2.0)))
    desired = rng.normal(0.0, 2.0, size=n)
    return desired, np.asarray(rows, dtype=np.float64)


class TestOptimality(unittest.TestCase):
    def test_matches_reference_qp_on_small_instances(self) -> None:
        rng = np.random.default_rng(2024)
        for k in range(60):
            desired, rows = _small_instance(rng)
            with self.subTest(instance=k, n=desired.size, m=len(rows)):
                projected = solve_separation(desired, rows)
                reference = _reference_projection(desired, rows)

                left, right, gap = rows[:, 0].astype(int), rows[:, 1].astype(int), rows[:, 2]
                self.assertTrue(np.all(projected[right] - projected[left] >= gap - 1e-9))

                ours = float(np.sum((projected - desired) ** 2))
                theirs = float(np.sum((reference - desired) ** 2))
                self.assertLessEqual(ours, theirs + 1e-6)
                np.testing.assert_allclose(projected, reference, atol=1e-7)

    def test_shared_endpoint_star(self) -> None:
        # Hub pushed right by three leaves that all want to sit on top of it
        desired = np.zeros(4)
        rows = [(1, 0, 1.0), (2, 0, 1.0), (3, 0, 1.0)]
        projected = solve_separation(desired, rows)
        np.testing.assert_allclose(projected, [0.75, -0.25, -0.25, -0.25], atol=1e-12)


if __name__ == "__main__":
    unittest.main()
