import unittest

import numpy as np

from separationsolver.__main__ import main, random_instance, run


class TestBenchmark(unittest.TestCase):
    def test_random_instance_shape(self) -> None:
        desired, separations = random_instance(10, 25, seed=3)
        self.assertEqual(desired.shape, (10,))
        self.assertEqual(separations.shape, (25, 3))
        self.assertTrue(np.all(separations[:, 0] < separations[:, 1]))

    def test_run_is_feasible(self) -> None:
        desired, separations = random_instance(50, 120, seed=1)
        result = run(desired, separations)
        self.assertLessEqual(result.max_violation, 1e-7)
        self.assertEqual(result.positions.shape, (50,))

    def test_main(self) -> None:
        main(["--variables", "20", "--constraints", "40", "--seed", "5"])

    def test_main_rejects_tiny_instance(self) -> None:
        with self.assertRaises(SystemExit):
            main(["--variables", "1"])


if __name__ == "__main__":
    unittest.main()
