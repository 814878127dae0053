import unittest

from separationsolver.projection import Block, Constraint, Variable


def _chain_block(desired: list[float], gap: float = 1.0) -> tuple[Block, list[Variable], list[Constraint]]:
    variables = [Variable(i, d, current=i * gap) for i, d in enumerate(desired)]
    constraints = [Constraint(variables[i], variables[i + 1], gap) for i in range(len(variables) - 1)]
    for v in variables:
        Block.from_variable(v)
    block = variables[0].block
    for c in constraints:
        block = Block.merge(c)
    return block, variables, constraints


class TestBlockPosition(unittest.TestCase):
    def test_singleton_optimal_position_is_desired(self) -> None:
        v = Variable(0, 2.5, current=4.0)
        block = Block.from_variable(v)
        self.assertEqual(block.position, 4.0)
        self.assertEqual(v.offset, 0.0)
        self.assertEqual(block.optimal_position(), 2.5)

    def test_optimal_position_accounts_for_offsets(self) -> None:
        block, variables, _ = _chain_block([0.0, 0.0, 0.0])
        self.assertEqual([v.offset for v in variables], [0.0, 1.0, 2.0])
        self.assertAlmostEqual(block.optimal_position(), -1.0)

    def test_move_to_updates_members(self) -> None:
        block, variables, _ = _chain_block([0.0, 0.0, 0.0])
        block.move_to(-1.0)
        self.assertEqual([v.current for v in variables], [-1.0, 0.0, 1.0])


class TestBlockMerge(unittest.TestCase):
    def test_merge_makes_constraint_tight(self) -> None:
        a = Variable(0, 0.0, current=0.0)
        b = Variable(1, 0.0, current=1.5)
        c = Constraint(a, b, 1.5)
        left, right = Block.from_variable(a), Block.from_variable(b)

        merged = Block.merge(c)

        self.assertTrue(c.active)
        self.assertTrue(left.deleted)
        self.assertTrue(right.deleted)
        self.assertIs(a.block, merged)
        self.assertIs(b.block, merged)
        self.assertEqual(merged.members, [a, b])
        self.assertEqual(merged.active_constraints, [c])
        self.assertAlmostEqual(b.offset - a.offset, 1.5)
        self.assertAlmostEqual(c.slack(), 0.0)

    def test_merge_within_one_block_is_rejected(self) -> None:
        a = Variable(0, 0.0, current=0.0)
        b = Variable(1, 0.0, current=1.0)
        c1 = Constraint(a, b, 1.0)
        c2 = Constraint(a, b, 0.5)
        Block.from_variable(a)
        Block.from_variable(b)
        Block.merge(c1)
        with self.assertRaises(RuntimeError):
            Block.merge(c2)


class TestBlockMultipliers(unittest.TestCase):
    def test_chain_multipliers_are_positive(self) -> None:
        block, _, constraints = _chain_block([0.0, 0.0, 0.0])
        block.compute_multipliers()
        self.assertAlmostEqual(constraints[0].multiplier, 2.0)
        self.assertAlmostEqual(constraints[1].multiplier, 2.0)

    def test_multipliers_ignore_current_block_position(self) -> None:
        block, _, constraints = _chain_block([0.0, 0.0, 0.0])
        block.move_to(5.0)
        block.compute_multipliers()
        self.assertAlmostEqual(constraints[0].multiplier, 2.0)
        self.assertAlmostEqual(constraints[1].multiplier, 2.0)

    def test_separating_pair_has_negative_multiplier(self) -> None:
        # b wants to be far right of a; the constraint only holds them together
        block, _, constraints = _chain_block([0.0, 5.0])
        block.compute_multipliers()
        self.assertAlmostEqual(constraints[0].multiplier, -4.0)
        self.assertIs(block.min_multiplier(), constraints[0])

    def test_multipliers_follow_incoming_constraints(self) -> None:
        # a -> b <- c, traversed from c so that b is reached before a
        a = Variable(0, 0.0, current=0.0)
        b = Variable(1, 0.0, current=1.0)
        c = Variable(2, 0.0, current=0.0)
        ab = Constraint(a, b, 1.0)
        cb = Constraint(c, b, 1.0)
        for v in (a, b, c):
            Block.from_variable(v)
        Block.merge(ab)
        block = Block.merge(cb)
        self.assertEqual(block.members, [c, a, b])
        self.assertAlmostEqual(block.optimal_position(), -1.0 / 3.0)

        block.compute_multipliers()
        self.assertAlmostEqual(ab.multiplier, 2.0 / 3.0)
        self.assertAlmostEqual(cb.multiplier, 2.0 / 3.0)

    def test_singleton_has_no_split_candidate(self) -> None:
        block = Block.from_variable(Variable(0, 1.0))
        block.compute_multipliers()
        self.assertIsNone(block.min_multiplier())

    def test_cycle_in_active_constraints_is_detected(self) -> None:
        a = Variable(0, 0.0, current=0.0)
        b = Variable(1, 0.0, current=1.0)
        c1 = Constraint(a, b, 1.0)
        c2 = Constraint(a, b, 1.0)
        Block.from_variable(a)
        Block.from_variable(b)
        block = Block.merge(c1)

        c2.active = True
        block.active_constraints.append(c2)
        with self.assertRaises(RuntimeError):
            block.compute_multipliers()


class TestBlockSplit(unittest.TestCase):
    def test_split_partitions_tree(self) -> None:
        block, variables, constraints = _chain_block([0.0, 0.0, 0.0])
        block.move_to(-1.0)
        before = [v.current for v in variables]

        left, right = block.split(constraints[0])

        self.assertTrue(block.deleted)
        self.assertFalse(constraints[0].active)
        self.assertEqual(left.members, variables[:1])
        self.assertEqual(right.members, variables[1:])
        self.assertEqual(left.active_constraints, [])
        self.assertEqual(right.active_constraints, [constraints[1]])
        self.assertIs(variables[0].block, left)
        self.assertIs(variables[2].block, right)
        self.assertEqual([v.current for v in variables], before)
        self.assertEqual(right.members[0].offset, 0.0)
        self.assertAlmostEqual(right.position, 0.0)

    def test_split_requires_active_constraint(self) -> None:
        block, _, constraints = _chain_block([0.0, 0.0])
        block.split(constraints[0])
        with self.assertRaises(ValueError):
            constraints[0].left.block.split(constraints[0])


if __name__ == "__main__":
    unittest.main()
