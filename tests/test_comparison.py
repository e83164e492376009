import os
import random
import sys
import unittest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from cache_engine import ReplacementPolicy
from comparison import PolicyComparison
from config import Config


class TestPolicyComparison(unittest.TestCase):

    def setUp(self):
        self.comparison = PolicyComparison(
            ReplacementPolicy.LRU, ReplacementPolicy.FIFO, capacity=2,
            sequence=["A", "B", "A", "C", "B"],
        )

    def test_history_is_precomputed(self):
        self.assertEqual(len(self.comparison.history), 5)
        self.assertEqual(self.comparison.max_step, 4)
        self.assertEqual(self.comparison.current_step, -1)

    def test_before_first_step_both_caches_are_empty(self):
        current = self.comparison.get_current_comparison()
        self.assertIsNone(current["access_value"])
        self.assertIsNone(current["cache1"]["result"])
        self.assertEqual(current["cache1"]["values"], [None, None])
        self.assertEqual(current["cache2"]["stats"]["total_accesses"], 0)

    def test_navigation(self):
        c = self.comparison
        self.assertFalse(c.step_backward())
        self.assertTrue(c.step_forward())
        self.assertEqual(c.get_current_access_value(), "A")

        self.assertTrue(c.jump_to_step(c.max_step))
        self.assertFalse(c.step_forward())
        self.assertFalse(c.jump_to_step(10))
        self.assertEqual(c.get_current_step_data().step_index, 4)

        c.reset()
        self.assertEqual(c.current_step, -1)
        self.assertIsNone(c.get_current_step_data())

    def test_policies_diverge(self):
        """LRU keeps the re-used A, FIFO throws it out first."""
        c = self.comparison
        c.jump_to_step(3)
        current = c.get_current_comparison()
        self.assertEqual(current["access_value"], "C")
        self.assertEqual(current["cache1"]["result"].evicted_key, "B")
        self.assertEqual(current["cache2"]["result"].evicted_key, "A")

        summary = c.get_comparison_summary()
        self.assertEqual(summary["final_stats"]["cache1"]["hits"], 1)
        self.assertEqual(summary["final_stats"]["cache2"]["hits"], 2)

    def test_stepping_back_shows_earlier_state(self):
        c = self.comparison
        c.jump_to_step(4)
        c.step_backward()
        current = c.get_current_comparison()
        self.assertEqual(current["step"], 3)
        self.assertEqual(current["cache1"]["stats"]["total_accesses"], 4)

    def test_generate_new_sequence(self):
        c = PolicyComparison(ReplacementPolicy.CLOCK, ReplacementPolicy.RANDOM,
                             rng=random.Random(1))
        self.assertEqual(len(c.access_sequence), Config.sequence_length)
        c.step_forward()
        c.generate_new_sequence(length=5)
        self.assertEqual(len(c.access_sequence), 5)
        self.assertEqual(c.current_step, -1)
        self.assertTrue(set(c.access_sequence) <= set(Config.possible_values))

    def test_seeded_runs_are_reproducible(self):
        first = PolicyComparison(ReplacementPolicy.RANDOM, ReplacementPolicy.LRU, rng=random.Random(3))
        second = PolicyComparison(ReplacementPolicy.RANDOM, ReplacementPolicy.LRU, rng=random.Random(3))
        self.assertEqual(first.access_sequence, second.access_sequence)
        self.assertEqual(first.get_comparison_summary(), second.get_comparison_summary())

    def test_optimal_uses_the_comparison_sequence(self):
        c = PolicyComparison(ReplacementPolicy.OPTIMAL, ReplacementPolicy.LRU, capacity=3,
                             sequence=list("ABCDAB"))
        final = c.get_comparison_summary()["final_stats"]
        self.assertEqual(final["cache1"]["hits"], 2)
        self.assertGreaterEqual(final["cache1"]["hits"], final["cache2"]["hits"])

    def test_custom_sequence_and_policy_update(self):
        c = self.comparison
        c.set_custom_sequence([1, 2, 1])
        self.assertEqual(c.max_step, 2)
        c.update_policies(ReplacementPolicy.TWO_Q, ReplacementPolicy.CLOCK)
        self.assertEqual(c.get_comparison_summary()["final_stats"]["cache1"]["policy"],
                         ReplacementPolicy.TWO_Q)

        with self.assertRaises(ValueError):
            c.update_policies("MRU", ReplacementPolicy.LRU)
        with self.assertRaises(ValueError):
            PolicyComparison("MRU", ReplacementPolicy.LRU)

    def test_empty_sequence(self):
        c = self.comparison
        c.set_custom_sequence([])
        self.assertEqual(c.max_step, -1)
        self.assertFalse(c.step_forward())
        self.assertEqual(c.get_comparison_summary()["final_stats"]["cache1"]["total_accesses"], 0)


if __name__ == '__main__':
    unittest.main()
