import os
import random
import sys
import unittest

# Modules live at the repository root, one level up from tests/
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from cache_engine import (
    CacheGeometry,
    ClockCache,
    FIFOCache,
    LRUCache,
    MissType,
    OptimalCache,
    RandomCache,
    ReplacementPolicy,
    SetAssociativeCache,
    TwoQueueCache,
    make_cache,
)


def random_sequence(seed, length=60, alphabet="ABCDEFG"):
    rng = random.Random(seed)
    return [rng.choice(alphabet) for _ in range(length)]


class TestCommonContract(unittest.TestCase):

    def build(self, policy, capacity, sequence):
        return make_cache(policy, capacity, sequence=sequence, rng=random.Random(7))

    def test_capacity_invariant_for_every_policy(self):
        """No policy ever holds more keys than its capacity."""
        for policy in ReplacementPolicy.ALL:
            for seed in range(5):
                sequence = random_sequence(seed)
                cache = self.build(policy, 3, sequence)
                with self.subTest(policy=policy, seed=seed):
                    for key in sequence:
                        cache.check_cache(key)
                        self.assertLessEqual(cache.occupancy(), 3)
                        resident = [v for v in cache.get_values() if v is not None]
                        self.assertEqual(len(resident), len(set(resident)), "duplicate resident key")

    def test_hit_miss_accounting(self):
        for policy in ReplacementPolicy.ALL:
            sequence = random_sequence(11)
            cache = self.build(policy, 4, sequence)
            for key in sequence:
                cache.check_cache(key)
            stats = cache.get_stats()
            with self.subTest(policy=policy):
                self.assertEqual(stats["hits"] + stats["misses"], stats["total_accesses"])
                self.assertEqual(stats["cold_misses"] + stats["capacity_misses"], stats["misses"])
                self.assertEqual(stats["total_accesses"], len(sequence))
                self.assertAlmostEqual(stats["hit_rate"] + stats["miss_rate"], 1.0)

    def test_first_access_is_always_cold(self):
        for policy in ReplacementPolicy.ALL:
            sequence = random_sequence(3)
            cache = self.build(policy, 2, sequence)
            seen = set()
            with self.subTest(policy=policy):
                for key in sequence:
                    result = cache.check_cache(key)
                    if key not in seen:
                        self.assertFalse(result.hit)
                        self.assertEqual(result.miss_type, MissType.COLD)
                    elif not result.hit:
                        self.assertEqual(result.miss_type, MissType.CAPACITY)
                    seen.add(key)
                self.assertEqual(cache.get_stats()["unique_values_seen"], len(seen))

    def test_reset_replays_identically(self):
        """reset() followed by the same accesses gives the same log and statistics."""
        for policy in ReplacementPolicy.ALL:
            sequence = random_sequence(21, length=30)
            cache = self.build(policy, 3, sequence)
            first = [cache.check_cache(key) for key in sequence]
            log, stats = list(cache.event_log), cache.get_stats()

            cache.reset()
            self.assertEqual(cache.get_stats()["total_accesses"], 0)
            self.assertEqual(cache.occupancy(), 0)
            self.assertFalse(cache.has_seen_before(sequence[0]))

            second = [cache.check_cache(key) for key in sequence]
            with self.subTest(policy=policy):
                self.assertEqual(first, second)
                self.assertEqual(cache.event_log, log)
                self.assertEqual(cache.get_stats(), stats)

    def test_invalid_capacity_is_rejected(self):
        for capacity in (0, -1, True, 2.5):
            with self.subTest(capacity=capacity):
                with self.assertRaises(ValueError):
                    LRUCache(capacity)

    def test_none_key_is_rejected(self):
        cache = ClockCache(2)
        with self.assertRaises(ValueError):
            cache.check_cache(None)
        self.assertEqual(cache.get_stats()["total_accesses"], 0)

    def test_unknown_policy(self):
        with self.assertRaises(ValueError):
            make_cache("MRU", 2)

    def test_next_eviction_is_none_while_slots_are_free(self):
        cache = LRUCache(2)
        cache.check_cache("A")
        self.assertIsNone(cache.get_next_eviction_value())
        self.assertFalse(cache.is_full())


class TestLRUCache(unittest.TestCase):

    def test_evicts_least_recently_used(self):
        """Capacity 3, [A,B,C,A,D]: D replaces B, not A or C."""
        cache = LRUCache(3)
        for key in "ABCA":
            cache.check_cache(key)
        self.assertEqual(cache.get_next_eviction_value(), "B")
        result = cache.check_cache("D")
        self.assertEqual(result.evicted_key, "B")
        self.assertEqual(result.slot_index, 1)
        self.assertEqual(cache.get_values(), ["A", "D", "C"])

    def test_two_slot_scenario(self):
        """Capacity 2, [X,Y,X,Z]: Z is never seen before, so its miss is cold."""
        cache = LRUCache(2)
        results = [cache.check_cache(key) for key in ["X", "Y", "X", "Z"]]
        self.assertEqual([r.hit for r in results], [False, False, True, False])
        self.assertEqual([r.miss_type for r in results],
                         [MissType.COLD, MissType.COLD, None, MissType.COLD])
        self.assertEqual(results[3].evicted_key, "Y")
        self.assertEqual(set(cache.get_values()), {"X", "Z"})

    def test_reloading_evicted_key_is_capacity_miss(self):
        cache = LRUCache(2)
        for key in ["X", "Y", "Z"]:
            cache.check_cache(key)
        result = cache.check_cache("X")
        self.assertEqual(result.miss_type, MissType.CAPACITY)
        self.assertEqual(result.evicted_key, "Y")

    def test_display_info_is_ordered_lru_to_mru(self):
        cache = LRUCache(4)
        for key in "ABCA":
            cache.check_cache(key)
        rows = cache.get_display_info()
        self.assertEqual([r["value"] for r in rows], ["B", "C", "A", "---"])
        self.assertTrue(rows[0]["is_lru"])
        self.assertTrue(rows[2]["is_mru"])
        self.assertEqual([r["value"] for r in cache.get_values_by_recency()], ["A", "C", "B"])

    def test_get_cache_state_returns_copies(self):
        cache = LRUCache(1)
        cache.check_cache("A")
        state = cache.get_cache_state()
        state[0].value = "Z"
        self.assertEqual(cache.get_values(), ["A"])


class TestClockCache(unittest.TestCase):

    def test_second_chance(self):
        """Capacity 3, [A,B,C], hit A, then D: A keeps its slot, B goes."""
        cache = ClockCache(3)
        for key in "ABC":
            cache.check_cache(key)
        self.assertEqual(cache.get_clock_hand(), 0)
        self.assertTrue(cache.check_cache("A").hit)

        result = cache.check_cache("D")
        self.assertEqual(result.evicted_key, "B")
        self.assertEqual(result.slot_index, 1)
        self.assertEqual(result.details["second_chances_given"], 1)
        self.assertEqual(cache.get_values(), ["A", "D", "C"])
        self.assertEqual(cache.get_clock_hand(), 2)
        self.assertEqual(cache.get_reference_bits(), [False, False, False])

    def test_full_revolution_terminates(self):
        cache = ClockCache(2)
        for key in "ABAB":
            cache.check_cache(key)
        self.assertEqual(cache.get_reference_bits(), [True, True])

        result = cache.check_cache("C")
        self.assertEqual(result.evicted_key, "A")
        self.assertEqual(result.details["second_chances_given"], 2)
        self.assertEqual(cache.get_clock_hand(), 1)

    def test_preview_does_not_move_the_hand(self):
        cache = ClockCache(2)
        for key in "ABA":
            cache.check_cache(key)
        hand, bits = cache.get_clock_hand(), cache.get_reference_bits()

        self.assertEqual(cache.get_next_eviction_value(), "B")
        self.assertEqual(cache.get_clock_hand(), hand)
        self.assertEqual(cache.get_reference_bits(), bits)
        self.assertEqual(cache.check_cache("C").evicted_key, "B")

    def test_reference_on_insert_variant(self):
        cache = ClockCache(2, reference_on_insert=True)
        for key in "AB":
            cache.check_cache(key)
        self.assertEqual(cache.get_reference_bits(), [True, True])
        self.assertEqual(cache.check_cache("C").evicted_key, "A")

    def test_factory_builds_both_variants(self):
        self.assertFalse(make_cache(ReplacementPolicy.CLOCK, 2).reference_on_insert)
        cache = make_cache(ReplacementPolicy.CLOCK, 2, reference_on_insert=True)
        self.assertIsInstance(cache, ClockCache)
        cache.check_cache("A")
        self.assertEqual(cache.get_reference_bits(), [True, False])

    def test_visualization(self):
        cache = ClockCache(2)
        cache.check_cache("A")
        self.assertEqual(cache.get_clock_visualization(), "[A:0] [---:0] <")
        self.assertEqual(cache.get_stats()["current_clock_hand"], 1)


class TestOtherPolicies(unittest.TestCase):

    def test_fifo_ignores_hits(self):
        cache = FIFOCache(2)
        for key in "ABA":
            cache.check_cache(key)
        self.assertEqual(cache.check_cache("C").evicted_key, "A")
        self.assertTrue(cache.check_cache("B").hit)

    def test_random_preview_matches_eviction(self):
        cache = RandomCache(3, seed=5)
        for key in "ABC":
            cache.check_cache(key)
        for key in "DEFGH":
            expected = cache.get_next_eviction_value()
            result = cache.check_cache(key)
            self.assertEqual(result.evicted_key, expected)
            self.assertIn("random_slot_selected", result.details)

    def test_random_is_reproducible_with_a_seed(self):
        sequence = random_sequence(9)
        first, second = RandomCache(3, seed=42), RandomCache(3, rng=random.Random(42))
        self.assertEqual([first.check_cache(k) for k in sequence],
                         [second.check_cache(k) for k in sequence])

    def test_optimal_evicts_furthest_next_use(self):
        sequence = list("ABCDAB")
        cache = OptimalCache(3, sequence)
        results = [cache.check_cache(key) for key in sequence]
        self.assertEqual(results[3].evicted_key, "C")
        self.assertEqual(results[3].details["next_access_distance"], float("inf"))
        self.assertTrue(results[4].hit and results[5].hit)
        self.assertEqual(cache.get_stats()["remaining_accesses"], 0)

    def test_optimal_rejects_out_of_sequence_access(self):
        cache = OptimalCache(2, ["A", "B"])
        with self.assertRaises(ValueError):
            cache.check_cache("B")
        self.assertEqual(cache.get_stats()["total_accesses"], 0)
        self.assertEqual(cache.current_position, 0)

    def test_two_queue_promotion_and_eviction(self):
        cache = TwoQueueCache(3, a1_threshold=1)
        for key in "ABA":
            cache.check_cache(key)
        self.assertEqual(cache.a1_queue, ["B"])
        self.assertEqual(cache.am_queue, ["A"])

        cache.check_cache("C")
        result = cache.check_cache("D")
        self.assertEqual(result.evicted_key, "B")
        self.assertEqual(result.details["evicted_from_queue"], "A1")

        result = cache.check_cache("E")
        self.assertEqual(result.evicted_key, "C")

    def test_two_queue_evicts_from_am_when_a1_is_short(self):
        cache = TwoQueueCache(2, a1_threshold=1)
        for key in "ABAC":
            cache.check_cache(key)
        self.assertEqual(cache.am_queue, [])
        self.assertEqual(cache.a1_queue, ["B", "C"])

    def test_two_queue_falls_back_to_a1_when_am_is_empty(self):
        cache = TwoQueueCache(2, a1_threshold=5)
        for key in "ABC":
            cache.check_cache(key)
        self.assertEqual(cache.a1_queue, ["B", "C"])
        self.assertEqual(cache.occupancy(), 2)


class TestSetAssociativeCache(unittest.TestCase):

    def setUp(self):
        """32-byte, 2-way cache with 4-byte blocks: 4 sets."""
        self.geometry = CacheGeometry(ways=2, cache_size_bytes=32)

    def test_geometry(self):
        g = self.geometry
        self.assertEqual(g.num_sets, 4)
        self.assertEqual((g.offset_bits, g.set_bits, g.tag_bits), (2, 2, 28))
        self.assertEqual(g.split_address(0x24), (2, 1, 0))
        self.assertEqual(g.label, "2-Way Set Associative")
        self.assertEqual(CacheGeometry(ways=1, cache_size_bytes=32).label, "Direct-Mapped")

        full = CacheGeometry(ways=8, cache_size_bytes=32)
        self.assertEqual(full.label, "Fully Associative")
        self.assertEqual(full.set_bits, 0)

    def test_invalid_geometry(self):
        for kwargs in ({"ways": 3, "cache_size_bytes": 32},
                       {"ways": 2, "cache_size_bytes": 24},
                       {"ways": 0, "cache_size_bytes": 32},
                       {"ways": 2, "cache_size_bytes": 32, "word_size": 3}):
            with self.subTest(**kwargs):
                with self.assertRaises(ValueError):
                    CacheGeometry(**kwargs)

    def test_conflicts_stay_within_a_set(self):
        cache = SetAssociativeCache(self.geometry, ReplacementPolicy.LRU)
        for address in (0x0, 0x10):
            cache.check_cache(address)
        self.assertEqual(cache.get_next_eviction_value(0x20), 0)

        result = cache.check_cache(0x20)
        self.assertEqual(result.evicted_key, 0)
        self.assertEqual(result.details["set_index"], 0)
        self.assertEqual(result.details["evicted_block"], 0x0)

        self.assertEqual(cache.check_cache(0x4).miss_type, MissType.COLD)
        self.assertTrue(cache.check_cache(0x11).hit)

        stats = cache.get_stats()
        self.assertEqual(stats["total_accesses"], 5)
        self.assertEqual(stats["hits"], 1)
        self.assertEqual(stats["capacity"], 8)
        self.assertEqual(stats["occupancy"], 3)

    def test_rejects_optimal(self):
        with self.assertRaises(ValueError):
            SetAssociativeCache(self.geometry, ReplacementPolicy.OPTIMAL)

    def test_reset(self):
        cache = SetAssociativeCache(self.geometry, ReplacementPolicy.CLOCK)
        cache.check_cache(0x8)
        cache.reset()
        self.assertEqual(cache.get_stats()["total_accesses"], 0)
        self.assertEqual(cache.event_log, [])
        self.assertTrue(all(row["is_empty"] for row in cache.get_display_info()))


if __name__ == '__main__':
    unittest.main()
