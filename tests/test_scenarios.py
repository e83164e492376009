import os
import random
import sys
import unittest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from scenarios import (
    ALL_SCENARIOS,
    CV_PRODUCER_CONSUMER,
    DEADLOCK,
    PRODUCER_CONSUMER,
    SIMPLE_MUTEX,
    ZEMAPHORES,
)
from sync_engine import SyncSimulator, ThreadAction


def run_until(sim, thread, tick):
    while sim.time_step(thread) < tick and not sim.is_blocked(thread):
        sim.step(thread)


def run_round_robin(sim, limit=10000):
    for _ in range(limit):
        if all(sim.is_finished(t) for t in sim.threads):
            return True
        for thread in sim.threads:
            sim.step(thread)
    return False


class TestScenarios(unittest.TestCase):

    def test_every_scenario_is_valid(self):
        self.assertEqual(len(ALL_SCENARIOS), 5)
        for title, scenario in ALL_SCENARIOS.items():
            with self.subTest(scenario=title):
                sim = SyncSimulator.from_scenario(scenario)
                self.assertEqual([t.id for t in sim.threads], [t.id for t in scenario.threads])
                self.assertEqual(sim.events, [])

    def test_mutual_exclusion_is_never_violated(self):
        t1, t2 = SIMPLE_MUTEX.threads
        for seed in range(3):
            sim = SyncSimulator.from_scenario(SIMPLE_MUTEX)
            rng = random.Random(seed)
            for _ in range(6000):
                sim.step(rng.choice([t1, t2]))
                self.assertEqual(sim.mutual_exclusion_violations, [])
            with self.subTest(seed=seed):
                self.assertTrue(sim.is_finished(t1) and sim.is_finished(t2))

    def test_contender_waits_outside_the_critical_section(self):
        sim = SyncSimulator.from_scenario(SIMPLE_MUTEX)
        t1, t2 = SIMPLE_MUTEX.threads
        run_until(sim, t1, 100)
        run_until(sim, t2, 150)
        self.assertTrue(sim.is_blocked(t2))
        self.assertEqual(sim.events[-1].action, ThreadAction.LOCK_WAIT)

        run_until(sim, t1, 250)
        sim.step(t2)
        self.assertEqual(sim.lock_state["Lock 1"].held_by, "Thread 2")
        self.assertEqual(sim.events[-1].action, ThreadAction.CRITICAL_SECTION_ENTER)

    def test_deadlock_can_be_reached(self):
        sim = SyncSimulator.from_scenario(DEADLOCK)
        t1, t2 = DEADLOCK.threads
        run_until(sim, t1, 100)
        run_until(sim, t2, 150)
        run_until(sim, t1, 250)
        run_until(sim, t2, 300)
        self.assertEqual(sim.deadlocked_threads(), ["Thread 1", "Thread 2"])
        self.assertEqual(sim.step(t1), [])
        self.assertEqual(sim.step(t2), [])

    def test_deadlock_is_avoided_when_one_thread_runs_first(self):
        sim = SyncSimulator.from_scenario(DEADLOCK)
        t1, t2 = DEADLOCK.threads
        run_until(sim, t1, 1000)
        run_until(sim, t2, 1000)
        self.assertTrue(sim.is_finished(t1) and sim.is_finished(t2))
        self.assertEqual(sim.deadlocked_threads(), [])

    def test_semaphore_producer_consumer(self):
        sim = SyncSimulator.from_scenario(PRODUCER_CONSUMER)
        self.assertTrue(run_round_robin(sim))
        self.assertEqual(sim.state, {"num_items": 0})
        self.assertEqual(sim.semaphore_state["mutex"].count, 1)
        self.assertEqual(sim.semaphore_state["empty"].count, 10)
        self.assertEqual(sim.semaphore_state["full"].count, 0)

        # The consumer cannot get past `full` before the first put
        consumer_first = [e for e in sim.events if e.thread_id == "Consumer"][0]
        self.assertEqual(consumer_first.action, ThreadAction.SEM_WAIT)

    def test_condition_variable_producer_consumer(self):
        sim = SyncSimulator.from_scenario(CV_PRODUCER_CONSUMER)
        self.assertTrue(run_round_robin(sim))
        self.assertEqual(sim.state, {"num_items": 0})
        self.assertIsNone(sim.lock_state["mutex"].held_by)

        consumer_actions = [e.action for e in sim.events if e.thread_id == "Consumer"]
        self.assertIn(ThreadAction.CV_WAIT, consumer_actions)
        gets = [e for e in sim.events
                if e.action == ThreadAction.CRITICAL_SECTION_EXIT and e.thread_id == "Consumer"]
        self.assertEqual(len(gets), 3)

    def test_zemaphore(self):
        sim = SyncSimulator.from_scenario(ZEMAPHORES)
        thread = ZEMAPHORES.threads[0]
        run_until(sim, thread, thread.time_steps)
        self.assertTrue(sim.is_finished(thread))
        self.assertEqual(sim.state, {"value": 0})
        cv_actions = [e.action for e in sim.events if e.resource_id == "cond"]
        self.assertEqual(cv_actions, [ThreadAction.CV_SIGNAL, ThreadAction.CV_SKIP])


if __name__ == '__main__':
    unittest.main()
