"""
Side-by-side replay of one access sequence through two replacement policies.

The whole sequence is played up front and every step is recorded, so the
UI can move forwards, backwards or jump to any step without re-simulating.
"""

import random
from dataclasses import dataclass
from typing import Any, Dict, Hashable, List, Optional, Sequence

from cache_engine import BaseCache, CacheResult, ReplacementPolicy, make_cache
from config import Config
from utils import generate_access_sequence


@dataclass
class ComparisonStep:
    step_index: int
    access_value: Hashable
    cache1_result: CacheResult
    cache2_result: CacheResult
    cache1_values: List[Optional[Hashable]]
    cache2_values: List[Optional[Hashable]]
    cache1_display: List[Dict[str, Any]]
    cache2_display: List[Dict[str, Any]]
    cache1_stats: Dict[str, Any]
    cache2_stats: Dict[str, Any]


class PolicyComparison:
    """
    Compare two policies over the same access sequence.

    Args:
        policy1 (str): First policy name (see ReplacementPolicy)
        policy2 (str): Second policy name
        capacity (int): Slots per cache
        sequence (Optional[Sequence]): Custom access sequence; a random one
            is drawn from `rng` when omitted or empty
        rng (Optional[random.Random]): Random source for sequences and the
            Random policy
        sequence_length (int): Length of generated sequences

    Attributes:
        current_step (int): -1 before the first access, else index into history
    """

    def __init__(self, policy1: str, policy2: str, capacity: int = Config.cache_size,
                 sequence: Optional[Sequence[Hashable]] = None,
                 rng: Optional[random.Random] = None,
                 sequence_length: int = Config.sequence_length):
        for policy in (policy1, policy2):
            if policy not in ReplacementPolicy.ALL:
                raise ValueError(f"Unknown cache policy: {policy}")
        self.policy1 = policy1
        self.policy2 = policy2
        self.capacity = capacity
        self.rng = rng if rng is not None else random.Random(Config.random_seed)

        if sequence:
            self.access_sequence = list(sequence)
        else:
            self.access_sequence = generate_access_sequence(
                sequence_length, Config.possible_values, self.rng)

        self.current_step = -1
        self.history: List[ComparisonStep] = []
        self._build_history()

    def _make(self, policy: str) -> BaseCache:
        return make_cache(policy, self.capacity, sequence=self.access_sequence, rng=self.rng)

    def _build_history(self):
        # Fresh caches every time: Optimal depends on the sequence itself
        self.cache1 = self._make(self.policy1)
        self.cache2 = self._make(self.policy2)
        self.history = []

        for i, value in enumerate(self.access_sequence):
            result1 = self.cache1.check_cache(value)
            result2 = self.cache2.check_cache(value)
            self.history.append(ComparisonStep(
                step_index=i,
                access_value=value,
                cache1_result=result1,
                cache2_result=result2,
                cache1_values=self.cache1.get_values(),
                cache2_values=self.cache2.get_values(),
                cache1_display=self.cache1.get_display_info(),
                cache2_display=self.cache2.get_display_info(),
                cache1_stats=self.cache1.get_stats(),
                cache2_stats=self.cache2.get_stats(),
            ))

    @property
    def max_step(self) -> int:
        return len(self.access_sequence) - 1

    # =========================================================================
    # NAVIGATION
    # =========================================================================

    def step_forward(self) -> bool:
        if self.current_step < self.max_step:
            self.current_step += 1
            return True
        return False

    def step_backward(self) -> bool:
        if self.current_step > -1:
            self.current_step -= 1
            return True
        return False

    def jump_to_step(self, step: int) -> bool:
        if -1 <= step <= self.max_step:
            self.current_step = step
            return True
        return False

    def reset(self):
        self.current_step = -1

    def get_current_access_value(self) -> Optional[Hashable]:
        return self.access_sequence[self.current_step] if self.current_step >= 0 else None

    def get_current_step_data(self) -> Optional[ComparisonStep]:
        return self.history[self.current_step] if self.current_step >= 0 else None

    def _empty_side(self, policy: str) -> Dict[str, Any]:
        return {
            "name": policy,
            "result": None,
            "values": [None] * self.capacity,
            "display": [],
            "stats": make_cache(policy, self.capacity, sequence=self.access_sequence,
                                rng=random.Random(0)).get_stats(),
        }

    def get_current_comparison(self) -> Dict[str, Any]:
        """Both sides at the current step; empty caches before the first access."""
        if self.current_step < 0:
            return {
                "step": -1,
                "access_value": None,
                "cache1": self._empty_side(self.policy1),
                "cache2": self._empty_side(self.policy2),
            }

        data = self.history[self.current_step]
        return {
            "step": self.current_step,
            "access_value": data.access_value,
            "cache1": {
                "name": self.policy1,
                "result": data.cache1_result,
                "values": data.cache1_values,
                "display": data.cache1_display,
                "stats": data.cache1_stats,
            },
            "cache2": {
                "name": self.policy2,
                "result": data.cache2_result,
                "values": data.cache2_values,
                "display": data.cache2_display,
                "stats": data.cache2_stats,
            },
        }

    # =========================================================================
    # RECONFIGURATION
    # =========================================================================

    def generate_new_sequence(self, length: int = Config.sequence_length):
        self.access_sequence = generate_access_sequence(length, Config.possible_values, self.rng)
        self.current_step = -1
        self._build_history()

    def set_custom_sequence(self, sequence: Sequence[Hashable]):
        self.access_sequence = list(sequence)
        self.current_step = -1
        self._build_history()

    def update_policies(self, policy1: str, policy2: str):
        for policy in (policy1, policy2):
            if policy not in ReplacementPolicy.ALL:
                raise ValueError(f"Unknown cache policy: {policy}")
        self.policy1 = policy1
        self.policy2 = policy2
        self._build_history()

    def get_comparison_summary(self) -> Dict[str, Any]:
        final = self.history[-1] if self.history else None
        return {
            "policy1": self.policy1,
            "policy2": self.policy2,
            "sequence_length": len(self.access_sequence),
            "final_stats": {
                "cache1": final.cache1_stats if final else self._empty_side(self.policy1)["stats"],
                "cache2": final.cache2_stats if final else self._empty_side(self.policy2)["stats"],
            },
        }
