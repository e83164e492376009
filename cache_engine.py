"""
Cache Simulation Engine — Replacement Policies

Fixed-capacity caches that classify every access as a hit or a miss
(cold or capacity) and evict according to a replacement policy:
    - LRU:     Least Recently Used
    - Clock:   second-chance approximation of LRU
    - FIFO:    First-In-First-Out
    - Random:  victim drawn from an injected random source
    - Optimal: Belady's algorithm over a known access sequence
    - 2Q:      simplified two-queue cache (A1 FIFO + Am LRU)
plus an N-way set-associative cache assembled from per-set policy caches.

A cache never changes on its own: every state change happens inside
check_cache(), called by whatever drives the simulation (the UI or a test).
"""

# =============================================================================
# IMPORTS
# =============================================================================

import math
import random
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Hashable, List, Optional, Sequence, Tuple

from config import Config
from logger_config import configure_cache_logger

logger = configure_cache_logger()


# =============================================================================
# DATA STRUCTURES
# =============================================================================

class ReplacementPolicy:
    """
    Enumeration of available cache replacement policies.

    LRU:     evict the key that has not been used for the longest time
    Clock:   sweep a hand over reference bits, giving referenced keys a second chance
    FIFO:    evict the key that entered the cache earliest
    Random:  evict a slot chosen at random
    Optimal: evict the key whose next use lies furthest in the future
    2Q:      keep first-time keys in a FIFO queue and re-referenced keys in an LRU queue
    """
    LRU = "LRU"
    CLOCK = "Clock"
    FIFO = "FIFO"
    RANDOM = "Random"
    OPTIMAL = "Optimal"
    TWO_Q = "2Q"

    ALL = (LRU, CLOCK, FIFO, RANDOM, OPTIMAL, TWO_Q)


class MissType:
    COLD = "cold"          # key never accessed before
    CAPACITY = "capacity"  # key was resident once and got evicted


@dataclass
class CacheSlot:
    """
    One cache line placeholder.

    Attributes:
        index (int): Position of the slot inside the cache
        value (Optional[Hashable]): The resident key, None when empty
        is_empty (bool): True if no key occupies the slot
    """
    index: int
    value: Optional[Hashable] = None
    is_empty: bool = True


@dataclass
class LRUSlot(CacheSlot):
    last_access_time: int = 0  # value of the access-time counter at last use


@dataclass
class ClockSlot(CacheSlot):
    reference_bit: bool = False


@dataclass
class FIFOSlot(CacheSlot):
    insertion_order: int = 0


@dataclass
class TwoQueueSlot(CacheSlot):
    queue: Optional[str] = None  # "A1", "Am" or None for an empty slot


@dataclass
class CacheResult:
    """
    Outcome of a single check_cache() call.

    Attributes:
        hit (bool): True if the key was resident
        evicted_key (Optional[Hashable]): Key pushed out to make room, if any
        inserted_key (Optional[Hashable]): Key loaded on a miss
        miss_type (Optional[str]): MissType.COLD or MissType.CAPACITY on a miss
        slot_index (Optional[int]): Slot that was hit or filled
        details (Dict[str, Any]): Policy-specific metadata (clock hand, second
            chances given, randomly selected slot, next-use distance, ...)
    """
    hit: bool
    evicted_key: Optional[Hashable] = None
    inserted_key: Optional[Hashable] = None
    miss_type: Optional[str] = None
    slot_index: Optional[int] = None
    details: Dict[str, Any] = field(default_factory=dict)


# =============================================================================
# BASE CACHE - Hit/Miss Accounting
# =============================================================================

class BaseCache:
    """
    Bookkeeping shared by every policy: access counters, the set of keys
    ever seen (for cold/capacity classification) and the event log.

    Attributes:
        capacity (int): Number of keys the cache can hold
        access_counter (int): Total number of accesses since the last reset
        hits (int): Accesses that found the key resident
        misses (int): Accesses that had to load the key
        cold_misses (int): Misses on keys never seen before
        capacity_misses (int): Misses on keys that were evicted earlier
        ever_seen (set): Every key that has missed at least once
        event_log (List[str]): Human readable log of cache operations
    """

    policy = ""

    def __init__(self, capacity: int):
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise ValueError(f"Cache capacity must be a positive integer, got {capacity!r}")
        self.capacity = capacity
        self.reset()

    def reset(self):
        """
        Reset the cache to its post-construction state.

        Clears all slots, counters, the ever-seen set and the event log.
        """
        self.access_counter = 0
        self.hits = 0
        self.misses = 0
        self.cold_misses = 0
        self.capacity_misses = 0
        self.ever_seen: set = set()
        self.event_log: List[str] = []

    @staticmethod
    def _check_key(key: Hashable):
        # None marks an empty slot
        if key is None:
            raise ValueError("None cannot be used as a cache key")

    def _classify_miss(self, key: Hashable) -> str:
        self.misses += 1
        if key in self.ever_seen:
            self.capacity_misses += 1
            miss_type = MissType.CAPACITY
        else:
            self.cold_misses += 1
            miss_type = MissType.COLD
        self.ever_seen.add(key)
        self.event_log.append(f"Miss ({miss_type}): {key} not in cache")
        return miss_type

    def check_cache(self, key: Hashable) -> CacheResult:
        raise NotImplementedError

    def occupancy(self) -> int:
        raise NotImplementedError

    def get_next_eviction_value(self) -> Optional[Hashable]:
        raise NotImplementedError

    def get_values(self) -> List[Optional[Hashable]]:
        raise NotImplementedError

    def is_full(self) -> bool:
        return self.occupancy() >= self.capacity

    def has_seen_before(self, key: Hashable) -> bool:
        return key in self.ever_seen

    def get_stats(self) -> Dict[str, Any]:
        """
        Calculate and return cache statistics.

        Returns:
            Dict[str, Any]: Statistics including:
                - total_accesses, hits, misses, cold_misses, capacity_misses
                - hit_rate, miss_rate, cold_miss_rate, capacity_miss_rate
                - capacity, occupancy, unique_values_seen
        """
        total = self.access_counter

        def rate(count: int) -> float:
            return count / total if total > 0 else 0.0

        return {
            "policy": self.policy,
            "total_accesses": total,
            "hits": self.hits,
            "misses": self.misses,
            "cold_misses": self.cold_misses,
            "capacity_misses": self.capacity_misses,
            "hit_rate": rate(self.hits),
            "miss_rate": rate(self.misses),
            "cold_miss_rate": rate(self.cold_misses),
            "capacity_miss_rate": rate(self.capacity_misses),
            "capacity": self.capacity,
            "occupancy": self.occupancy(),
            "unique_values_seen": len(self.ever_seen),
        }


# =============================================================================
# SLOT CACHE - Fixed Slot Array With Pluggable Victim Selection
# =============================================================================

class SlotCache(BaseCache):
    """
    A cache that owns exactly `capacity` slots.

    Subclasses choose the slot type and implement:
        _peek_victim():  index of the slot that would be evicted (no side effects)
        _select_victim(details):  index to evict now (may update policy state)
        _on_hit(slot) / _on_insert(slot, details):  policy metadata updates
    """

    slot_type = CacheSlot

    def reset(self):
        super().reset()
        self.slots: List[CacheSlot] = [self.slot_type(i) for i in range(self.capacity)]

    def _find(self, key: Hashable) -> Optional[int]:
        for slot in self.slots:
            if not slot.is_empty and slot.value == key:
                return slot.index
        return None

    def _first_empty(self) -> Optional[int]:
        return next((slot.index for slot in self.slots if slot.is_empty), None)

    def _before_access(self, key: Hashable):
        pass

    def _on_hit(self, slot: CacheSlot):
        pass

    def _on_insert(self, slot: CacheSlot, details: Dict[str, Any]):
        pass

    def _hit_details(self, slot: CacheSlot) -> Dict[str, Any]:
        return {}

    def _peek_victim(self) -> int:
        raise NotImplementedError

    def _select_victim(self, details: Dict[str, Any]) -> int:
        return self._peek_victim()

    def check_cache(self, key: Hashable) -> CacheResult:
        """
        Access a key, handling hits, misses and eviction.

        1. Checks if the key is resident (hit) or not (miss)
        2. On a miss: classifies it as cold or capacity, then fills the
           first empty slot or evicts a victim chosen by the policy
        3. Updates statistics and the event log

        Args:
            key (Hashable): The key (address, page number or letter) to access

        Returns:
            CacheResult: hit/miss outcome plus eviction details
        """
        self._check_key(key)
        self._before_access(key)
        self.access_counter += 1

        # ----- HIT -----
        index = self._find(key)
        if index is not None:
            slot = self.slots[index]
            self.hits += 1
            self._on_hit(slot)
            self.event_log.append(f"Hit: {key} in slot {index}")
            return CacheResult(hit=True, slot_index=index, details=self._hit_details(slot))

        # ----- MISS -----
        miss_type = self._classify_miss(key)
        details: Dict[str, Any] = {}
        evicted = None

        index = self._first_empty()
        if index is None:
            index = self._select_victim(details)
            evicted = self.slots[index].value
            self.event_log.append(f"Evicting: {evicted} from slot {index}")
            logger.debug(f"[{self.policy}] evicting {evicted!r} from slot {index} for {key!r}")

        slot = self.slots[index]
        slot.value = key
        slot.is_empty = False
        self._on_insert(slot, details)

        suffix = " (replaced)" if evicted is not None else ""
        self.event_log.append(f"Loaded: {key} -> slot {index}{suffix}")

        return CacheResult(
            hit=False,
            evicted_key=evicted,
            inserted_key=key,
            miss_type=miss_type,
            slot_index=index,
            details=details,
        )

    # =========================================================================
    # READ-ONLY ACCESSORS
    # =========================================================================

    def occupancy(self) -> int:
        return sum(1 for slot in self.slots if not slot.is_empty)

    def get_cache_state(self) -> List[CacheSlot]:
        """Copies of the slots, safe to hand to a renderer."""
        return [replace(slot) for slot in self.slots]

    def get_values(self) -> List[Optional[Hashable]]:
        return [None if slot.is_empty else slot.value for slot in self.slots]

    def get_next_eviction_value(self) -> Optional[Hashable]:
        """
        Key the next miss would evict, or None while a free slot remains.

        Pure projection: never changes policy state.
        """
        if not self.is_full():
            return None
        return self.slots[self._peek_victim()].value

    def get_display_info(self) -> List[Dict[str, Any]]:
        return [
            {
                "index": slot.index,
                "value": "---" if slot.is_empty else str(slot.value),
                "is_empty": slot.is_empty,
            }
            for slot in self.slots
        ]


# =============================================================================
# POLICIES
# =============================================================================

class LRUCache(SlotCache):
    """
    Least Recently Used.

    Every access advances a monotonic access-time counter; hits and inserts
    stamp the slot with it. The victim is the occupied slot with the smallest
    stamp, ties going to the lowest slot index.
    """

    policy = ReplacementPolicy.LRU
    slot_type = LRUSlot

    def reset(self):
        super().reset()
        self.access_time_counter = 0

    def _before_access(self, key):
        self.access_time_counter += 1

    def _on_hit(self, slot: LRUSlot):
        slot.last_access_time = self.access_time_counter

    def _on_insert(self, slot: LRUSlot, details):
        slot.last_access_time = self.access_time_counter

    def _least_recent(self) -> Optional[LRUSlot]:
        occupied = [slot for slot in self.slots if not slot.is_empty]
        if not occupied:
            return None
        return min(occupied, key=lambda s: (s.last_access_time, s.index))

    def _peek_victim(self) -> int:
        return self._least_recent().index

    def get_display_info(self) -> List[Dict[str, Any]]:
        """
        Slots sorted from LRU to MRU; empty slots go last in index order.
        """
        occupied = [slot for slot in self.slots if not slot.is_empty]
        least = self._least_recent()
        most = max(occupied, key=lambda s: s.last_access_time) if len(occupied) > 1 else None

        rows = [
            {
                "index": slot.index,
                "value": "---" if slot.is_empty else str(slot.value),
                "last_access_time": None if slot.is_empty else slot.last_access_time,
                "is_lru": least is not None and slot is least,
                "is_mru": most is not None and slot is most,
                "is_empty": slot.is_empty,
            }
            for slot in self.slots
        ]
        return sorted(rows, key=lambda r: (r["is_empty"], r["last_access_time"] or 0, r["index"]))

    def get_values_by_recency(self) -> List[Dict[str, Any]]:
        """Occupied slots, most recently used first."""
        occupied = [slot for slot in self.slots if not slot.is_empty]
        occupied.sort(key=lambda s: s.last_access_time, reverse=True)
        return [
            {"value": s.value, "last_access_time": s.last_access_time, "position": s.index}
            for s in occupied
        ]


class ClockCache(SlotCache):
    """
    Clock (second chance).

    Hits set the slot's reference bit. To evict, the hand sweeps from its
    current position: a slot with its bit set loses the bit and is skipped,
    the first slot with a clear bit is the victim. The sweep is bounded by
    one revolution; once every bit has been cleared the slot under the hand
    is evicted. The hand is left one position past the slot just filled.

    Args:
        capacity (int): Number of slots
        reference_on_insert (bool): Set the reference bit of newly loaded keys.
            Off by default, so a key only earns its second chance by being hit.
    """

    policy = ReplacementPolicy.CLOCK
    slot_type = ClockSlot

    def __init__(self, capacity: int, reference_on_insert: bool = False):
        self.reference_on_insert = reference_on_insert
        super().__init__(capacity)

    def reset(self):
        super().reset()
        self.clock_hand = 0

    def _on_hit(self, slot: ClockSlot):
        slot.reference_bit = True

    def _hit_details(self, slot):
        return {"clock_hand": self.clock_hand}

    def _select_victim(self, details) -> int:
        second_chances = 0
        for _ in range(self.capacity):
            slot = self.slots[self.clock_hand]
            if not slot.reference_bit:
                break
            slot.reference_bit = False
            second_chances += 1
            self.clock_hand = (self.clock_hand + 1) % self.capacity
        details["second_chances_given"] = second_chances
        return self.clock_hand

    def _peek_victim(self) -> int:
        for offset in range(self.capacity):
            index = (self.clock_hand + offset) % self.capacity
            if not self.slots[index].reference_bit:
                return index
        return self.clock_hand

    def _on_insert(self, slot: ClockSlot, details):
        slot.reference_bit = self.reference_on_insert
        self.clock_hand = (slot.index + 1) % self.capacity
        details.setdefault("second_chances_given", 0)
        details["clock_hand_moved"] = True
        details["clock_hand"] = self.clock_hand

    def get_clock_hand(self) -> int:
        return self.clock_hand

    def get_reference_bits(self) -> List[bool]:
        return [slot.reference_bit for slot in self.slots]

    def get_clock_visualization(self) -> str:
        parts = []
        for slot in self.slots:
            value = "---" if slot.is_empty else str(slot.value)
            hand = " <" if slot.index == self.clock_hand else ""
            parts.append(f"[{value}:{int(slot.reference_bit)}]{hand}")
        return " ".join(parts)

    def get_stats(self):
        stats = super().get_stats()
        stats["current_clock_hand"] = self.clock_hand
        return stats

    def get_display_info(self):
        return [
            {
                "index": slot.index,
                "value": "---" if slot.is_empty else str(slot.value),
                "reference_bit": slot.reference_bit,
                "is_clock_hand": slot.index == self.clock_hand,
                "is_empty": slot.is_empty,
            }
            for slot in self.slots
        ]


class FIFOCache(SlotCache):
    """First-In-First-Out: hits do not change the eviction order."""

    policy = ReplacementPolicy.FIFO
    slot_type = FIFOSlot

    def reset(self):
        super().reset()
        self.insertion_counter = 0

    def _on_insert(self, slot: FIFOSlot, details):
        self.insertion_counter += 1
        slot.insertion_order = self.insertion_counter

    def _peek_victim(self) -> int:
        occupied = [slot for slot in self.slots if not slot.is_empty]
        return min(occupied, key=lambda s: (s.insertion_order, s.index)).index

    def get_display_info(self):
        occupied = [slot for slot in self.slots if not slot.is_empty]
        oldest = min(occupied, key=lambda s: s.insertion_order) if occupied else None
        newest = max(occupied, key=lambda s: s.insertion_order) if len(occupied) > 1 else None
        return [
            {
                "index": slot.index,
                "value": "---" if slot.is_empty else str(slot.value),
                "insertion_order": None if slot.is_empty else slot.insertion_order,
                "is_oldest": slot is oldest,
                "is_newest": slot is newest,
                "is_empty": slot.is_empty,
            }
            for slot in self.slots
        ]


class RandomCache(SlotCache):
    """
    Random replacement.

    The victim is drawn from `rng` (a random.Random). The generator state at
    construction is remembered, so reset() replays exactly the same choices.

    Args:
        capacity (int): Number of slots
        rng (Optional[random.Random]): Injected random source
        seed (Optional[int]): Seed for a private generator when no rng is given
    """

    policy = ReplacementPolicy.RANDOM
    slot_type = CacheSlot

    def __init__(self, capacity: int, rng: Optional[random.Random] = None,
                 seed: Optional[int] = None):
        self.rng = rng if rng is not None else random.Random(seed)
        self._initial_rng_state = self.rng.getstate()
        super().__init__(capacity)

    def reset(self):
        super().reset()
        self.rng.setstate(self._initial_rng_state)

    def _select_victim(self, details) -> int:
        # Only called when every slot is occupied
        index = self.rng.randrange(self.capacity)
        details["random_slot_selected"] = index
        return index

    def _peek_victim(self) -> int:
        preview = random.Random()
        preview.setstate(self.rng.getstate())
        return preview.randrange(self.capacity)

    def get_display_info(self):
        rows = super().get_display_info()
        for row in rows:
            row["can_be_evicted"] = not row["is_empty"]
        return rows


class OptimalCache(SlotCache):
    """
    Belady's optimal policy.

    Needs the whole future access sequence up front; evicts the resident key
    whose next use is furthest away (a key never used again is furthest of
    all). Ties go to the lowest slot index.

    Raises:
        ValueError: from check_cache() when the key differs from the next
            key of the sequence
    """

    policy = ReplacementPolicy.OPTIMAL
    slot_type = CacheSlot

    def __init__(self, capacity: int, access_sequence: Sequence[Hashable] = ()):
        self.access_sequence = list(access_sequence)
        super().__init__(capacity)

    def reset(self):
        super().reset()
        self.current_position = 0

    def _before_access(self, key):
        if self.current_position < len(self.access_sequence):
            expected = self.access_sequence[self.current_position]
            if expected != key:
                raise ValueError(
                    f"Expected access to {expected!r} but got {key!r} "
                    f"at position {self.current_position}"
                )
        self.current_position += 1

    def _next_use_distance(self, value: Hashable) -> float:
        for i in range(self.current_position, len(self.access_sequence)):
            if self.access_sequence[i] == value:
                return i - self.current_position + 1
        return math.inf

    def _furthest(self) -> Tuple[int, float]:
        best_index, best_distance = -1, -1.0
        for slot in self.slots:
            if slot.is_empty:
                continue
            distance = self._next_use_distance(slot.value)
            if distance > best_distance:
                best_index, best_distance = slot.index, distance
        return best_index, best_distance

    def _peek_victim(self) -> int:
        return self._furthest()[0]

    def _select_victim(self, details) -> int:
        index, distance = self._furthest()
        details["next_access_distance"] = distance
        return index

    def get_stats(self):
        stats = super().get_stats()
        stats["current_position"] = self.current_position
        stats["sequence_length"] = len(self.access_sequence)
        stats["remaining_accesses"] = max(0, len(self.access_sequence) - self.current_position)
        return stats

    def get_display_info(self):
        rows = super().get_display_info()
        for row, slot in zip(rows, self.slots):
            distance = math.inf if slot.is_empty else self._next_use_distance(slot.value)
            row["next_access"] = None if math.isinf(distance) else distance
        return rows


class TwoQueueCache(BaseCache):
    """
    Simplified 2Q.

    New keys enter A1, a FIFO queue. A hit in A1 moves the key to Am, an LRU
    queue (index 0 = LRU). When the cache is full the A1 head is evicted while
    A1 holds more than `a1_threshold` keys, otherwise the Am head; if Am is
    empty the A1 head goes so the cache never exceeds its capacity.
    """

    policy = ReplacementPolicy.TWO_Q

    def __init__(self, capacity: int, a1_threshold: int = Config.two_q_threshold):
        if a1_threshold < 0:
            raise ValueError(f"A1 threshold must be non-negative, got {a1_threshold!r}")
        self.a1_threshold = a1_threshold
        super().__init__(capacity)

    def reset(self):
        super().reset()
        self.a1_queue: List[Hashable] = []
        self.am_queue: List[Hashable] = []

    def occupancy(self) -> int:
        return len(self.a1_queue) + len(self.am_queue)

    def _victim_queue(self) -> Tuple[str, List[Hashable]]:
        if len(self.a1_queue) > self.a1_threshold or not self.am_queue:
            return "A1", self.a1_queue
        return "Am", self.am_queue

    def check_cache(self, key: Hashable) -> CacheResult:
        self._check_key(key)
        self.access_counter += 1

        if key in self.am_queue:
            self.hits += 1
            self.am_queue.remove(key)
            self.am_queue.append(key)
            self.event_log.append(f"Hit: {key} in Am")
            return CacheResult(hit=True, slot_index=self.occupancy() - 1, details={"queue": "Am"})

        if key in self.a1_queue:
            self.hits += 1
            self.a1_queue.remove(key)
            self.am_queue.append(key)
            self.event_log.append(f"Hit: {key} in A1, promoted to Am")
            return CacheResult(
                hit=True,
                slot_index=self.occupancy() - 1,
                details={"queue": "Am", "queue_transfer": True},
            )

        miss_type = self._classify_miss(key)
        details: Dict[str, Any] = {}
        evicted = None
        if self.is_full():
            name, queue = self._victim_queue()
            evicted = queue.pop(0)
            details["evicted_from_queue"] = name
            self.event_log.append(f"Evicting: {evicted} from {name}")
            logger.debug(f"[2Q] evicting {evicted!r} from {name} for {key!r}")

        self.a1_queue.append(key)
        self.event_log.append(f"Loaded: {key} -> A1")
        return CacheResult(
            hit=False,
            evicted_key=evicted,
            inserted_key=key,
            miss_type=miss_type,
            slot_index=len(self.a1_queue) - 1,
            details=details,
        )

    def get_next_eviction_value(self) -> Optional[Hashable]:
        if not self.is_full():
            return None
        return self._victim_queue()[1][0]

    def get_cache_state(self) -> List[TwoQueueSlot]:
        slots = [TwoQueueSlot(i, value, False, "A1") for i, value in enumerate(self.a1_queue)]
        offset = len(slots)
        slots += [TwoQueueSlot(offset + i, value, False, "Am") for i, value in enumerate(self.am_queue)]
        slots += [TwoQueueSlot(i) for i in range(len(slots), self.capacity)]
        return slots

    def get_values(self) -> List[Optional[Hashable]]:
        return [slot.value for slot in self.get_cache_state()]

    def get_stats(self):
        stats = super().get_stats()
        stats["a1_size"] = len(self.a1_queue)
        stats["am_size"] = len(self.am_queue)
        stats["a1_threshold"] = self.a1_threshold
        return stats

    def get_display_info(self):
        return [
            {
                "index": slot.index,
                "value": "---" if slot.is_empty else str(slot.value),
                "queue": slot.queue,
                "is_empty": slot.is_empty,
            }
            for slot in self.get_cache_state()
        ]


# =============================================================================
# FACTORY
# =============================================================================

def make_cache(policy: str, capacity: int, sequence: Optional[Sequence[Hashable]] = None,
               rng: Optional[random.Random] = None,
               reference_on_insert: bool = False) -> BaseCache:
    """
    Build a cache for a policy name.

    Args:
        policy (str): One of ReplacementPolicy.ALL
        capacity (int): Number of slots
        sequence (Optional[Sequence]): Future accesses, required by Optimal
        rng (Optional[random.Random]): Random source for the Random policy
        reference_on_insert (bool): Clock only, set the reference bit of newly
            loaded keys

    Raises:
        ValueError: If the policy is unknown or the capacity invalid
    """
    if policy == ReplacementPolicy.LRU:
        return LRUCache(capacity)
    if policy == ReplacementPolicy.CLOCK:
        return ClockCache(capacity, reference_on_insert=reference_on_insert)
    if policy == ReplacementPolicy.FIFO:
        return FIFOCache(capacity)
    if policy == ReplacementPolicy.RANDOM:
        return RandomCache(capacity, rng=rng)
    if policy == ReplacementPolicy.OPTIMAL:
        return OptimalCache(capacity, sequence or ())
    if policy == ReplacementPolicy.TWO_Q:
        return TwoQueueCache(capacity)
    raise ValueError(f"Unknown cache policy: {policy}")


# =============================================================================
# SET-ASSOCIATIVE CACHE
# =============================================================================

def _is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


@dataclass
class CacheGeometry:
    """
    Shape of an N-way set-associative cache.

    Direct-mapped is ways=1; fully associative is a single set.
    """
    ways: int
    cache_size_bytes: int
    block_size_words: int = 1
    word_size: int = 4
    address_bits: int = 32

    def __post_init__(self):
        for name in ("ways", "cache_size_bytes", "block_size_words", "word_size"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        if not _is_power_of_two(self.block_size_words) or not _is_power_of_two(self.word_size):
            raise ValueError("Block and word sizes must be powers of two")
        if self.cache_size_bytes % (self.ways * self.block_size_bytes) != 0:
            raise ValueError("Invalid cache geometry")
        if not _is_power_of_two(self.num_sets):
            raise ValueError(f"Number of sets must be a power of two, got {self.num_sets}")
        if self.offset_bits + self.set_bits > self.address_bits:
            raise ValueError("Address too narrow for this geometry")

    @property
    def block_size_bytes(self) -> int:
        return self.block_size_words * self.word_size

    @property
    def num_sets(self) -> int:
        return self.cache_size_bytes // (self.ways * self.block_size_bytes)

    @property
    def byte_offset_bits(self) -> int:
        return int(math.log2(self.word_size))

    @property
    def word_offset_bits(self) -> int:
        return int(math.log2(self.block_size_words))

    @property
    def offset_bits(self) -> int:
        return int(math.log2(self.block_size_bytes))

    @property
    def set_bits(self) -> int:
        return int(math.log2(self.num_sets)) if self.num_sets > 1 else 0

    @property
    def tag_bits(self) -> int:
        return self.address_bits - self.offset_bits - self.set_bits

    @property
    def label(self) -> str:
        if self.ways == 1:
            return "Direct-Mapped"
        if self.num_sets == 1:
            return "Fully Associative"
        return f"{self.ways}-Way Set Associative"

    def split_address(self, address: int) -> Tuple[int, int, int]:
        """Return (tag, set_index, offset) for a byte address."""
        off_mask = (1 << self.offset_bits) - 1
        set_mask = (1 << self.set_bits) - 1
        offset = address & off_mask
        set_index = (address >> self.offset_bits) & set_mask if self.set_bits > 0 else 0
        tag = address >> (self.offset_bits + self.set_bits)
        return tag, set_index, offset


class SetAssociativeCache:
    """
    N-way set-associative cache: one policy cache of `ways` slots per set.

    Keys are byte addresses; each access is routed to its set and looked up
    by tag, so a block is identified by (tag, set).
    """

    def __init__(self, geometry: CacheGeometry, policy: str = ReplacementPolicy.LRU,
                 rng: Optional[random.Random] = None):
        if policy == ReplacementPolicy.OPTIMAL:
            raise ValueError("Optimal replacement needs a per-set access sequence")
        if policy not in ReplacementPolicy.ALL:
            raise ValueError(f"Unknown cache policy: {policy}")
        self.geometry = geometry
        self.policy = policy
        self.rng = rng
        self.sets: List[BaseCache] = [
            make_cache(policy, geometry.ways, rng=rng) for _ in range(geometry.num_sets)
        ]
        self.event_log: List[str] = []

    def reset(self):
        for cache in self.sets:
            cache.reset()
        self.event_log = []

    def block_address(self, tag: int, set_index: int) -> int:
        return ((tag << self.geometry.set_bits) | set_index) << self.geometry.offset_bits

    def check_cache(self, address: int) -> CacheResult:
        """
        Access a byte address.

        Returns:
            CacheResult: the set's result with keys expressed as tags;
                details carry set_index, tag, offset and, on eviction,
                evicted_block (the evicted block's base address)
        """
        tag, set_index, offset = self.geometry.split_address(address)
        result = self.sets[set_index].check_cache(tag)
        result.details.update(set_index=set_index, tag=tag, offset=offset)
        if result.evicted_key is not None:
            result.details["evicted_block"] = self.block_address(result.evicted_key, set_index)
        outcome = "Hit" if result.hit else f"Miss ({result.miss_type})"
        self.event_log.append(f"{outcome}: address {address:#x} -> set {set_index}, tag {tag:#x}")
        return result

    def get_cache_state(self) -> List[List[CacheSlot]]:
        return [cache.get_cache_state() for cache in self.sets]

    def get_values(self) -> List[List[Optional[Hashable]]]:
        return [cache.get_values() for cache in self.sets]

    def get_next_eviction_value(self, address: int) -> Optional[Hashable]:
        """Tag the next miss in `address`'s set would evict, or None."""
        _, set_index, _ = self.geometry.split_address(address)
        return self.sets[set_index].get_next_eviction_value()

    def get_stats(self) -> Dict[str, Any]:
        summed = ("total_accesses", "hits", "misses", "cold_misses", "capacity_misses",
                  "occupancy", "unique_values_seen")
        totals = {name: 0 for name in summed}
        for cache in self.sets:
            stats = cache.get_stats()
            for name in summed:
                totals[name] += stats[name]

        total = totals["total_accesses"]
        for name, count in (("hit_rate", "hits"), ("miss_rate", "misses"),
                            ("cold_miss_rate", "cold_misses"),
                            ("capacity_miss_rate", "capacity_misses")):
            totals[name] = totals[count] / total if total > 0 else 0.0

        totals.update(
            policy=self.policy,
            capacity=self.geometry.num_sets * self.geometry.ways,
            num_sets=self.geometry.num_sets,
            ways=self.geometry.ways,
        )
        return totals

    def get_display_info(self) -> List[Dict[str, Any]]:
        rows = []
        for set_index, cache in enumerate(self.sets):
            for way, value in enumerate(cache.get_values()):
                rows.append({
                    "set": set_index,
                    "way": way,
                    "tag": "---" if value is None else f"{value:#x}",
                    "is_empty": value is None,
                })
        return rows
