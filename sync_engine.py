"""
Synchronization Event Simulator — Locks, Semaphores & Condition Variables

Simulates a handful of threads, each an offline-authored timeline of
lock / semaphore / condition-variable operations keyed by integer ticks.
The simulator owns all resource state and an append-only event log; a
driver (UI timer or test) moves one thread forward at a time with step().
Nothing happens between calls: there is no internal clock.

Two stepping styles are supported:
    - immediate: step() applies the transition and returns its events
    - two-phase: propose_transition() computes a PendingTransition without
      touching the simulator and commit() applies it later, so a UI can
      animate an event before its consequences land
"""

# =============================================================================
# IMPORTS
# =============================================================================

import copy
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from logger_config import configure_sync_logger

logger = configure_sync_logger()


# =============================================================================
# CONSTANTS & ERRORS
# =============================================================================

class ThreadAction:
    LOCK_ACQUIRE = "LOCK_ACQUIRE"
    LOCK_RELEASE = "LOCK_RELEASE"
    LOCK_WAIT = "LOCK_WAIT"
    CRITICAL_SECTION_ENTER = "CRITICAL_SECTION_ENTER"
    CRITICAL_SECTION_EXIT = "CRITICAL_SECTION_EXIT"
    SEM_WAIT = "SEM_WAIT"
    SEM_PASS = "SEM_PASS"
    SEM_POST = "SEM_POST"
    CV_WAIT = "CV_WAIT"
    CV_SIGNAL = "CV_SIGNAL"
    CV_SKIP = "CV_SKIP"


class ResourceKind:
    LOCK = "lock"
    SEMAPHORE = "semaphore"
    CONDITION_VARIABLE = "condition_variable"


class ConfigurationError(ValueError):
    """A scenario that cannot be simulated (undeclared or duplicate ids)."""


class StaleTransitionError(RuntimeError):
    """A PendingTransition was committed after the simulator had moved on."""


# =============================================================================
# SCENARIO CONFIGURATION - Immutable Input
# =============================================================================

@dataclass(frozen=True)
class Lock:
    id: str


@dataclass(frozen=True)
class Semaphore:
    id: str
    initial: int = 0


@dataclass(frozen=True)
class StateVariable:
    """A shared integer the threads' critical sections may update."""
    id: str
    initial: int = 0


@dataclass(frozen=True)
class ConditionVariable:
    """
    A condition variable bound to a shared state variable.

    Attributes:
        id (str): Resource id
        state_id (str): Shared state variable the predicate reads
        condition (Callable[[int], bool]): True while a waiter must keep waiting
    """
    id: str
    state_id: str
    condition: Callable[[int], bool]


@dataclass(frozen=True)
class StateAction:
    """Pure integer transform applied to a shared state variable on critical-section exit."""
    name: str
    state_id: str
    action: Callable[[int], int]


@dataclass(frozen=True)
class CriticalSection:
    id: str
    start_at: int
    end_at: int
    action: Optional[StateAction] = None


@dataclass(frozen=True)
class LockContext:
    id: str
    acquire_at: int
    release_at: int


@dataclass(frozen=True)
class SemaphoreContext:
    id: str
    posts: Sequence[int] = ()
    waits: Sequence[int] = ()


@dataclass(frozen=True)
class ConditionVariableContext:
    """
    How a thread uses a condition variable.

    Attributes:
        id (str): Condition variable id
        releases (str): Lock released while waiting and re-acquired on wake-up
        signals (Sequence[int]): Ticks at which the thread signals
        waits (Sequence[int]): Ticks at which the thread waits
        condition_str (str): Source-like rendering of the predicate, for display
    """
    id: str
    releases: str
    signals: Sequence[int] = ()
    waits: Sequence[int] = ()
    condition_str: str = ""


@dataclass(frozen=True)
class Thread:
    """
    A thread timeline. Read-only input; progress lives in ThreadState.

    Attributes:
        id (str): Thread id
        time_steps (int): Last tick of the timeline
        critical_sections, locks, semaphores, condition_variables:
            operations scheduled on the timeline
    """
    id: str
    time_steps: int
    critical_sections: Sequence[CriticalSection] = ()
    locks: Sequence[LockContext] = ()
    semaphores: Sequence[SemaphoreContext] = ()
    condition_variables: Sequence[ConditionVariableContext] = ()


@dataclass(frozen=True)
class Scenario:
    title: str
    description: str
    threads: Sequence[Thread]
    locks: Sequence[Lock] = ()
    semaphores: Sequence[Semaphore] = ()
    condition_variables: Sequence[ConditionVariable] = ()
    state: Sequence[StateVariable] = ()


# =============================================================================
# RUNTIME STATE
# =============================================================================

@dataclass
class ResourceState:
    """Shape shared by every resource: an id, its kind and a FIFO of blocked thread ids."""
    resource_id: str
    kind: str
    waiting: List[str] = field(default_factory=list)


@dataclass
class LockState(ResourceState):
    held_by: Optional[str] = None


@dataclass
class SemaphoreState(ResourceState):
    # Negative values count the waiters
    count: int = 0


@dataclass
class ConditionVariableState(ResourceState):
    state_id: str = ""
    # waiter id -> lock it gave up when it started waiting
    released_locks: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Operation:
    action: str
    resource_id: str
    lock_id: Optional[str] = None
    state_action: Optional[StateAction] = None


@dataclass
class ThreadState:
    time_step: int = 0
    # Operations of the current tick not yet completed (blocked or not reached)
    pending: List[Operation] = field(default_factory=list)


@dataclass(frozen=True)
class ThreadEvent:
    thread_id: str
    action: str
    time_step: int
    resource_id: str
    secondary_resource_id: Optional[str] = None
    secondary_action: Optional[str] = None


@dataclass(frozen=True)
class MutualExclusionViolation:
    critical_section_id: str
    thread_ids: Tuple[str, ...]


@dataclass
class SimulationState:
    resources: Dict[str, ResourceState]
    state: Dict[str, int]
    threads: Dict[str, ThreadState]
    inside: Dict[str, List[str]]
    events: List[ThreadEvent] = field(default_factory=list)


@dataclass
class PendingTransition:
    """
    A step computed but not yet applied.

    Attributes:
        thread_id (str): Thread the step belongs to
        time_step (int): The thread's tick once the step is applied
        events (List[ThreadEvent]): Events the step will append to the log
        version (int): Simulator version the proposal was computed against
    """
    thread_id: str
    time_step: int
    events: List[ThreadEvent]
    version: int
    result: SimulationState = field(repr=False)

    @property
    def event(self) -> Optional[ThreadEvent]:
        return self.events[0] if self.events else None


ThreadRef = Union[Thread, str]


# =============================================================================
# SIMULATOR
# =============================================================================

class SyncSimulator:
    """
    Discrete, externally stepped simulator of locks, semaphores and
    condition variables.

    A thread is blocked while its id sits in any resource's waiting list and
    does not advance its tick while blocked. Within a tick the operations run
    in a fixed order: locks, condition variables, semaphores, critical
    sections. An operation that blocks defers the rest of its tick until the
    thread is woken and stepped again.

    Releasing a lock never hands it to a waiter: the lock becomes free and the
    head of its waiting queue takes it the next time it is stepped. A thread
    arriving while others are queued joins the back of the queue.

    Args:
        threads: Thread timelines
        locks, semaphores, condition_variables: Declared resources
        initial_state: Shared integer variables
        deferred (bool): Park each step as a blocking_event until
            unblock_event() is called

    Raises:
        ConfigurationError: If a thread references an undeclared resource or
            ids are duplicated
    """

    def __init__(self, threads: Sequence[Thread], locks: Sequence[Lock] = (),
                 semaphores: Sequence[Semaphore] = (),
                 condition_variables: Sequence[ConditionVariable] = (),
                 initial_state: Sequence[StateVariable] = (),
                 deferred: bool = False):
        self.threads = list(threads)
        self.locks = list(locks)
        self.semaphores = list(semaphores)
        self.condition_variables = list(condition_variables)
        self.initial_state = list(initial_state)
        self.deferred = deferred

        self._validate()

        self._threads_by_id = {t.id: t for t in self.threads}
        self._conditions = {cv.id: cv.condition for cv in self.condition_variables}
        self._schedules = {t.id: self._build_schedule(t) for t in self.threads}
        self._handlers = {
            ThreadAction.LOCK_ACQUIRE: self._lock_acquire,
            ThreadAction.LOCK_RELEASE: self._lock_release,
            ThreadAction.CV_SIGNAL: self._cv_signal,
            ThreadAction.CV_WAIT: self._cv_wait,
            ThreadAction.SEM_POST: self._sem_post,
            ThreadAction.SEM_WAIT: self._sem_wait,
            ThreadAction.CRITICAL_SECTION_ENTER: self._critical_section_enter,
            ThreadAction.CRITICAL_SECTION_EXIT: self._critical_section_exit,
        }

        self._version = 0
        self.reset()

    @classmethod
    def from_scenario(cls, scenario: Scenario, deferred: bool = False) -> "SyncSimulator":
        return cls(
            scenario.threads,
            locks=scenario.locks,
            semaphores=scenario.semaphores,
            condition_variables=scenario.condition_variables,
            initial_state=scenario.state,
            deferred=deferred,
        )

    # =========================================================================
    # CONFIGURATION CHECKS
    # =========================================================================

    def _validate(self):
        kinds: Dict[str, str] = {}
        declared = (
            (ResourceKind.LOCK, self.locks),
            (ResourceKind.SEMAPHORE, self.semaphores),
            (ResourceKind.CONDITION_VARIABLE, self.condition_variables),
        )
        for kind, resources in declared:
            for resource in resources:
                if resource.id in kinds:
                    raise ConfigurationError(f"Duplicate resource id: {resource.id}")
                kinds[resource.id] = kind

        state_ids = set()
        for variable in self.initial_state:
            if variable.id in state_ids:
                raise ConfigurationError(f"Duplicate state id: {variable.id}")
            state_ids.add(variable.id)

        for cv in self.condition_variables:
            if cv.state_id not in state_ids:
                raise ConfigurationError(
                    f"Condition variable {cv.id} reads undeclared state {cv.state_id}")

        def expect(thread: Thread, resource_id: str, kind: str):
            if kinds.get(resource_id) != kind:
                raise ConfigurationError(
                    f"Invalid resource id: thread {thread.id} uses {kind} {resource_id!r}")

        thread_ids = set()
        for thread in self.threads:
            if thread.id in thread_ids:
                raise ConfigurationError(f"Duplicate thread id: {thread.id}")
            thread_ids.add(thread.id)
            if thread.time_steps < 0:
                raise ConfigurationError(f"Thread {thread.id} has negative time_steps")

            for ctx in thread.locks:
                expect(thread, ctx.id, ResourceKind.LOCK)
            for ctx in thread.semaphores:
                expect(thread, ctx.id, ResourceKind.SEMAPHORE)
            for ctx in thread.condition_variables:
                expect(thread, ctx.id, ResourceKind.CONDITION_VARIABLE)
                expect(thread, ctx.releases, ResourceKind.LOCK)
            for cs in thread.critical_sections:
                if cs.action is not None and cs.action.state_id not in state_ids:
                    raise ConfigurationError(
                        f"Critical section {cs.id} of {thread.id} updates "
                        f"undeclared state {cs.action.state_id}")

    @staticmethod
    def _build_schedule(thread: Thread) -> Dict[int, List[Operation]]:
        """Operations per tick, already in processing order."""
        schedule: Dict[int, List[Operation]] = {}

        def add(tick: int, operation: Operation):
            schedule.setdefault(tick, []).append(operation)

        # Insertion order below is the processing order within a tick
        for ctx in thread.locks:
            add(ctx.acquire_at, Operation(ThreadAction.LOCK_ACQUIRE, ctx.id))
        for ctx in thread.locks:
            add(ctx.release_at, Operation(ThreadAction.LOCK_RELEASE, ctx.id))
        for ctx in thread.condition_variables:
            for tick in ctx.signals:
                add(tick, Operation(ThreadAction.CV_SIGNAL, ctx.id, lock_id=ctx.releases))
        for ctx in thread.condition_variables:
            for tick in ctx.waits:
                add(tick, Operation(ThreadAction.CV_WAIT, ctx.id, lock_id=ctx.releases))
        for ctx in thread.semaphores:
            for tick in ctx.posts:
                add(tick, Operation(ThreadAction.SEM_POST, ctx.id))
        for ctx in thread.semaphores:
            for tick in ctx.waits:
                add(tick, Operation(ThreadAction.SEM_WAIT, ctx.id))
        for cs in thread.critical_sections:
            add(cs.start_at, Operation(ThreadAction.CRITICAL_SECTION_ENTER, cs.id))
        for cs in thread.critical_sections:
            add(cs.end_at, Operation(ThreadAction.CRITICAL_SECTION_EXIT, cs.id,
                                     state_action=cs.action))
        return schedule

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def _initial_world(self) -> SimulationState:
        resources: Dict[str, ResourceState] = {}
        for lock in self.locks:
            resources[lock.id] = LockState(lock.id, ResourceKind.LOCK)
        for sem in self.semaphores:
            resources[sem.id] = SemaphoreState(sem.id, ResourceKind.SEMAPHORE, count=sem.initial)
        for cv in self.condition_variables:
            resources[cv.id] = ConditionVariableState(
                cv.id, ResourceKind.CONDITION_VARIABLE, state_id=cv.state_id)
        return SimulationState(
            resources=resources,
            state={v.id: v.initial for v in self.initial_state},
            threads={t.id: ThreadState() for t in self.threads},
            inside={},
        )

    def reset(self):
        """
        Reset the simulation to its initial state.

        Clears resource state, shared state, the event log, every thread's
        tick and any parked transition. Outstanding proposals become stale.
        """
        self._world = self._initial_world()
        self._version += 1
        self.blocking_event: Optional[PendingTransition] = None
        self.running: Optional[Thread] = None

    def run_thread(self, thread: Optional[Thread] = None):
        """Mark the thread tick() should step; None stops auto-stepping."""
        self.running = thread

    def tick(self) -> List[ThreadEvent]:
        """Step the running thread, if any. Convenience for a timer loop."""
        if self.running is None:
            return []
        events = self.step(self.running)
        if self.is_finished(self.running):
            self.running = None
        return events

    # =========================================================================
    # STEPPING
    # =========================================================================

    def _thread(self, thread: ThreadRef) -> Thread:
        thread_id = thread if isinstance(thread, str) else thread.id
        if thread_id not in self._threads_by_id:
            raise KeyError(f"Unknown thread: {thread_id}")
        return self._threads_by_id[thread_id]

    def step(self, thread: ThreadRef) -> List[ThreadEvent]:
        """
        Advance a thread by one tick, if it is runnable.

        In deferred mode the step is parked as blocking_event instead of
        applied; further steps are ignored until unblock_event().

        Args:
            thread (Thread | str): The thread (or its id) to step

        Returns:
            List[ThreadEvent]: Events produced by the step (previewed ones in
                deferred mode)
        """
        thread = self._thread(thread)
        if self.deferred:
            if self.blocking_event is not None:
                logger.warning(f"Step of {thread.id} ignored: a transition is still pending")
                return []
            pending = self.propose_transition(thread)
            if not pending.events:
                return self.commit(pending)
            self.blocking_event = pending
            return list(pending.events)

        events = self._advance(self._world, thread)
        self._version += 1
        return events

    def propose_transition(self, thread: ThreadRef) -> PendingTransition:
        """Compute what step() would do, leaving the simulator untouched."""
        thread = self._thread(thread)
        world = copy.deepcopy(self._world)
        events = self._advance(world, thread)
        return PendingTransition(
            thread_id=thread.id,
            time_step=world.threads[thread.id].time_step,
            events=events,
            version=self._version,
            result=world,
        )

    def commit(self, pending: PendingTransition) -> List[ThreadEvent]:
        """
        Apply a proposed transition.

        Raises:
            StaleTransitionError: If the simulator changed since the proposal
        """
        if pending.version != self._version:
            raise StaleTransitionError(
                f"Transition for {pending.thread_id} was proposed against version "
                f"{pending.version}, simulator is at {self._version}")
        self._world = pending.result
        self._version += 1
        if self.blocking_event is pending:
            self.blocking_event = None
        return list(pending.events)

    def unblock_event(self) -> List[ThreadEvent]:
        """Commit the parked transition, if any, and return its events."""
        if self.blocking_event is None:
            return []
        pending = self.blocking_event
        self.blocking_event = None
        return self.commit(pending)

    def _advance(self, world: SimulationState, thread: Thread) -> List[ThreadEvent]:
        progress = world.threads[thread.id]
        if self._is_suspended(world, thread.id):
            return []

        if not progress.pending:
            if progress.time_step >= thread.time_steps:
                return []
            progress.time_step += 1
            progress.pending = list(self._schedules[thread.id].get(progress.time_step, ()))

        events: List[ThreadEvent] = []
        while progress.pending:
            operation = progress.pending[0]
            done = self._handlers[operation.action](
                world, thread.id, operation, progress.time_step, events)
            if not done:
                break
            progress.pending.pop(0)
            if self._is_suspended(world, thread.id):
                break

        world.events.extend(events)
        for event in events:
            logger.debug(f"t={event.time_step} {event.thread_id}: {event.action} {event.resource_id}")
        return events

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    @staticmethod
    def _emit(events: List[ThreadEvent], thread_id: str, action: str, time_step: int,
              resource_id: str, secondary_resource_id: Optional[str] = None,
              secondary_action: Optional[str] = None):
        events.append(ThreadEvent(thread_id, action, time_step, resource_id,
                                  secondary_resource_id, secondary_action))

    @staticmethod
    def _lock_available(lock: LockState, thread_id: str) -> bool:
        # Queued waiters go in FIFO order; a thread not yet queued may take a free lock
        return lock.held_by is None and (thread_id not in lock.waiting or lock.waiting[0] == thread_id)

    def _lock_acquire(self, world, thread_id, op, tick, events) -> bool:
        lock = world.resources[op.resource_id]
        if lock.held_by == thread_id:
            return True
        if self._lock_available(lock, thread_id):
            lock.held_by = thread_id
            if thread_id in lock.waiting:
                lock.waiting.remove(thread_id)
            self._emit(events, thread_id, ThreadAction.LOCK_ACQUIRE, tick, lock.resource_id)
            return True
        if thread_id not in lock.waiting:
            lock.waiting.append(thread_id)
            self._emit(events, thread_id, ThreadAction.LOCK_WAIT, tick, lock.resource_id)
        return False

    def _lock_release(self, world, thread_id, op, tick, events) -> bool:
        lock = world.resources[op.resource_id]
        if lock.held_by == thread_id:
            lock.held_by = None
            self._emit(events, thread_id, ThreadAction.LOCK_RELEASE, tick, lock.resource_id)
        return True

    def _cv_signal(self, world, thread_id, op, tick, events) -> bool:
        cv = world.resources[op.resource_id]
        self._emit(events, thread_id, ThreadAction.CV_SIGNAL, tick, cv.resource_id)
        if cv.waiting:
            woken = cv.waiting.pop(0)
            lock_id = cv.released_locks.pop(woken, None)
            if lock_id is not None:
                # Woken waiter must win its lock back before it continues
                lock = world.resources[lock_id]
                if woken not in lock.waiting:
                    lock.waiting.append(woken)
                self._emit(events, woken, ThreadAction.LOCK_WAIT,
                           world.threads[woken].time_step, lock_id)
        return True

    def _cv_wait(self, world, thread_id, op, tick, events) -> bool:
        cv = world.resources[op.resource_id]
        lock = world.resources[op.lock_id]
        if thread_id in cv.waiting:
            return False
        if thread_id in lock.waiting and not self._lock_available(lock, thread_id):
            return False

        if self._conditions[cv.resource_id](world.state[cv.state_id]):
            if thread_id in lock.waiting:
                lock.waiting.remove(thread_id)
            released = lock.held_by == thread_id
            if released:
                lock.held_by = None
            cv.waiting.append(thread_id)
            cv.released_locks[thread_id] = lock.resource_id
            self._emit(events, thread_id, ThreadAction.CV_WAIT, tick, cv.resource_id,
                       secondary_resource_id=lock.resource_id if released else None,
                       secondary_action=ThreadAction.LOCK_RELEASE if released else None)
            return False

        self._emit(events, thread_id, ThreadAction.CV_SKIP, tick, cv.resource_id)
        if thread_id in lock.waiting:
            lock.waiting.remove(thread_id)
            lock.held_by = thread_id
            self._emit(events, thread_id, ThreadAction.LOCK_ACQUIRE, tick, lock.resource_id)
        return True

    def _sem_post(self, world, thread_id, op, tick, events) -> bool:
        sem = world.resources[op.resource_id]
        sem.count += 1
        self._emit(events, thread_id, ThreadAction.SEM_POST, tick, sem.resource_id)
        if sem.waiting:
            woken = sem.waiting.pop(0)
            logger.debug(f"{thread_id} posted {sem.resource_id}, waking {woken}")
        return True

    def _sem_wait(self, world, thread_id, op, tick, events) -> bool:
        sem = world.resources[op.resource_id]
        if sem.count <= 0:
            sem.count -= 1
            if thread_id not in sem.waiting:
                sem.waiting.append(thread_id)
            self._emit(events, thread_id, ThreadAction.SEM_WAIT, tick, sem.resource_id)
        else:
            sem.count -= 1
            self._emit(events, thread_id, ThreadAction.SEM_PASS, tick, sem.resource_id)
        return True

    def _critical_section_enter(self, world, thread_id, op, tick, events) -> bool:
        occupants = world.inside.setdefault(op.resource_id, [])
        if thread_id not in occupants:
            occupants.append(thread_id)
        self._emit(events, thread_id, ThreadAction.CRITICAL_SECTION_ENTER, tick, op.resource_id)
        return True

    def _critical_section_exit(self, world, thread_id, op, tick, events) -> bool:
        if op.state_action is not None:
            state_id = op.state_action.state_id
            world.state[state_id] = op.state_action.action(world.state[state_id])
        occupants = world.inside.get(op.resource_id, [])
        if thread_id in occupants:
            occupants.remove(thread_id)
        self._emit(events, thread_id, ThreadAction.CRITICAL_SECTION_EXIT, tick, op.resource_id)
        return True

    # =========================================================================
    # QUERIES
    # =========================================================================

    @staticmethod
    def _is_suspended(world: SimulationState, thread_id: str) -> bool:
        # Waiting on a semaphore or condition variable; only another thread can wake it
        return any(
            thread_id in r.waiting
            for r in world.resources.values()
            if r.kind != ResourceKind.LOCK
        )

    def is_blocked(self, thread: ThreadRef) -> bool:
        thread_id = self._thread(thread).id
        return any(thread_id in r.waiting for r in self._world.resources.values())

    def can_run(self, thread: ThreadRef) -> bool:
        """True if stepping the thread can make progress right now."""
        thread_id = self._thread(thread).id
        if self._is_suspended(self._world, thread_id):
            return False
        return all(
            self._lock_available(r, thread_id)
            for r in self._world.resources.values()
            if r.kind == ResourceKind.LOCK and thread_id in r.waiting
        )

    def is_finished(self, thread: ThreadRef) -> bool:
        thread = self._thread(thread)
        progress = self._world.threads[thread.id]
        return progress.time_step >= thread.time_steps and not progress.pending

    def time_step(self, thread: ThreadRef) -> int:
        return self._world.threads[self._thread(thread).id].time_step

    @property
    def events(self) -> List[ThreadEvent]:
        return list(self._world.events)

    @property
    def state(self) -> Dict[str, int]:
        return dict(self._world.state)

    @property
    def thread_state(self) -> Dict[str, ThreadState]:
        return copy.deepcopy(self._world.threads)

    def _resources_of(self, kind: str) -> Dict[str, ResourceState]:
        return {
            rid: copy.deepcopy(r)
            for rid, r in self._world.resources.items()
            if r.kind == kind
        }

    @property
    def lock_state(self) -> Dict[str, LockState]:
        return self._resources_of(ResourceKind.LOCK)

    @property
    def semaphore_state(self) -> Dict[str, SemaphoreState]:
        return self._resources_of(ResourceKind.SEMAPHORE)

    @property
    def condition_variable_state(self) -> Dict[str, ConditionVariableState]:
        return self._resources_of(ResourceKind.CONDITION_VARIABLE)

    @property
    def blocked_threads(self) -> List[str]:
        return [t.id for t in self.threads if self.is_blocked(t)]

    @property
    def mutual_exclusion_violations(self) -> List[MutualExclusionViolation]:
        """Critical sections currently occupied by more than one thread."""
        return [
            MutualExclusionViolation(cs_id, tuple(occupants))
            for cs_id, occupants in self._world.inside.items()
            if len(occupants) > 1
        ]

    def deadlocked_threads(self) -> List[str]:
        """Threads in a cycle of lock waits (each waits for a lock the next one holds)."""
        waits_for: Dict[str, str] = {}
        for r in self._world.resources.values():
            if r.kind == ResourceKind.LOCK and r.held_by is not None:
                for waiter in r.waiting:
                    waits_for[waiter] = r.held_by

        deadlocked = set()
        for start in waits_for:
            chain: List[str] = []
            node = start
            while node in waits_for and node not in chain:
                chain.append(node)
                node = waits_for[node]
            if node in chain:
                deadlocked.update(chain[chain.index(node):])
        return sorted(deadlocked)
