"""
Built-in thread scenarios: mutual exclusion, deadlock, bounded buffers and
a semaphore built from a lock plus a condition variable.
"""

from typing import Dict

from sync_engine import (
    ConditionVariable,
    ConditionVariableContext,
    CriticalSection,
    Lock,
    LockContext,
    Scenario,
    Semaphore,
    SemaphoreContext,
    StateAction,
    StateVariable,
    Thread,
)


# =============================================================================
# SHARED STATE ACTIONS
# =============================================================================

def _increment(value: int) -> int:
    return value + 1


def _decrement(value: int) -> int:
    return value - 1


PUT_ITEM = StateAction("increments", "num_items", _increment)
GET_ITEM = StateAction("decrements", "num_items", _decrement)


# =============================================================================
# LOCKS
# =============================================================================

SIMPLE_MUTEX = Scenario(
    title="Mutual Exclusion",
    description=(
        "The following threads example enforces mutual exclusion using Locks, "
        "run the threads in any order and observe that mutual exclusion is never violated"
    ),
    threads=(
        Thread(
            id="Thread 1",
            time_steps=1000,
            locks=(
                LockContext("Lock 1", acquire_at=100, release_at=250),
                LockContext("Lock 2", acquire_at=500, release_at=700),
            ),
            critical_sections=(
                CriticalSection("Critical Section 1", start_at=100, end_at=250),
                CriticalSection("Critical Section 2", start_at=500, end_at=700),
            ),
        ),
        Thread(
            id="Thread 2",
            time_steps=1000,
            locks=(
                LockContext("Lock 1", acquire_at=150, release_at=400),
                LockContext("Lock 2", acquire_at=450, release_at=600),
            ),
            critical_sections=(
                CriticalSection("Critical Section 1", start_at=150, end_at=400),
                CriticalSection("Critical Section 2", start_at=450, end_at=600),
            ),
        ),
    ),
    locks=(Lock("Lock 1"), Lock("Lock 2")),
)

DEADLOCK = Scenario(
    title="Deadlock",
    description=(
        "The following threads example can result in a Deadlock, "
        "run the threads to try to create this Deadlock"
    ),
    threads=(
        Thread(
            id="Thread 1",
            time_steps=1000,
            locks=(
                LockContext("Lock 2", acquire_at=100, release_at=850),
                LockContext("Lock 1", acquire_at=250, release_at=600),
            ),
            critical_sections=(
                CriticalSection("Critical Section 2", start_at=100, end_at=850),
                CriticalSection("Critical Section 1", start_at=250, end_at=600),
            ),
        ),
        Thread(
            id="Thread 2",
            time_steps=1000,
            locks=(
                LockContext("Lock 1", acquire_at=150, release_at=900),
                LockContext("Lock 2", acquire_at=300, release_at=700),
            ),
            critical_sections=(
                CriticalSection("Critical Section 1", start_at=150, end_at=900),
                CriticalSection("Critical Section 2", start_at=300, end_at=700),
            ),
        ),
    ),
    locks=(Lock("Lock 1"), Lock("Lock 2")),
)


# =============================================================================
# SEMAPHORES
# =============================================================================

PRODUCER_CONSUMER = Scenario(
    title="Producer & Consumer (Semaphores)",
    description="The following threads example uses Semaphores to manage access to a bounded Buffer/Queue.",
    threads=(
        Thread(
            id="Producer",
            time_steps=500,
            critical_sections=(
                CriticalSection("put(i);", 50, 100, PUT_ITEM),
                CriticalSection("put(i);", 200, 250, PUT_ITEM),
                CriticalSection("put(i);", 350, 400, PUT_ITEM),
            ),
            semaphores=(
                SemaphoreContext("full", posts=(115, 265, 415)),
                SemaphoreContext("empty", waits=(35, 185, 335)),
                SemaphoreContext("mutex", posts=(100, 250, 400), waits=(50, 200, 350)),
            ),
        ),
        Thread(
            id="Consumer",
            time_steps=500,
            critical_sections=(
                CriticalSection("int tmp = get();", 40, 90, GET_ITEM),
                CriticalSection("int tmp = get();", 210, 260, GET_ITEM),
                CriticalSection("int tmp = get();", 340, 390, GET_ITEM),
            ),
            semaphores=(
                SemaphoreContext("full", waits=(25, 195, 325)),
                SemaphoreContext("empty", posts=(105, 275, 405)),
                SemaphoreContext("mutex", posts=(90, 260, 390), waits=(40, 210, 340)),
            ),
        ),
    ),
    semaphores=(
        Semaphore("empty", initial=10),
        Semaphore("full", initial=0),
        Semaphore("mutex", initial=1),
    ),
    state=(StateVariable("num_items", initial=0),),
)


# =============================================================================
# CONDITION VARIABLES
# =============================================================================

CV_PRODUCER_CONSUMER = Scenario(
    title="Producer & Consumer (Condition Variables)",
    description=(
        "The following threads example uses Condition Variables to manage access "
        "to a bounded Buffer/Queue."
    ),
    threads=(
        Thread(
            id="Producer",
            time_steps=500,
            critical_sections=(
                CriticalSection("put(i);", 50, 100, PUT_ITEM),
                CriticalSection("put(i);", 200, 250, PUT_ITEM),
                CriticalSection("put(i);", 350, 400, PUT_ITEM),
            ),
            condition_variables=(
                ConditionVariableContext("fill", releases="mutex", signals=(100, 250, 400)),
                ConditionVariableContext("empty", releases="mutex", waits=(50, 200, 350),
                                         condition_str="num_items == MAX"),
            ),
            locks=(
                LockContext("mutex", acquire_at=35, release_at=115),
                LockContext("mutex", acquire_at=185, release_at=265),
                LockContext("mutex", acquire_at=335, release_at=415),
            ),
        ),
        Thread(
            id="Consumer",
            time_steps=500,
            critical_sections=(
                CriticalSection("int tmp = get();", 40, 90, GET_ITEM),
                CriticalSection("int tmp = get();", 210, 260, GET_ITEM),
                CriticalSection("int tmp = get();", 340, 390, GET_ITEM),
            ),
            condition_variables=(
                ConditionVariableContext("fill", releases="mutex", waits=(40, 210, 340),
                                         condition_str="num_items == 0"),
                ConditionVariableContext("empty", releases="mutex", signals=(90, 260, 390)),
            ),
            locks=(
                LockContext("mutex", acquire_at=25, release_at=115),
                LockContext("mutex", acquire_at=195, release_at=275),
                LockContext("mutex", acquire_at=325, release_at=405),
            ),
        ),
    ),
    condition_variables=(
        ConditionVariable("fill", state_id="num_items", condition=lambda n: n == 0),
        ConditionVariable("empty", state_id="num_items", condition=lambda n: n == 5),
    ),
    locks=(Lock("mutex"),),
    state=(StateVariable("num_items", initial=0),),
)

ZEMAPHORES = Scenario(
    title="Zemaphore Mechanics",
    description=(
        "The following example demonstrates an implementation of a Semaphore using "
        "a Lock and a Condition Variable (Zemaphores, OSTEP 31.17)"
    ),
    threads=(
        Thread(
            id="Thread",
            time_steps=300,
            critical_sections=(
                CriticalSection("Zem_post(&s);", 50, 100, StateAction("increment", "value", _increment)),
                CriticalSection("Zem_wait(&s);", 200, 250, StateAction("decrement", "value", _decrement)),
            ),
            condition_variables=(
                ConditionVariableContext("cond", releases="lock", signals=(101,), waits=(200,),
                                         condition_str="value <= 0"),
            ),
            locks=(
                LockContext("lock", acquire_at=35, release_at=115),
                LockContext("lock", acquire_at=185, release_at=265),
            ),
        ),
    ),
    condition_variables=(
        ConditionVariable("cond", state_id="value", condition=lambda v: v <= 0),
    ),
    locks=(Lock("lock"),),
    state=(StateVariable("value", initial=0),),
)


ALL_SCENARIOS: Dict[str, Scenario] = {
    scenario.title: scenario
    for scenario in (SIMPLE_MUTEX, DEADLOCK, PRODUCER_CONSUMER, CV_PRODUCER_CONSUMER, ZEMAPHORES)
}
