"""
Cache & Synchronization Visualizer — Replacement Policies, Associativity & Threads

Interactive simulation and visualization of:
    - Cache replacement policies (LRU, Clock, FIFO, Random, Optimal, 2Q)
    - Side-by-side policy comparison over one access sequence
    - Set-associative caches and address breakdown (tag / set / offset)
    - Thread synchronization with locks, semaphores and condition variables

Built with Streamlit for the web interface and Plotly for visualizations.
Run with: streamlit run app.py
"""

# =============================================================================
# IMPORTS
# =============================================================================

import random
import time
from typing import Any, Dict, List

import plotly.graph_objects as go
import streamlit as st

from cache_engine import (
    CacheGeometry,
    ClockCache,
    LRUCache,
    OptimalCache,
    ReplacementPolicy,
    SetAssociativeCache,
    make_cache,
)
from comparison import PolicyComparison
from config import Config
from logger_config import configure_logger
from scenarios import ALL_SCENARIOS
from sync_engine import SyncSimulator, ThreadAction
from utils import ColorPalette, parse_sequence

logger = configure_logger()


# =============================================================================
# PLOT HELPERS
# =============================================================================

def slot_figure(rows: List[Dict[str, Any]], palette: ColorPalette, title: str = "",
                highlight: Any = None) -> go.Figure:
    """One bar per cache slot, coloured by the key it holds."""
    fig = go.Figure()
    x, text, colors, borders = [], [], [], []
    for row in rows:
        x.append(f"Slot {row['index']}")
        label = row["value"]
        if row.get("reference_bit") is not None and not row["is_empty"]:
            label += f" (R={int(row['reference_bit'])})"
        if row.get("queue"):
            label += f" [{row['queue']}]"
        text.append(label)
        colors.append("#d3d3d3" if row["is_empty"] else palette.color_for(row["value"]))
        borders.append(3 if highlight is not None and row["value"] == str(highlight) else 0)

    fig.add_trace(go.Bar(
        x=x,
        y=[1] * len(x),
        text=text,
        textposition="inside",
        marker=dict(color=colors, line=dict(width=borders, color="black")),
        hovertext=text,
        hoverinfo="text",
    ))
    fig.update_layout(height=170, showlegend=False, title=title,
                      yaxis=dict(showticklabels=False), margin=dict(t=40, b=20))
    return fig


def hits_figure(stats: Dict[str, Any], title: str = "Hits vs Misses") -> go.Figure:
    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=["Hits", "Cold misses", "Capacity misses"],
        y=[stats["hits"], stats["cold_misses"], stats["capacity_misses"]],
        marker_color=["lightgreen", "lightskyblue", "salmon"],
    ))
    fig.update_layout(height=280, title=title)
    return fig


def show_stats(stats: Dict[str, Any]):
    c1, c2, c3 = st.columns(3)
    c1.metric("Accesses", stats["total_accesses"])
    c2.metric("Hits", stats["hits"])
    c3.metric("Hit Rate", f"{stats['hit_rate']:.0%}")


# =============================================================================
# STREAMLIT UI - Web Application Interface
# =============================================================================

st.set_page_config(page_title="Cache & Synchronization Visualizer", layout="wide")

page = st.sidebar.radio(
    "Choose View",
    ["Cache Policies", "Policy Comparison", "Set Associativity", "Threads", "Concepts"],
)

st.title("Cache & Synchronization Visualizer")

if "palette" not in st.session_state:
    st.session_state.palette = ColorPalette(Config.random_seed)
palette: ColorPalette = st.session_state.palette


# =============================================================================
# CONCEPTS PAGE
# =============================================================================

if page == "Concepts":
    st.header("Concepts Used in This Project")
    st.markdown(
        """
        ### Cache replacement
        - **LRU**: evict the entry that was used least recently.
        - **Clock**: approximate LRU with one reference bit per slot and a
          rotating hand; a set bit buys the slot a second chance.
        - **FIFO**: evict the entry that was loaded first.
        - **Random**: evict a uniformly random slot.
        - **Optimal (Belady)**: evict the entry used furthest in the future.
          Needs the whole sequence up front, so it is a yardstick only.
        - **2Q**: new entries go to a probationary queue (A1); a second hit
          promotes them to the main LRU queue (Am).

        ### Misses
        - **Cold**: the key was never seen before.
        - **Capacity**: the key was seen before but has been evicted.

        ### Associativity
        - An address splits into **tag | set index | offset**.
        - Direct-mapped caches have one way per set, fully associative caches
          a single set.

        ### Synchronization
        - **Locks** give one thread at a time access to a critical section.
        - **Semaphores** count available resources; waiting below zero blocks.
        - **Condition variables** release a lock while waiting and re-acquire
          it after a signal.
        """
    )
    st.stop()


# =============================================================================
# CACHE POLICIES PAGE
# =============================================================================

if page == "Cache Policies":
    st.sidebar.header("Cache Settings")
    policy = st.sidebar.selectbox("Replacement Policy", options=ReplacementPolicy.ALL)
    capacity = st.sidebar.number_input("Cache size (slots)", min_value=1, max_value=12,
                                       value=Config.cache_size)
    access_input = st.sidebar.text_area("Access sequence (comma separated)",
                                        value="A,B,C,A,D,B,E,A,B,C")
    run_speed = st.sidebar.slider("Playback speed (accesses/sec)", min_value=0.5,
                                  max_value=5.0, value=Config.playback_speed)

    sequence = parse_sequence(access_input)

    key = (policy, capacity, tuple(sequence))
    if st.session_state.get("cache_key") != key:
        st.session_state.cache_key = key
        st.session_state.cache = make_cache(policy, capacity, sequence=sequence,
                                            rng=random.Random(Config.random_seed))
        st.session_state.position = 0
    cache = st.session_state.cache

    if st.sidebar.button("Reset Simulation"):
        cache.reset()
        st.session_state.position = 0
        palette.reset()
        st.sidebar.success("Simulation reset")

    col1, col2 = st.columns([1, 2])

    with col1:
        st.subheader("Controls")
        position = st.session_state.position
        st.write(f"Next access: `{sequence[position]}`" if position < len(sequence)
                 else "Sequence finished")

        if st.button("Step Once") and position < len(sequence):
            try:
                result = cache.check_cache(sequence[position])
                st.session_state.position += 1
                st.success(f"Accessed {sequence[position]} -> "
                           f"{'HIT' if result.hit else 'MISS'}")
            except ValueError as e:
                logger.warning(f"Access failed: {e}")
                st.error(str(e))

        if st.button("Run Sequence"):
            try:
                while st.session_state.position < len(sequence):
                    cache.check_cache(sequence[st.session_state.position])
                    st.session_state.position += 1
                    time.sleep(0.1 / run_speed)
                st.success("Sequence run finished")
            except ValueError as e:
                logger.warning(f"Access failed: {e}")
                st.error(str(e))

        st.subheader("Event Log")
        for ev in cache.event_log[-20:][::-1]:
            st.write(ev)

    with col2:
        st.subheader("Cache Slots")
        next_victim = cache.get_next_eviction_value()
        st.plotly_chart(slot_figure(cache.get_display_info(), palette), use_container_width=True)
        st.caption(f"Next eviction: {next_victim if next_victim is not None else 'free slot available'}")

        if isinstance(cache, ClockCache):
            st.code(cache.get_clock_visualization())
        if isinstance(cache, LRUCache):
            st.write("Recency order (LRU → MRU):",
                     [row["value"] for row in reversed(cache.get_values_by_recency())])
        if isinstance(cache, OptimalCache):
            st.table(cache.get_display_info())

        st.subheader("Statistics")
        stats = cache.get_stats()
        show_stats(stats)
        st.plotly_chart(hits_figure(stats), use_container_width=True)


# =============================================================================
# POLICY COMPARISON PAGE
# =============================================================================

if page == "Policy Comparison":
    st.sidebar.header("Comparison Settings")
    policy1 = st.sidebar.selectbox("Policy 1", options=ReplacementPolicy.ALL, index=0)
    policy2 = st.sidebar.selectbox("Policy 2", options=ReplacementPolicy.ALL, index=1)
    capacity = st.sidebar.number_input("Cache size (slots)", min_value=1, max_value=12,
                                       value=Config.cache_size)

    if ("comparison" not in st.session_state
            or st.session_state.comparison.capacity != capacity):
        st.session_state.comparison = PolicyComparison(policy1, policy2, capacity=capacity)
    comparison: PolicyComparison = st.session_state.comparison
    if (comparison.policy1, comparison.policy2) != (policy1, policy2):
        comparison.update_policies(policy1, policy2)

    custom = st.sidebar.text_input("Custom sequence (comma separated)")
    if st.sidebar.button("Use Custom Sequence") and custom:
        comparison.set_custom_sequence(parse_sequence(custom))
    if st.sidebar.button("Generate New Sequence"):
        comparison.generate_new_sequence()

    st.write("Sequence:", " ".join(str(v) for v in comparison.access_sequence))

    b1, b2, b3, b4 = st.columns(4)
    if b1.button("◀ Back"):
        comparison.step_backward()
    if b2.button("Forward ▶"):
        comparison.step_forward()
    if b3.button("Jump to End"):
        comparison.jump_to_step(comparison.max_step)
    if b4.button("Reset"):
        comparison.reset()

    current = comparison.get_current_comparison()
    st.subheader(f"Step {current['step'] + 1} / {comparison.max_step + 1}"
                 + (f": access `{current['access_value']}`" if current["access_value"] is not None else ""))

    left, right = st.columns(2)
    for column, side in ((left, current["cache1"]), (right, current["cache2"])):
        with column:
            st.markdown(f"#### {side['name']}")
            result = side["result"]
            if result is not None:
                outcome = "HIT" if result.hit else f"MISS ({result.miss_type})"
                evicted = f", evicted {result.evicted_key}" if result.evicted_key is not None else ""
                st.write(outcome + evicted)
            if side["display"]:
                st.plotly_chart(slot_figure(side["display"], palette,
                                            highlight=current["access_value"]),
                                use_container_width=True)
            show_stats(side["stats"])

    summary = comparison.get_comparison_summary()
    fig = go.Figure()
    for label, stats in (("cache1", summary["final_stats"]["cache1"]),
                         ("cache2", summary["final_stats"]["cache2"])):
        fig.add_trace(go.Bar(name=stats["policy"], x=["Hit rate", "Cold miss rate", "Capacity miss rate"],
                             y=[stats["hit_rate"], stats["cold_miss_rate"], stats["capacity_miss_rate"]]))
    fig.update_layout(barmode="group", height=300, title="Final rates over the whole sequence")
    st.plotly_chart(fig, use_container_width=True)


# =============================================================================
# SET ASSOCIATIVITY PAGE
# =============================================================================

if page == "Set Associativity":
    st.sidebar.header("Geometry")
    way_options, size_options, block_options = [1, 2, 4, 8], [16, 32, 64, 128], [1, 2, 4]
    ways = st.sidebar.selectbox("Ways", options=way_options, index=way_options.index(Config.ways))
    size_bytes = st.sidebar.selectbox("Cache size (bytes)", options=size_options,
                                      index=size_options.index(Config.cache_size_bytes))
    block_words = st.sidebar.selectbox("Block size (words)", options=block_options,
                                       index=block_options.index(Config.block_size_words))
    policy = st.sidebar.selectbox(
        "Replacement Policy",
        options=[p for p in ReplacementPolicy.ALL if p != ReplacementPolicy.OPTIMAL],
    )

    try:
        geometry = CacheGeometry(ways=ways, cache_size_bytes=size_bytes,
                                 block_size_words=block_words, word_size=Config.word_size)
    except ValueError as e:
        logger.warning(f"Rejected input: {e}")
        st.error(str(e))
        st.stop()

    key = (geometry, policy)
    if st.session_state.get("assoc_key") != key:
        st.session_state.assoc_key = key
        st.session_state.assoc = SetAssociativeCache(geometry, policy,
                                                     rng=random.Random(Config.random_seed))
    assoc: SetAssociativeCache = st.session_state.assoc

    st.subheader(f"{geometry.label}: {geometry.num_sets} sets × {geometry.ways} ways")
    st.write(f"Address bits: tag={geometry.tag_bits}, set={geometry.set_bits}, "
             f"offset={geometry.offset_bits}")

    address_input = st.text_input("Addresses (comma separated, hex or decimal)", value="0x0,0x4,0x20,0x0,0x40")
    if st.button("Run Addresses"):
        try:
            for token in address_input.split(","):
                if token.strip():
                    assoc.check_cache(int(token.strip(), 0))
        except ValueError as e:
            st.error(str(e))
    if st.button("Reset Cache"):
        assoc.reset()

    st.table(assoc.get_display_info())
    stats = assoc.get_stats()
    show_stats(stats)
    st.plotly_chart(hits_figure(stats), use_container_width=True)
    st.subheader("Event Log")
    for ev in assoc.event_log[-20:][::-1]:
        st.write(ev)


# =============================================================================
# THREADS PAGE
# =============================================================================

EVENT_COLORS = {
    ThreadAction.LOCK_ACQUIRE: "green",
    ThreadAction.LOCK_RELEASE: "gray",
    ThreadAction.LOCK_WAIT: "red",
    ThreadAction.CRITICAL_SECTION_ENTER: "orange",
    ThreadAction.CRITICAL_SECTION_EXIT: "orange",
    ThreadAction.SEM_WAIT: "red",
    ThreadAction.SEM_PASS: "green",
    ThreadAction.SEM_POST: "blue",
    ThreadAction.CV_WAIT: "red",
    ThreadAction.CV_SIGNAL: "blue",
    ThreadAction.CV_SKIP: "purple",
}


def timeline_figure(sim: SyncSimulator) -> go.Figure:
    """Progress bar per thread, critical sections shaded, events as markers."""
    fig = go.Figure()
    for thread in sim.threads:
        fig.add_trace(go.Bar(
            y=[thread.id], x=[sim.time_step(thread)], orientation="h",
            marker_color="lightsteelblue", showlegend=False,
            hovertext=f"t={sim.time_step(thread)} / {thread.time_steps}", hoverinfo="text",
        ))
        for cs in thread.critical_sections:
            fig.add_shape(type="rect", x0=cs.start_at, x1=cs.end_at, y0=thread.id, y1=thread.id,
                          line=dict(color="orange", width=12), opacity=0.35)

    events = sim.events
    fig.add_trace(go.Scatter(
        x=[e.time_step for e in events],
        y=[e.thread_id for e in events],
        mode="markers",
        marker=dict(size=10, color=[EVENT_COLORS.get(e.action, "black") for e in events]),
        text=[f"{e.action} {e.resource_id}" for e in events],
        hoverinfo="text",
        showlegend=False,
    ))
    fig.update_layout(height=120 + 60 * len(sim.threads), xaxis_title="time step",
                      xaxis=dict(range=[0, max(t.time_steps for t in sim.threads)]))
    return fig


if page == "Threads":
    st.sidebar.header("Scenario")
    title = st.sidebar.selectbox("Scenario", options=list(ALL_SCENARIOS))
    deferred = st.sidebar.checkbox("Pause on each event", value=False)
    ticks_per_run = st.sidebar.slider("Ticks per run", min_value=1, max_value=200,
                                      value=Config.max_ticks_per_run)

    scenario = ALL_SCENARIOS[title]
    if (st.session_state.get("scenario_title") != title
            or st.session_state.sim.deferred != deferred):
        st.session_state.scenario_title = title
        st.session_state.sim = SyncSimulator.from_scenario(scenario, deferred=deferred)
    sim: SyncSimulator = st.session_state.sim

    st.subheader(scenario.title)
    st.write(scenario.description)

    if st.sidebar.button("Reset Threads"):
        sim.reset()
        st.sidebar.success("Simulation reset")

    columns = st.columns(len(sim.threads))
    for column, thread in zip(columns, sim.threads):
        with column:
            st.markdown(f"**{thread.id}**: t={sim.time_step(thread)} / {thread.time_steps}")
            if sim.is_finished(thread):
                st.write("finished")
            elif sim.is_blocked(thread):
                st.write("blocked" + ("" if sim.can_run(thread) else " (waiting)"))
            if st.button("Step", key=f"step-{thread.id}"):
                sim.step(thread)
            if st.button(f"Run {ticks_per_run} ticks", key=f"run-{thread.id}"):
                sim.run_thread(thread)
                for _ in range(ticks_per_run):
                    if sim.running is None or sim.blocking_event is not None:
                        break
                    if not sim.can_run(thread):
                        break
                    sim.tick()
                sim.run_thread(None)

    if sim.blocking_event is not None:
        event = sim.blocking_event.event
        st.info(f"{event.thread_id}: {event.action} {event.resource_id} (t={event.time_step})")
        if st.button("Continue"):
            sim.unblock_event()

    st.plotly_chart(timeline_figure(sim), use_container_width=True)

    left, right = st.columns(2)
    with left:
        st.subheader("Resources")
        rows = []
        for rid, lock in sim.lock_state.items():
            rows.append({"resource": rid, "kind": "lock", "value": lock.held_by or "free",
                         "waiting": ", ".join(lock.waiting)})
        for rid, sem in sim.semaphore_state.items():
            rows.append({"resource": rid, "kind": "semaphore", "value": sem.count,
                         "waiting": ", ".join(sem.waiting)})
        for rid, cv in sim.condition_variable_state.items():
            rows.append({"resource": rid, "kind": "condition variable", "value": cv.state_id,
                         "waiting": ", ".join(cv.waiting)})
        if rows:
            st.table(rows)
        if sim.state:
            st.write("Shared state:", sim.state)

        for violation in sim.mutual_exclusion_violations:
            st.error(f"Mutual exclusion violated in {violation.critical_section_id}: "
                     f"{', '.join(violation.thread_ids)}")
        deadlocked = sim.deadlocked_threads()
        if deadlocked:
            st.error(f"Deadlock: {', '.join(deadlocked)}")

    with right:
        st.subheader("Event Log")
        for ev in sim.events[-20:][::-1]:
            extra = f" + {ev.secondary_action} {ev.secondary_resource_id}" if ev.secondary_action else ""
            st.write(f"t={ev.time_step} {ev.thread_id}: {ev.action} {ev.resource_id}{extra}")
