"""
Simulation engine: tick scheduling, state machine, and observer fan-out.

States: STOPPED -> RUNNING <-> PAUSED -> FINISHED (terminal until reset()).

One background tick-driver thread calls Ecosystem.step(), then sleeps an
interruptible interval. Manual step() may come from any thread; a single
tick lock guarantees that only one tick is ever in flight. A tick takes the
publish lock before giving up the tick lock, so listeners always see
on_update in tick order, whichever thread ran the tick.
"""

import threading
import traceback
from collections import deque
from typing import List, Optional

from .simulation import Ecosystem
from .data_types import EcosystemConfig, EcosystemStats, SimulationState
from .rng import make_rng
from .constants import (
    MAX_HISTORY_SIZE,
    TICK_INTERVAL_MIN_MS,
    TICK_INTERVAL_MAX_MS,
    TICK_INTERVAL_DEFAULT_MS,
    STOP_JOIN_TIMEOUT_S,
    TICK_SUMMARY_INTERVAL,
)


class SimulationListener:
    """
    Observer contract for renderers, charts and other collaborators.

    Subclass and override what you need; the defaults do nothing.
    Notifications for ticks arrive on the tick-driver thread (or the
    thread that called step()), one tick at a time and in tick order.
    Do not call initialize() or reset() from on_update.
    """

    def on_update(self, stats: EcosystemStats):
        """After every tick (and once after initialize())"""

    def on_state_changed(self, new_state: SimulationState):
        """On every engine state transition"""

    def on_simulation_ended(self, reason: str, stats: EcosystemStats):
        """Exactly once, when FINISHED is entered"""


def clamp_interval(interval_ms: int) -> int:
    """Clamp an inter-tick interval to [TICK_INTERVAL_MIN_MS, TICK_INTERVAL_MAX_MS]"""
    return max(TICK_INTERVAL_MIN_MS, min(int(interval_ms), TICK_INTERVAL_MAX_MS))


class SimulationEngine:
    """
    Drives an Ecosystem on a timer and broadcasts each tick's snapshot.

    Usage:
        engine = SimulationEngine()
        engine.add_listener(my_listener)
        engine.initialize(load_scenario("balanced"))
        engine.start()
        ...
        engine.stop()
    """

    def __init__(self, tick_interval_ms: int = TICK_INTERVAL_DEFAULT_MS,
                 history_size: int = MAX_HISTORY_SIZE, verbose: bool = False):
        """
        Args:
            tick_interval_ms: Initial inter-tick sleep (clamped)
            history_size: Rolling statistics history length
            verbose: Print a tick summary every TICK_SUMMARY_INTERVAL ticks
        """
        self.ecosystem: Optional[Ecosystem] = None
        self.config: Optional[EcosystemConfig] = None
        self.verbose = verbose

        self._state = SimulationState.STOPPED
        self._tick_interval_ms = clamp_interval(tick_interval_ms)
        self._history: deque = deque(maxlen=history_size)
        self._listeners: List[SimulationListener] = []

        # Only one tick in flight; guards ecosystem.step()
        self._tick_lock = threading.Lock()
        # Taken before _tick_lock is released, so on_update order follows tick order
        self._publish_lock = threading.RLock()
        self._history_lock = threading.Lock()
        # Guards state transitions and the listener list
        self._state_lock = threading.RLock()

        self._running = False
        self._wake = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._end_notified = False

    # ========================================================================
    # Properties
    # ========================================================================

    @property
    def state(self) -> SimulationState:
        return self._state

    @property
    def tick_interval_ms(self) -> int:
        return self._tick_interval_ms

    @tick_interval_ms.setter
    def tick_interval_ms(self, interval_ms: int):
        self._tick_interval_ms = clamp_interval(interval_ms)

    def speed_up(self):
        """Halve the inter-tick interval (clamped)"""
        self.tick_interval_ms = self._tick_interval_ms // 2

    def slow_down(self):
        """Double the inter-tick interval (clamped)"""
        self.tick_interval_ms = self._tick_interval_ms * 2

    def is_alive(self) -> bool:
        """True while the tick-driver thread exists and has not exited"""
        return self._thread is not None and self._thread.is_alive()

    # ========================================================================
    # Listeners
    # ========================================================================

    def add_listener(self, listener: SimulationListener):
        with self._state_lock:
            if listener is not None and listener not in self._listeners:
                self._listeners.append(listener)

    def remove_listener(self, listener: SimulationListener):
        with self._state_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _notify(self, method: str, *args):
        with self._state_lock:
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                getattr(listener, method)(*args)
            except Exception as e:
                print(f"[WARN] Listener {listener!r} failed in {method}: {e}")

    def _set_state(self, new_state: SimulationState):
        with self._state_lock:
            if self._state is new_state:
                return
            self._state = new_state
        self._notify('on_state_changed', new_state)

    # ========================================================================
    # Lifecycle
    # ========================================================================

    def initialize(self, config: EcosystemConfig):
        """
        Build a fresh ecosystem from config and publish the tick-0 snapshot.

        Stops a running tick-driver first and leaves the engine STOPPED.
        The interval is taken from config.simulation.tick_interval_ms.
        """
        if self._state in (SimulationState.RUNNING, SimulationState.PAUSED):
            self.stop()

        with self._tick_lock:
            self.config = config
            self.tick_interval_ms = config.simulation.tick_interval_ms
            self.ecosystem = Ecosystem(config, rng=make_rng(config.simulation.seed))
            self.ecosystem.initialize()

            initial_stats = self.ecosystem.get_statistics()
            with self._history_lock:
                self._history.clear()
                self._history.append(initial_stats)
            self._end_notified = False

        self._set_state(SimulationState.STOPPED)
        self._notify('on_update', initial_stats)

    def start(self) -> bool:
        """
        Enter RUNNING and launch the tick-driver.

        Listeners see on_state_changed(RUNNING) before any tick's on_update.
        From PAUSED this behaves as resume().

        Returns:
            False if there is no ecosystem yet, already running, or finished
        """
        if self.ecosystem is None:
            print("[WARN] Cannot start: ecosystem not initialized (call initialize() first)")
            return False

        with self._state_lock:
            if self._state is SimulationState.RUNNING:
                return False
            if self._state is SimulationState.FINISHED:
                print("[WARN] Cannot start: simulation finished (call reset() first)")
                return False
            if self._state is SimulationState.PAUSED:
                return self.resume()

            # Previous driver from a stop() that timed out must be gone first
            if self.is_alive():
                self._thread.join(timeout=STOP_JOIN_TIMEOUT_S)
                if self.is_alive():
                    print("[WARN] Cannot start: previous tick-driver still running")
                    return False

            self._running = True
            self._wake.clear()
            self._set_state(SimulationState.RUNNING)

            self._thread = threading.Thread(target=self._run_loop, name="SimulationThread", daemon=True)
            self._thread.start()
            return True

    def pause(self) -> bool:
        with self._state_lock:
            if self._state is not SimulationState.RUNNING:
                return False
            self._set_state(SimulationState.PAUSED)
        return True

    def resume(self) -> bool:
        with self._state_lock:
            if self._state is not SimulationState.PAUSED:
                return False
            self._set_state(SimulationState.RUNNING)
        self._wake.set()
        return True

    def stop(self):
        """
        Stop the tick-driver and return promptly.

        Interrupts the inter-tick sleep and joins with a bounded timeout.
        A tick already in flight completes; no new tick starts. FINISHED
        stays FINISHED.
        """
        self._running = False
        self._wake.set()

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=STOP_JOIN_TIMEOUT_S)
            if thread.is_alive():
                print(f"[WARN] Tick-driver did not exit within {STOP_JOIN_TIMEOUT_S}s")

        if self._state is not SimulationState.FINISHED:
            self._set_state(SimulationState.STOPPED)

    def reset(self):
        """Stop, then rebuild the ecosystem from the last configuration"""
        self.stop()
        if self.config is not None:
            self.initialize(self.config)
        else:
            self._set_state(SimulationState.STOPPED)

    def step(self) -> Optional[EcosystemStats]:
        """
        Run exactly one tick manually.

        Returns:
            The tick's statistics, or None if rejected (no ecosystem,
            RUNNING, FINISHED, or another tick in flight)
        """
        if self.ecosystem is None:
            print("[WARN] Cannot step: ecosystem not initialized")
            return None
        if self._state in (SimulationState.RUNNING, SimulationState.FINISHED):
            return None
        if not self._tick_lock.acquire(blocking=False):
            return None

        try:
            stats = self._perform_tick()
            self._publish_lock.acquire()
        finally:
            self._tick_lock.release()

        try:
            self._after_tick(stats)
        finally:
            self._publish_lock.release()
        return stats

    # ========================================================================
    # Tick-driver
    # ========================================================================

    def _run_loop(self):
        """Main tick loop (runs on the SimulationThread)"""
        while self._running:
            if self._state is SimulationState.RUNNING:
                stats = None
                with self._tick_lock:
                    # stop() may have landed while waiting for the lock
                    if self._running and self._state is SimulationState.RUNNING:
                        try:
                            stats = self._perform_tick()
                        except Exception as e:
                            print(f"[WARN] Tick failed: {e}")
                            traceback.print_exc()
                        if stats is not None:
                            self._publish_lock.acquire()

                if stats is not None:
                    try:
                        self._after_tick(stats)
                    finally:
                        self._publish_lock.release()
                    if self._state is SimulationState.FINISHED:
                        break

            self._wake.wait(self._tick_interval_ms / 1000.0)
            self._wake.clear()

    def _perform_tick(self) -> EcosystemStats:
        """Step the ecosystem and record the snapshot (caller holds _tick_lock)"""
        stats = self.ecosystem.step()
        with self._history_lock:
            self._history.append(stats)
        return stats

    def _after_tick(self, stats: EcosystemStats):
        """Notify listeners of the tick, then check the end condition"""
        self._notify('on_update', stats)

        if self.verbose and stats.tick % TICK_SUMMARY_INTERVAL == 0:
            self.ecosystem.print_tick_summary()

        reason = self._end_reason(stats)
        if reason is not None:
            self._finish(reason, stats)

    def _end_reason(self, stats: EcosystemStats) -> Optional[str]:
        if stats.herbivore_count == 0 and stats.carnivore_count == 0:
            return "All animals have died. Only producers remain."

        max_generations = self.config.simulation.max_generations if self.config else None
        if max_generations is not None and stats.tick >= max_generations:
            return f"Reached maximum generations: {max_generations}"

        return None

    def _finish(self, reason: str, final_stats: EcosystemStats):
        with self._state_lock:
            if self._end_notified:
                return
            self._end_notified = True
            self._running = False
            self._set_state(SimulationState.FINISHED)

        self._notify('on_simulation_ended', reason, final_stats)

    # ========================================================================
    # Read-only access
    # ========================================================================

    def get_stats_history(self) -> List[EcosystemStats]:
        """Copy of the rolling history, oldest first"""
        with self._history_lock:
            return list(self._history)

    def latest_stats(self) -> Optional[EcosystemStats]:
        with self._history_lock:
            return self._history[-1] if self._history else None
