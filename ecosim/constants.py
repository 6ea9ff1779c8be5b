"""
Central configuration constants for the ecosystem simulation.

Defines default values, thresholds, and configuration parameters
used across multiple modules.
"""

# ============================================================================
# Energy Transfer
# ============================================================================

# Fraction of a consumed organism's energy granted to its consumer ("10% rule")
DEFAULT_TRANSFER_RATE = 0.10

# Probability that a carnivore's hunt succeeds
DEFAULT_HUNT_SUCCESS_RATE = 0.8

# Fraction of hunger_rate paid as a penalty for a failed hunt
HUNT_FAILURE_PENALTY_FACTOR = 0.5


# ============================================================================
# Spatial Grid
# ============================================================================

# 8-neighborhood offsets (dx, dy), row-major from the top-left
NEIGHBOR_OFFSETS = [
    (-1, -1), (0, -1), (1, -1),
    (-1, 0),           (1, 0),
    (-1, 1),  (0, 1),  (1, 1),
]

# Grid occupancy codes for grid_snapshot()
CELL_EMPTY = 0
CELL_PRODUCER = 1
CELL_HERBIVORE = 2
CELL_CARNIVORE = 3


# ============================================================================
# Engine Scheduling
# ============================================================================

# Inter-tick sleep bounds (milliseconds)
TICK_INTERVAL_MIN_MS = 50
TICK_INTERVAL_MAX_MS = 2000
TICK_INTERVAL_DEFAULT_MS = 200

# Rolling history of statistics snapshots kept by the engine
MAX_HISTORY_SIZE = 500

# Bounded wait for the tick-driver thread on stop() (seconds)
STOP_JOIN_TIMEOUT_S = 1.0


# ============================================================================
# Ecosystem Health
# ============================================================================

# Balanced when carnivore/herbivore and herbivore/producer ratios stay below this
BALANCE_RATIO_LIMIT = 0.5


# ============================================================================
# Performance Configuration
# ============================================================================

# Tick timing window for rolling average
TICK_TIME_WINDOW = 100  # Number of ticks to average

# Default tick summary interval (print every N ticks)
TICK_SUMMARY_INTERVAL = 100  # Print summary every 100 ticks
