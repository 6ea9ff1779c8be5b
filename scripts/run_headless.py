"""
Headless ecosystem run.

Steps the engine manually (no tick-driver thread, no sleeping) and prints
a summary line every --stats-interval ticks. Optionally exports the
rolling statistics history to JSON.
"""

import argparse
import json
import sys
import time
from dataclasses import replace
from pathlib import Path

# Allow running from a source checkout
sys.path.insert(0, str(Path(__file__).parent.parent))

from ecosim.engine import SimulationEngine, SimulationListener
from ecosim.loader import load_config, load_scenario, list_scenarios
from ecosim.data_types import SimulationState


class SummaryListener(SimulationListener):
    """Prints periodic summaries and the end reason"""

    def __init__(self, stats_interval: int):
        self.stats_interval = stats_interval
        self.end_reason = None

    def on_update(self, stats):
        if stats.tick % self.stats_interval == 0:
            balance = "balanced" if stats.is_balanced() else "unbalanced"
            print(f"{stats.summary()} | {balance}")

    def on_simulation_ended(self, reason, stats):
        self.end_reason = reason
        print(f"[OK] Simulation ended at tick {stats.tick}: {reason}")


def run_headless(config, max_ticks: int, stats_interval: int, export_stats=None):
    """Step until the run finishes or max_ticks is reached"""
    engine = SimulationEngine()
    listener = SummaryListener(stats_interval)
    engine.add_listener(listener)
    engine.initialize(config)

    started = time.perf_counter()
    for _ in range(max_ticks):
        if engine.step() is None or engine.state is SimulationState.FINISHED:
            break
    elapsed = time.perf_counter() - started

    final = engine.latest_stats()
    tick_stats = engine.ecosystem.get_tick_stats()
    telemetry = engine.ecosystem.get_telemetry()

    print()
    print("=" * 80)
    print(f"Final: {final.summary()}")
    print(f"Ticks: {final.tick} in {elapsed:.2f}s (avg {tick_stats['avg_tick_time_ms']:.3f} ms/tick)")
    print(f"Births: {telemetry['total_births']}, Deaths: {telemetry['total_deaths']}, "
          f"Meals: {telemetry['total_meals']}, Failed hunts: {telemetry['total_failed_hunts']}")
    if listener.end_reason is None:
        print(f"[WARN] Stopped after {max_ticks} ticks without reaching an end condition")
    print("=" * 80)

    if export_stats:
        payload = {
            'config': config.to_dict(),
            'end_reason': listener.end_reason,
            'telemetry': telemetry,
            'history': [s.to_dict() for s in engine.get_stats_history()],
        }
        with open(export_stats, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2)
        print(f"[OK] Exported stats to {export_stats}")


def main():
    """Parse command-line arguments and run"""
    parser = argparse.ArgumentParser(
        description="Predator-prey food chain simulation (headless)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Default configuration
  python scripts/run_headless.py

  # Named scenario with a fixed seed
  python scripts/run_headless.py --scenario extinction --seed 42

  # Custom YAML, export history for plotting
  python scripts/run_headless.py --config my.yaml --ticks 2000 --export-stats run.json
        """,
    )
    parser.add_argument("--scenario", type=str, default=None,
                        help=f"Scenario name (known: {', '.join(list_scenarios()) or 'none'})")
    parser.add_argument("--config", type=str, default=None, metavar="FILENAME",
                        help="YAML configuration file (default: data/ecosystem.yaml)")
    parser.add_argument("--ticks", type=int, default=1000,
                        help="Maximum ticks to run (default: 1000)")
    parser.add_argument("--stats-interval", type=int, default=100,
                        help="Print stats every N ticks (default: 100)")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed for a repeatable run (overrides the YAML seed)")
    parser.add_argument("--export-stats", type=str, default=None, metavar="FILENAME",
                        help="Write the statistics history to a JSON file")
    args = parser.parse_args()

    if args.scenario:
        config = load_scenario(args.scenario, args.config)
    else:
        config = load_config(args.config)

    if args.seed is not None:
        config = replace(config, simulation=replace(config.simulation, seed=args.seed))

    run_headless(config, args.ticks, max(1, args.stats_interval), export_stats=args.export_stats)


if __name__ == '__main__':
    main()
