#!/usr/bin/env python3
"""Run a daisy chain demo simulation from the command line.

Builds the chain, applies any removals, power failures and broken wires,
starts token passing and lets the token holder send random traffic for the
requested duration.
"""

import argparse
import logging
import os

from daisy_sim.config import SimulationConfig
from daisy_sim.core.simulator import DaisyChainSimulator
from daisy_sim.traffic.generators import constant_interval, demo_traffic, poisson_interval
from daisy_sim.utils.metrics import (
    save_history_to_csv,
    save_stats_to_json,
    save_transmissions_to_json,
)


def build_config(args: argparse.Namespace) -> SimulationConfig:
    """Merge the JSON config file, if any, with command line overrides."""
    values = SimulationConfig.from_json(args.config).to_dict() if args.config else {}
    overrides = {
        "initial_nodes": args.nodes,
        "max_nodes": args.max_nodes,
        "token_interval": args.interval,
        "token_direction": args.direction,
        "speed_multiplier": args.speed,
        "seed": args.seed,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return SimulationConfig.from_dict(values)


def run_demo(args: argparse.Namespace) -> DaisyChainSimulator:
    simulator = DaisyChainSimulator(config=build_config(args))

    for node_id in args.remove:
        simulator.remove_node(node_id)
    for node_id in args.power_off:
        simulator.set_power(node_id, False)
    for index in args.break_link:
        simulator.set_link_broken(index, True)

    simulator.start_token_passing()
    interval = poisson_interval(args.rate, simulator.rng) if args.rate else constant_interval(1.0)
    demo_traffic(simulator, duration=args.duration, interval=interval)

    print(f"Running demo on chain {simulator.registry.active_ids}...")
    simulator.run(args.duration, updates=True)
    simulator.stop_token_passing()
    # Let the transmission in flight, if any, finish.
    simulator.env.run()

    stats = simulator.statistics()
    print()
    print(f"  Messages sent:   {stats.messages_sent}")
    print(f"  Messages failed: {stats.messages_failed}")
    print(f"  Success rate:    {stats.success_rate}%")
    print(f"  Still queued:    {stats.queued_messages}")
    return simulator


def main() -> None:
    """Parse arguments and run the demo."""
    parser = argparse.ArgumentParser(description="Daisy Chain Network Simulation")
    parser.add_argument("--config", help="JSON file with SimulationConfig fields")
    parser.add_argument("--nodes", type=int, help="Number of nodes in the chain")
    parser.add_argument("--max-nodes", type=int, help="Maximum number of active nodes")
    parser.add_argument("--interval", type=float, help="Seconds the token rests at each node")
    parser.add_argument("--direction", type=int, choices=[1, -1], help="Token direction")
    parser.add_argument("--speed", type=float, help="Speed multiplier for hops")
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument("--duration", type=float, default=30.0, help="Demo length in seconds")
    parser.add_argument(
        "--rate", type=float, help="Poisson rate of send attempts (default: one per second)"
    )
    parser.add_argument(
        "--remove", type=int, action="append", default=[], help="Remove a node (repeatable)"
    )
    parser.add_argument(
        "--power-off", type=int, action="append", default=[], help="Power off a node (repeatable)"
    )
    parser.add_argument(
        "--break-link", type=int, action="append", default=[], help="Break a link by index (repeatable)"
    )
    parser.add_argument("--output", default="results", help="Directory for result files")
    parser.add_argument("--plot", action="store_true", help="Save chain and transmission plots")
    parser.add_argument("--log-level", default="WARNING", help="Logging level")

    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    simulator = run_demo(args)

    os.makedirs(args.output, exist_ok=True)
    save_stats_to_json(simulator.statistics(), os.path.join(args.output, "stats.json"))
    save_transmissions_to_json(
        simulator.engine.transmissions, os.path.join(args.output, "transmissions.json")
    )
    save_history_to_csv(simulator.history, os.path.join(args.output, "history.csv"))

    if args.plot:
        from daisy_sim.utils.visualization import plot_transmissions, save_chain_visualization

        save_chain_visualization(simulator, os.path.join(args.output, "chain.png"))
        plot_transmissions(simulator, os.path.join(args.output, "transmissions.png"))

    print(f"\nSimulation complete. Results saved to '{args.output}' directory.")


if __name__ == "__main__":
    main()
