"""Visualization utilities for the daisy chain simulation.

Static snapshots for reports: the chain itself and the outcome of each
transmission over time.
"""

import os
from typing import Dict, Optional, Tuple

import matplotlib.pyplot as plt
import networkx as nx
import numpy as np

from daisy_sim.core.simulator import DaisyChainSimulator


def save_chain_visualization(
    simulator: DaisyChainSimulator,
    filename: Optional[str] = None,
    figsize: Tuple[int, int] = (12, 3),
    block: bool = True,
) -> None:
    """Draw the chain, left to right in id order.

    Powered-off nodes are grey, the token holder is gold and broken links are
    drawn red and dashed.

    Args:
        simulator: DaisyChainSimulator instance.
        filename: Output filename, or None to show it immediately.
        figsize: Figure size as (width, height) in inches.
        block: Whether ``plt.show`` blocks.
    """
    fig = plt.figure(figsize=figsize)

    registry = simulator.registry
    graph = registry.graph
    pos: Dict[int, Tuple[float, float]] = {
        node_id: (i, 0.0) for i, node_id in enumerate(registry.active_ids)
    }

    colors = []
    for node_id in graph.nodes():
        node = registry.nodes[node_id]
        if node.has_token:
            colors.append("gold")
        elif node.powered_on:
            colors.append("lightblue")
        else:
            colors.append("lightgray")
    nx.draw_networkx_nodes(graph, pos, node_size=900, node_color=colors)

    intact = [link.endpoints for link in registry.links if not link.broken]
    broken = [link.endpoints for link in registry.links if link.broken]
    if intact:
        nx.draw_networkx_edges(graph, pos, edgelist=intact, edge_color="gray", width=2)
    if broken:
        nx.draw_networkx_edges(
            graph, pos, edgelist=broken, edge_color="red", width=2, style="dashed"
        )

    nx.draw_networkx_labels(
        graph, pos, labels={n: f"PC {n}" for n in graph.nodes()}, font_size=10
    )

    plt.axis("off")
    plt.tight_layout()

    if filename:
        directory = os.path.dirname(filename)
        if directory:
            os.makedirs(directory, exist_ok=True)
        fig.savefig(filename)
        plt.close(fig)
    else:
        plt.show(block=block)
        if not block:
            plt.pause(0.001)


def plot_transmissions(
    simulator: DaisyChainSimulator,
    filename: Optional[str] = None,
    show: bool = True,
) -> None:
    """Plot hops reached per transmission against finish time.

    Delivered transmissions are green, failed ones red. Transmissions still
    in flight are left out.

    Args:
        simulator: DaisyChainSimulator instance.
        filename: Output filename, or None.
        show: Whether to show the figure when no filename is given.
    """
    finished = [t for t in simulator.engine.transmissions if t.done]
    times = np.array([t.finished_at for t in finished], dtype=float)
    hops = np.array([t.get_hop_count() for t in finished], dtype=int)
    delivered = np.array([t.delivered for t in finished], dtype=bool)

    fig, ax = plt.subplots(figsize=(10, 4))
    if finished:
        ax.scatter(times[delivered], hops[delivered], color="green", label="Delivered")
        ax.scatter(times[~delivered], hops[~delivered], color="red", marker="x", label="Failed")
        ax.legend()
    ax.set_xlabel("Simulation time (s)")
    ax.set_ylabel("Hops completed")
    stats = simulator.statistics()
    ax.set_title(
        f"Sent {stats.messages_sent}, failed {stats.messages_failed}, "
        f"success rate {stats.success_rate}%"
    )
    plt.tight_layout()

    if filename:
        directory = os.path.dirname(filename)
        if directory:
            os.makedirs(directory, exist_ok=True)
        fig.savefig(filename)
        plt.close(fig)
    elif show:
        plt.show()
