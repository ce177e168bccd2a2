"""Metrics utilities for the daisy chain simulation.

This module saves simulation statistics, transmission records and the message
history to JSON and CSV files.
"""

import csv
import json
import os
from typing import Any, Dict, Iterable, List, Union

from daisy_sim.core.packet import Transmission
from daisy_sim.core.simulator import HistoryEntry, Statistics


def _ensure_parent(filename: str) -> None:
    directory = os.path.dirname(filename)
    if directory:
        os.makedirs(directory, exist_ok=True)


def save_stats_to_json(
    stats: Union[Statistics, Dict[str, Any]], filename: str = "results/stats.json"
) -> None:
    """Save statistics to a JSON file.

    Args:
        stats: Statistics snapshot or its dictionary form.
        filename: Output filename.
    """
    _ensure_parent(filename)
    if isinstance(stats, Statistics):
        stats = stats.to_dict()
    with open(filename, "w") as f:
        json.dump(stats, f, indent=2)


def transmission_summary(transmissions: Iterable[Transmission]) -> List[Dict[str, Any]]:
    """Convert transmission records to JSON-serializable rows."""
    rows = []
    for t in transmissions:
        rows.append(
            {
                "id": t.id,
                "source": t.source,
                "destination": t.destination,
                "state": t.state.name,
                "failure": t.failure.name if t.failure else None,
                "path": t.path,
                "reached": t.reached,
                "hops": t.get_hop_count(),
                "created_at": t.created_at,
                "finished_at": t.finished_at,
                "delay": t.get_total_delay(),
            }
        )
    return rows


def save_transmissions_to_json(
    transmissions: Iterable[Transmission], filename: str = "results/transmissions.json"
) -> None:
    _ensure_parent(filename)
    with open(filename, "w") as f:
        json.dump(transmission_summary(transmissions), f, indent=2)


def save_history_to_csv(
    history: Iterable[HistoryEntry], filename: str = "results/history.csv"
) -> None:
    """Save the message history to a CSV file.

    Args:
        history: History entries, oldest first.
        filename: Output filename.
    """
    _ensure_parent(filename)
    with open(filename, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["Time", "Success", "Message"])
        for entry in history:
            writer.writerow([f"{entry.time:.3f}", entry.success, entry.message])
