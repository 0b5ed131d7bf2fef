"""
Metrics module for observability.

Provides counters, gauges, and histograms for tracking watcher behavior.
Exposes metrics in Prometheus text format.
"""

from .registry import (
    REGISTRY,
    blocks_observed,
    blocks_reorged,
    callback_failures,
    fetch_failures,
    generate_metrics,
    highest_block_height,
    reorg_depth,
    reorgs_detected,
    window_size,
)

__all__ = [
    "REGISTRY",
    "blocks_observed",
    "blocks_reorged",
    "callback_failures",
    "fetch_failures",
    "generate_metrics",
    "highest_block_height",
    "reorg_depth",
    "reorgs_detected",
    "window_size",
]
