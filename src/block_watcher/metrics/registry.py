"""
Metric registry using prometheus_client.

Provides pre-defined metrics for a block watcher.
Exposes metrics in Prometheus text format.
"""

from __future__ import annotations

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Create a dedicated registry for watcher metrics.
#
# Using a dedicated registry avoids pollution from default Python process metrics.
REGISTRY = CollectorRegistry()

# -----------------------------------------------------------------------------
# Window
# -----------------------------------------------------------------------------

highest_block_height = Gauge(
    "block_watcher_highest_block_height",
    "Height of the highest observed block",
    registry=REGISTRY,
)

window_size = Gauge(
    "block_watcher_window_size",
    "Blocks currently retained for reorg comparison",
    registry=REGISTRY,
)

blocks_observed = Counter(
    "block_watcher_blocks_observed_total",
    "New blocks appended to the window",
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
# Reorgs
# -----------------------------------------------------------------------------

reorgs_detected = Counter(
    "block_watcher_reorgs_detected_total",
    "Reorg repair passes that replaced at least one block",
    registry=REGISTRY,
)

blocks_reorged = Counter(
    "block_watcher_blocks_reorged_total",
    "Window entries replaced by a reorg",
    registry=REGISTRY,
)

reorg_depth = Histogram(
    "block_watcher_reorg_depth",
    "Number of blocks replaced by a single repair pass",
    buckets=(1, 2, 3, 5, 8, 13, 21, 34, 64),
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
# Failures
# -----------------------------------------------------------------------------

callback_failures = Counter(
    "block_watcher_callback_failures_total",
    "Subscriber callback invocations that raised",
    ["event"],
    registry=REGISTRY,
)

fetch_failures = Counter(
    "block_watcher_fetch_failures_total",
    "Calls to the block source that raised or returned nothing usable",
    ["operation"],
    registry=REGISTRY,
)


def generate_metrics() -> bytes:
    """
    Generate Prometheus metrics output.

    Returns:
        Prometheus text format output as bytes.
    """
    return generate_latest(REGISTRY)
