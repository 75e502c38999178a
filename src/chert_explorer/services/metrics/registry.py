"""
Metric registry using prometheus_client.

Provides pre-defined metrics for the explorer engine.
Exposes metrics in Prometheus text format via the /metrics endpoint.
"""

from __future__ import annotations

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Dedicated registry: keeps default Python process metrics out of the output.
REGISTRY = CollectorRegistry()

# -----------------------------------------------------------------------------
# Published State
# -----------------------------------------------------------------------------

current_height = Gauge(
    "chert_explorer_current_height",
    "Height of the highest retained block",
    registry=REGISTRY,
)

finalized_height = Gauge(
    "chert_explorer_finalized_height",
    "Height at or below which blocks are finalized",
    registry=REGISTRY,
)

retained_blocks = Gauge(
    "chert_explorer_retained_blocks",
    "Blocks currently held in the bounded store",
    registry=REGISTRY,
)

tracked_accounts = Gauge(
    "chert_explorer_tracked_accounts",
    "Accounts currently held in the store",
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
# Simulator
# -----------------------------------------------------------------------------

blocks_generated = Counter(
    "chert_explorer_blocks_generated_total",
    "Blocks produced by the chain simulator",
    registry=REGISTRY,
)

blocks_evicted = Counter(
    "chert_explorer_blocks_evicted_total",
    "Blocks dropped from the store to stay within the retention bound",
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
# Live Sync
# -----------------------------------------------------------------------------

polls = Counter(
    "chert_explorer_polls_total",
    "Live node polls by outcome",
    ["outcome"],
    registry=REGISTRY,
)

poll_duration = Histogram(
    "chert_explorer_poll_seconds",
    "Live node poll duration",
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
    registry=REGISTRY,
)


def generate_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest(REGISTRY)


def observe_state(
    height: int,
    finalized: int,
    retained: int,
    accounts: int,
) -> None:
    """Refresh the published-state gauges after a cycle."""
    current_height.set(height)
    finalized_height.set(finalized)
    retained_blocks.set(retained)
    tracked_accounts.set(accounts)
