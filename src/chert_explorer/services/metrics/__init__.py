"""
Metrics module for observability.

Provides counters, gauges, and histograms for tracking the explorer engine.
Exposes metrics in Prometheus text format.
"""

from .registry import (
    REGISTRY,
    blocks_evicted,
    blocks_generated,
    current_height,
    finalized_height,
    generate_metrics,
    observe_state,
    poll_duration,
    polls,
    retained_blocks,
    tracked_accounts,
)

__all__ = [
    "REGISTRY",
    "blocks_evicted",
    "blocks_generated",
    "current_height",
    "finalized_height",
    "generate_metrics",
    "observe_state",
    "poll_duration",
    "polls",
    "retained_blocks",
    "tracked_accounts",
]
