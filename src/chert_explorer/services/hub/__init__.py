"""
State distribution for explorer consumers.

Replaying broadcast channels, one per published quantity, and synchronous
cache-only lookups.
"""

from __future__ import annotations

__all__ = [
    "Channel",
    "ChannelClosedError",
    "Listener",
    "Subscription",
    "StateHub",
]

from .channel import Channel, ChannelClosedError, Listener, Subscription
from .hub import StateHub
