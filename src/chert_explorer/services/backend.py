"""Backend interface shared by the simulated and live data sources."""

from __future__ import annotations

from typing import Protocol


class ExplorerBackend(Protocol):
    """
    A source of ledger state.

    Both implementations mutate the shared `StateStore` and publish through
    the shared `StateHub`. The engine drives them without knowing which one
    it holds:

    - `initialize` once, on first start
    - `tick` on every timer period
    - `refresh` on a manual trigger, outside the schedule
    - `load_more_blocks` when a consumer pages back into history
    """

    async def initialize(self) -> None:
        """Establish baseline state: seed history or perform a first poll."""
        ...

    async def tick(self) -> None:
        """Run one scheduled cycle."""
        ...

    async def refresh(self) -> None:
        """Run one extra cycle immediately."""
        ...

    async def load_more_blocks(self) -> bool:
        """
        Extend history with an older page.

        Returns:
            True if blocks were added, False if nothing changed.
        """
        ...

    async def close(self) -> None:
        """Release any resources held by the backend."""
        ...
