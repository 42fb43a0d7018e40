"""Client-side health-check state holder.

``HealthCheck`` mirrors a UI hook: it fires one request when mounted and
exposes ``status`` to the rendering layer::

    loading ──"ok"──────────▶ ok
       │  ──any other body──▶ unknown
       └──request failed────▶ error

Every request carries a sequence number; only the response to the most
recently issued request is applied.  Unmounting cancels the in-flight
request and suppresses any late result.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Literal

from app.client.api import api_fetch_text

logger = logging.getLogger(__name__)

HealthStatus = Literal["loading", "ok", "error", "unknown"]

FetchText = Callable[[str], Awaitable[str]]


class HealthCheck:
    """Tracks backend health for one mounted view."""

    def __init__(
        self,
        fetch_text: FetchText | None = None,
        *,
        path: str = "/health",
        on_change: Callable[[HealthStatus], None] | None = None,
    ) -> None:
        self.path = path
        self.status: HealthStatus = "loading"
        self._fetch_text = fetch_text or api_fetch_text
        self._on_change = on_change
        self._mounted = False
        self._sequence = 0
        self._task: asyncio.Task[None] | None = None

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def sequence(self) -> int:
        """Number of requests issued so far."""
        return self._sequence

    def mount(self) -> None:
        """Start the initial request.  Must be called from a running loop."""
        if self._mounted:
            return
        self._mounted = True
        self.status = "loading"
        self.refresh()

    def unmount(self) -> None:
        """Stop tracking: cancel the in-flight request and drop late results."""
        self._mounted = False
        self._cancel_pending()

    def refresh(self) -> None:
        """Issue a new request, superseding any still in flight."""
        if not self._mounted:
            raise RuntimeError("HealthCheck is not mounted")

        self._cancel_pending()
        self._sequence += 1
        self._task = asyncio.get_running_loop().create_task(self._check(self._sequence))

    async def wait(self) -> None:
        """Wait for the latest request to settle (or be cancelled)."""
        if self._task is not None:
            await asyncio.wait({self._task})

    def _cancel_pending(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def _check(self, sequence: int) -> None:
        try:
            body = await self._fetch_text(self.path)
        except Exception:
            logger.debug("Health check request failed", exc_info=True)
            self._apply(sequence, "error")
            return

        self._apply(sequence, "ok" if body == "ok" else "unknown")

    def _apply(self, sequence: int, status: HealthStatus) -> None:
        if not self._mounted or sequence != self._sequence:
            logger.debug(
                "Discarding stale health result",
                extra={"sequence": sequence, "latest": self._sequence},
            )
            return

        self.status = status
        if self._on_change is not None:
            self._on_change(status)
