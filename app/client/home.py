"""Status view: renders the backend health as a single line.

Run with the ``stackpulse-status`` console script.
"""

from __future__ import annotations

import asyncio

from app.client.health import FetchText, HealthCheck, HealthStatus
from app.config import configure_logging, get_settings


def render_status(status: HealthStatus) -> str:
    return f"Backend status: {status}"


async def show_status(fetch_text: FetchText | None = None) -> str:
    """Mount a health check, wait for it to settle, and render the result."""
    check = HealthCheck(fetch_text)
    check.mount()
    try:
        await check.wait()
    finally:
        check.unmount()
    return render_status(check.status)


def main() -> None:
    configure_logging(get_settings().log_level)
    print(asyncio.run(show_status()))


if __name__ == "__main__":
    main()
