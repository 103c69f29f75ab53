"""
The watch loop.

Polls the WHOIS provider at a fixed interval until the domain becomes
available, a lookup fails or a shutdown is requested, and returns how the
watch ended. Nothing here exits the process; the CLI maps the outcome to an
exit code.
"""

import asyncio
from enum import Enum
from typing import Awaitable, Callable

from .config import WatchConfig
from .console import StatusReporter
from .notifier import send_availability_notice
from .whois_client import LookupResult, LookupStatus, check_availability

LookupFn = Callable[[str, str], Awaitable[LookupResult]]
NotifyFn = Callable[[WatchConfig, StatusReporter], bool]


class WatchOutcome(Enum):
    """How a watch terminated."""

    AVAILABLE = "available"  # notification attempted
    LOOKUP_FAILED = "lookup_failed"
    SHUTDOWN = "shutdown"


_EXIT_CODES = {
    WatchOutcome.AVAILABLE: 0,
    WatchOutcome.LOOKUP_FAILED: 1,
    WatchOutcome.SHUTDOWN: 0,
}


def exit_code(outcome: WatchOutcome) -> int:
    """Process exit status for a terminal outcome."""
    return _EXIT_CODES[outcome]


async def wait_for_shutdown(shutdown: asyncio.Event, interval: float) -> bool:
    """
    Wait until either the interval elapses or shutdown is set.

    Returns:
        True if shutdown was requested, False if the interval elapsed
    """
    if shutdown.is_set():
        return True
    try:
        await asyncio.wait_for(shutdown.wait(), timeout=interval)
    except asyncio.TimeoutError:
        return False
    return True


async def watch_domain(
    config: WatchConfig,
    shutdown: asyncio.Event,
    *,
    lookup: LookupFn | None = None,
    notify: NotifyFn | None = None,
    reporter: StatusReporter | None = None,
) -> WatchOutcome:
    """
    Run the watch for config.domain_name until it reaches a terminal state.

    Args:
        config: Watch settings (never modified)
        shutdown: Set to stop the watch. Only checked between lookups; an
                  in-flight lookup or notification always completes.
        lookup: Availability check, defaults to whois_client.check_availability
        notify: Blocking notifier run in a worker thread, defaults to
                notifier.send_availability_notice
        reporter: Status output, defaults to a console-only StatusReporter

    Returns:
        WatchOutcome.AVAILABLE after the notification was attempted,
        WatchOutcome.LOOKUP_FAILED after the first failed lookup, or
        WatchOutcome.SHUTDOWN if shutdown was set while waiting.
    """
    lookup = lookup or check_availability
    notify = notify or send_availability_notice
    reporter = reporter or StatusReporter()
    domain = config.domain_name

    while True:
        result = await lookup(domain, config.api_key)

        if result.status == LookupStatus.AVAILABLE:
            # Delivery failures are reported by the notifier and don't change the outcome
            await asyncio.to_thread(notify, config, reporter)

            short_message = f"Domain {domain} is available!"
            reporter.success(
                short_message,
                "Notification sent. Exiting.",
                log=f"{short_message} Notification sent. Exiting.",
            )
            return WatchOutcome.AVAILABLE

        if result.status == LookupStatus.ERROR:
            error_message = f"Quitting with error: {result.describe()}"
            reporter.error("Error", error_message, log=error_message)
            return WatchOutcome.LOOKUP_FAILED

        long_message = f"Domain {domain} is still not available. Keep lurking."
        reporter.info("Registered", long_message, log=long_message)

        if await wait_for_shutdown(shutdown, config.interval):
            return WatchOutcome.SHUTDOWN
