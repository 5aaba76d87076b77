"""Reminder Watcher for Wedding Event Planner.

Keeps a reconciled copy of the event list and logs reminders as they come due.
It never sends anything; delivery is out of scope, the log line is the signal.

The watcher:
- Refreshes its local event list from the API every WORKER_CHECK_INTERVAL seconds
- Recomputes reminders from that list (nothing is persisted)
- Logs each reminder falling due within WORKER_LOOKAHEAD_MINUTES, once
- Keeps running through network errors; the next tick simply retries
"""

import asyncio
import signal
import sys
from datetime import datetime, timedelta, timezone
from typing import List, Set, Tuple

from config import settings
from errors import StoreError
from logger_config import setup_logger
from reconciler import EventListReconciler
from schemas import ReminderInstance
from store_client import EventStoreClient

logger = setup_logger(__name__, 'watcher.log')

# Global flag for graceful shutdown
shutdown_requested = False

ReminderKey = Tuple[str, str, datetime]


def signal_handler(signum, frame):
    """Handle shutdown signals gracefully."""
    global shutdown_requested
    logger.info(f"Received signal {signum}, initiating graceful shutdown...")
    shutdown_requested = True


def reminders_to_announce(
    reminders: List[ReminderInstance],
    now: datetime,
    lookahead: timedelta,
    announced: Set[ReminderKey]
) -> List[ReminderInstance]:
    """Reminders due within the lookahead window that were not announced yet.

    Keys include notify_at, so moving an event re-arms its reminders. Keys
    whose notify_at is behind `now` are pruned; those reminders never come back.
    """
    announced.difference_update([key for key in announced if key[2] <= now])
    horizon = now + lookahead
    fresh = []
    for reminder in reminders:
        if reminder.notify_at > horizon:
            break  # sorted by notify_at
        key = (reminder.event_id, reminder.offset_kind.value, reminder.notify_at)
        if key not in announced:
            announced.add(key)
            fresh.append(reminder)
    return fresh


async def check_reminders(reconciler: EventListReconciler, announced: Set[ReminderKey]) -> int:
    """Refresh the list and log reminders coming due. Returns how many were logged."""
    try:
        await reconciler.refresh()
    except StoreError as e:
        logger.warning(f"Could not refresh events ({str(e)}), using last known list")

    now = datetime.now(timezone.utc)
    reminders = reconciler.due_reminders(now, settings.TIMEZONE)
    fresh = reminders_to_announce(
        reminders, now, timedelta(minutes=settings.WORKER_LOOKAHEAD_MINUTES), announced
    )

    for reminder in fresh:
        event = reconciler.get(reminder.event_id)
        label = event.client_label if event else reminder.event_id
        logger.info(
            f"Reminder due at {reminder.notify_at.isoformat()}: {label} "
            f"({reminder.offset_kind.value} before {event.date.isoformat() if event else 'event'})"
        )

    if not fresh:
        logger.debug(f"No reminders due in the next {settings.WORKER_LOOKAHEAD_MINUTES} minutes")
    return len(fresh)


async def watcher_loop():
    """Main watcher loop that runs until shutdown is requested."""
    logger.info("Reminder watcher started")
    logger.info(f"Watcher enabled: {settings.WORKER_ENABLED}")
    logger.info(f"Check interval: {settings.WORKER_CHECK_INTERVAL} seconds")
    logger.info(f"Event API URL: {settings.EVENT_API_URL}")

    if not settings.WORKER_ENABLED:
        logger.warning("Watcher is disabled in configuration. Exiting.")
        return

    announced: Set[ReminderKey] = set()
    async with EventStoreClient(settings.EVENT_API_URL) as store:
        reconciler = EventListReconciler(store)
        iteration = 0
        while not shutdown_requested:
            iteration += 1
            logger.debug(f"Watcher iteration {iteration} started")

            await check_reminders(reconciler, announced)

            # Break sleep into 1-second intervals to allow quick shutdown
            for _ in range(settings.WORKER_CHECK_INTERVAL):
                if shutdown_requested:
                    break
                await asyncio.sleep(1)

    logger.info("Reminder watcher shutting down gracefully")


def main():
    """Main entry point for the reminder watcher."""
    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    logger.info("=" * 60)
    logger.info("Wedding Event Planner - Reminder Watcher")
    logger.info("=" * 60)

    try:
        asyncio.run(watcher_loop())
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    except Exception as e:
        logger.error(f"Fatal error in reminder watcher: {str(e)}", exc_info=True)
        sys.exit(1)

    logger.info("Reminder watcher stopped")
    sys.exit(0)


if __name__ == "__main__":
    main()
