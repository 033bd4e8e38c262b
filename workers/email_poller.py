"""
Mailbox Poller

Background task that reads unread vendor replies from the IMAP inbox and
hands each one to the response correlator.

One pass:
1. Search UNSEEN SINCE <today>
2. Fetch up to email_max_per_check messages without setting \\Seen
3. Parse and correlate each message
4. Mark a message \\Seen only once it was handled; failures stay unread

Passes run every email_process_interval seconds, on trigger(), and as soon
as a NOOP on the open connection reports new mail (checked every
email_noop_interval seconds while listening).
"""

import asyncio
import logging
from datetime import date, datetime, timezone
from enum import Enum
from typing import Callable, Optional

from config.settings import settings, Settings
from services.mailbox import MailboxClient, parse_message
from services.response_correlator import ResponseCorrelator

logger = logging.getLogger("rfp_manager.workers.email_poller")


class PollerState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    LISTENING = "listening"
    FETCHING = "fetching"
    ERROR = "error"
    STOPPED = "stopped"


class MailboxPoller:
    """
    Owns one mailbox connection and an in-flight guard.

    Args:
        correlator: Receives every parsed message
        mailbox_factory: Builds an unconnected MailboxClient-like object
        config: Interval, batch size and reconnect delay
        today: Returns the date used for the SINCE filter
    """

    def __init__(
        self,
        correlator: ResponseCorrelator,
        mailbox_factory: Optional[Callable[[], MailboxClient]] = None,
        config: Optional[Settings] = None,
        today: Callable[[], date] = date.today
    ):
        self.correlator = correlator
        self.config = config or settings
        self._mailbox_factory = mailbox_factory or (lambda: MailboxClient(self.config))
        self._today = today

        self._mailbox: Optional[MailboxClient] = None
        self._lock = asyncio.Lock()
        self._in_pass = False
        self._wake = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._stopping = False

        self.state = PollerState.IDLE
        self.last_check_at: Optional[datetime] = None
        self.last_error: Optional[str] = None
        self.processed_count = 0
        self.matched_count = 0
        self.failed_count = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def busy(self) -> bool:
        """Whether a pass is in flight (NOOP checks do not count)."""
        return self._in_pass

    def status(self) -> dict:
        return {
            "state": self.state.value,
            "running": self.running,
            "busy": self.busy,
            "last_check_at": self.last_check_at.isoformat() if self.last_check_at else None,
            "last_error": self.last_error,
            "processed": self.processed_count,
            "matched": self.matched_count,
            "failed": self.failed_count,
            "interval_seconds": self.config.email_process_interval,
        }

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Start the polling loop as a background task."""
        if self.running:
            return
        self._stopping = False
        self._wake.clear()
        self._task = asyncio.create_task(self._run(), name="mailbox-poller")
        logger.info(
            f"Mailbox poller started (every {self.config.email_process_interval}s, "
            f"max {self.config.email_max_per_check} per check)"
        )

    async def stop(self) -> None:
        """Stop after the pass in flight (if any) and close the connection."""
        self._stopping = True
        self._wake.set()
        if self._task is not None:
            await self._task
            self._task = None
        await self._disconnect()
        self.state = PollerState.STOPPED
        logger.info("Mailbox poller stopped")

    def trigger(self) -> bool:
        """
        Ask the loop for an immediate pass.

        Returns False when a pass is already in flight; the request is
        dropped rather than queued.
        """
        if self.busy:
            logger.info("Mail check already in progress, trigger dropped")
            return False
        self._wake.set()
        return True

    async def _run(self) -> None:
        while not self._stopping:
            try:
                await self.check_now()
            except Exception:
                # check_now already logged and disconnected
                await self._wait(self.config.email_reconnect_delay)
                continue
            await self._listen(self.config.email_process_interval)

    async def _wait(self, seconds: float) -> bool:
        """Sleep up to `seconds`; True when woken by trigger() or stop()."""
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=seconds)
            woken = True
        except asyncio.TimeoutError:
            woken = False
        self._wake.clear()
        return woken

    async def _listen(self, seconds: float) -> None:
        """
        Wait for the next pass: the interval elapsing, a trigger, or the
        server reporting new mail on the open connection.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + seconds
        while not self._stopping:
            remaining = deadline - loop.time()
            if remaining <= 0:
                return
            if await self._wait(min(self.config.email_noop_interval, remaining)):
                return
            if await self._new_mail():
                logger.info("Mailbox reported new mail")
                return

    async def _new_mail(self) -> bool:
        if self._mailbox is None or self._lock.locked():
            return False
        async with self._lock:
            try:
                return await asyncio.to_thread(self._mailbox.has_new_mail)
            except Exception as e:
                # The next pass reconnects and reports the failure
                logger.warning(f"New-mail check failed: {e}")
                await self._disconnect()
                return True

    # =========================================================================
    # Passes
    # =========================================================================

    async def check_now(self) -> Optional[dict]:
        """
        Run one pass unless one is already running.

        Returns:
            Pass summary, or None when the call was dropped

        Raises:
            Connection-level errors, after moving to the error state
        """
        if self._lock.locked():
            logger.info("Mail check already in progress, skipping")
            return None

        async with self._lock:
            self._in_pass = True
            try:
                return await self._poll_once()
            except Exception as e:
                self.state = PollerState.ERROR
                self.last_error = str(e)
                logger.error(f"Mailbox error: {e}")
                await self._disconnect()
                raise
            finally:
                self._in_pass = False

    async def _connect(self) -> MailboxClient:
        if self._mailbox is None:
            self.state = PollerState.CONNECTING
            mailbox = self._mailbox_factory()
            await asyncio.to_thread(mailbox.connect)
            self._mailbox = mailbox
            self.state = PollerState.LISTENING
        return self._mailbox

    async def _disconnect(self) -> None:
        mailbox, self._mailbox = self._mailbox, None
        if mailbox is not None:
            await asyncio.to_thread(mailbox.close)

    async def _poll_once(self) -> dict:
        mailbox = await self._connect()
        self.state = PollerState.FETCHING

        uids = await asyncio.to_thread(mailbox.search_unseen_since, self._today())
        batch = uids[:self.config.email_max_per_check]
        summary = {"found": len(uids), "processed": 0, "matched": 0, "failed": 0}
        if uids:
            logger.info(f"Found {len(uids)} unread message(s), processing {len(batch)}")

        for uid in batch:
            raw = await asyncio.to_thread(mailbox.fetch, uid)
            try:
                email = parse_message(raw)
                updated = await self.correlator.process(email)
            except Exception as e:
                # Left unread so the next pass offers it again
                logger.error(f"Failed to process message {uid}: {e}")
                summary["failed"] += 1
                continue

            await asyncio.to_thread(mailbox.mark_seen, uid)
            summary["processed"] += 1
            if updated is not None:
                summary["matched"] += 1

        self.processed_count += summary["processed"]
        self.matched_count += summary["matched"]
        self.failed_count += summary["failed"]
        self.last_check_at = datetime.now(timezone.utc)
        self.last_error = None
        self.state = PollerState.LISTENING
        return summary


def create_poller(config: Optional[Settings] = None) -> MailboxPoller:
    """Poller wired to the database-backed store and a real IMAP client."""
    from services.rfp_store import get_store

    return MailboxPoller(ResponseCorrelator(get_store()), config=config)
