"""Tests for the mailbox poller and message parsing."""

import asyncio
from datetime import date

import pytest

from config.settings import Settings
from conftest import FakeMailbox, RecordingStore, make_raw_email, run
from services.mailbox import MailboxClient, MailboxError, imap_date, parse_message
from services.response_correlator import ResponseCorrelator
from workers.email_poller import MailboxPoller, PollerState

RFP_ID = "5f1d9c3b2a1e4f6789abc123"


def make_poller(mailbox, store=None, **overrides):
    config = Settings(
        email_max_per_check=overrides.pop("max_per_check", 50),
        email_process_interval=overrides.pop("interval", 300),
        email_reconnect_delay=overrides.pop("reconnect_delay", 0),
        email_noop_interval=overrides.pop("noop_interval", 30),
        log_to_file=False,
    )
    store = store or RecordingStore([{"id": RFP_ID, "status": "sent", "responses": []}])
    return MailboxPoller(
        ResponseCorrelator(store),
        mailbox_factory=lambda: mailbox,
        config=config,
        today=lambda: date(2024, 2, 5)
    )


class FailingCorrelator:
    """Raises for messages whose subject contains 'boom'."""

    def __init__(self):
        self.seen_subjects = []

    async def process(self, email):
        self.seen_subjects.append(email.subject)
        if "boom" in email.subject:
            raise RuntimeError("store unavailable")
        return None


class TestParseMessage:

    def test_basic_fields(self):
        email = parse_message(make_raw_email(f"Re: RFP: {RFP_ID}", "We accept"))

        assert email.from_ == "v@x.com"
        assert email.to == ["rfp@example.com"]
        assert email.subject == f"Re: RFP: {RFP_ID}"
        assert email.text.strip() == "We accept"
        assert email.message_id == "<reply-1@x.com>"
        assert email.date.year == 2024

    def test_attachment_metadata(self):
        email = parse_message(make_raw_email("Quote", "See attached", attachment=b"%PDF-1.4 data"))

        assert len(email.attachments) == 1
        assert email.attachments[0].filename == "quote.pdf"
        assert email.attachments[0].content_type == "application/pdf"
        assert email.attachments[0].size == len(b"%PDF-1.4 data")

    def test_html_only_body_is_stripped(self):
        raw = (
            b"From: v@x.com\r\nTo: rfp@example.com\r\nSubject: Offer\r\n"
            b"Content-Type: text/html; charset=utf-8\r\n\r\n"
            b"<p>Price &amp; terms</p><br>Thanks"
        )
        email = parse_message(raw)

        assert "Price & terms" in email.text
        assert "<p>" not in email.text

    def test_imap_date_format(self):
        assert imap_date(date(2024, 2, 5)) == "05-Feb-2024"


class TestPollerPass:

    def test_matching_message_is_correlated_and_marked_seen(self):
        mailbox = FakeMailbox({"1": make_raw_email(f"Re: RFP: {RFP_ID}", "We accept")})
        store = RecordingStore([{"id": RFP_ID, "status": "sent", "responses": []}])
        poller = make_poller(mailbox, store)

        summary = run(poller.check_now())

        assert summary == {"found": 1, "processed": 1, "matched": 1, "failed": 0}
        assert mailbox.seen == {"1"}
        assert store.rfps[RFP_ID]["status"] == "in_review"
        assert mailbox.searches == [date(2024, 2, 5)]
        assert poller.state == PollerState.LISTENING

    def test_unmatched_message_is_still_marked_seen(self):
        mailbox = FakeMailbox({"1": make_raw_email("Newsletter", "Hello")})
        poller = make_poller(mailbox)

        summary = run(poller.check_now())

        assert summary["processed"] == 1
        assert summary["matched"] == 0
        assert mailbox.seen == {"1"}

    def test_failed_message_stays_unread_and_others_continue(self):
        mailbox = FakeMailbox({
            "1": make_raw_email("boom", "x"),
            "2": make_raw_email("fine", "y"),
        })
        correlator = FailingCorrelator()
        poller = MailboxPoller(
            correlator,
            mailbox_factory=lambda: mailbox,
            config=Settings(log_to_file=False),
        )

        summary = run(poller.check_now())

        assert summary["failed"] == 1
        assert summary["processed"] == 1
        assert mailbox.seen == {"2"}
        assert correlator.seen_subjects == ["boom", "fine"]

    def test_batch_is_capped(self):
        mailbox = FakeMailbox({str(i): make_raw_email(f"Msg {i}", "x") for i in range(1, 6)})
        poller = make_poller(mailbox, max_per_check=2)

        summary = run(poller.check_now())

        assert summary["found"] == 5
        assert summary["processed"] == 2
        assert mailbox.fetched == ["1", "2"]

    def test_connection_error_moves_to_error_state(self):
        mailbox = FakeMailbox(fail_on_connect=True)
        poller = make_poller(mailbox)

        with pytest.raises(MailboxError):
            run(poller.check_now())

        assert poller.state == PollerState.ERROR
        assert "connection refused" in poller.last_error

    def test_connection_is_reused_between_passes(self):
        mailbox = FakeMailbox()
        poller = make_poller(mailbox)

        async def two_passes():
            await poller.check_now()
            await poller.check_now()

        run(two_passes())

        assert mailbox.connects == 1


class TestPollerConcurrency:

    def test_overlapping_check_is_dropped(self):
        release = asyncio.Event()

        class SlowCorrelator:
            async def process(self, email):
                await release.wait()

        mailbox = FakeMailbox({"1": make_raw_email("slow", "x")})
        poller = MailboxPoller(SlowCorrelator(), mailbox_factory=lambda: mailbox,
                               config=Settings(log_to_file=False))

        async def scenario():
            first = asyncio.create_task(poller.check_now())
            while not poller.busy:
                await asyncio.sleep(0)
            second = await poller.check_now()
            triggered = poller.trigger()
            release.set()
            return await first, second, triggered

        first, second, triggered = run(scenario())

        assert first["processed"] == 1
        assert second is None
        assert triggered is False
        assert mailbox.fetched == ["1"]


class TestPollerLifecycle:

    def test_start_trigger_stop(self):
        mailbox = FakeMailbox()
        poller = make_poller(mailbox, interval=3600)

        async def scenario():
            await poller.start()
            while mailbox.connects == 0 or poller.busy:
                await asyncio.sleep(0.01)
            mailbox.messages["7"] = make_raw_email(f"RFP {RFP_ID}", "Offer")
            assert poller.trigger() is True
            while "7" not in mailbox.seen:
                await asyncio.sleep(0.01)
            running = poller.running
            await poller.stop()
            return running

        assert run(scenario()) is True
        assert poller.state == PollerState.STOPPED
        assert poller.running is False
        assert mailbox.closed == 1
        assert len(mailbox.searches) == 2

    def test_loop_reconnects_after_error(self):
        mailbox = FakeMailbox(fail_on_connect=True)
        poller = make_poller(mailbox, reconnect_delay=0)

        async def scenario():
            await poller.start()
            while mailbox.connects < 3:
                await asyncio.sleep(0.01)
            mailbox.fail_on_connect = False
            while poller.state != PollerState.LISTENING:
                await asyncio.sleep(0.01)
            await poller.stop()

        run(scenario())

        assert mailbox.connects >= 4
        assert poller.last_error is None

    def test_new_mail_wakes_loop_before_interval(self):
        mailbox = FakeMailbox()
        poller = make_poller(mailbox, interval=3600, noop_interval=0.01)

        async def scenario():
            await poller.start()
            while not mailbox.searches or poller.busy:
                await asyncio.sleep(0.01)
            mailbox.deliver("9", make_raw_email(f"RFP {RFP_ID}", "Offer"))

            async def handled():
                while "9" not in mailbox.seen:
                    await asyncio.sleep(0.01)

            await asyncio.wait_for(handled(), timeout=5)
            await poller.stop()

        run(scenario())

        assert len(mailbox.searches) == 2
        assert mailbox.noops >= 1
        assert mailbox.connects == 1

    def test_failed_new_mail_check_reconnects(self):
        mailbox = FakeMailbox()
        poller = make_poller(mailbox, interval=3600, noop_interval=0.01)

        async def scenario():
            await poller.start()
            while not mailbox.searches or poller.busy:
                await asyncio.sleep(0.01)
            mailbox.noop_error = MailboxError("connection reset")

            async def reconnected():
                while mailbox.connects < 2 or len(mailbox.searches) < 2:
                    await asyncio.sleep(0.01)

            await asyncio.wait_for(reconnected(), timeout=5)
            await poller.stop()

        run(scenario())

        assert mailbox.closed >= 1
        assert poller.last_error is None


class FakeIMAP:
    """Answers NOOP and hands out queued EXISTS counts."""

    def __init__(self, counts):
        self.counts = list(counts)

    def noop(self):
        return "OK", [None]

    def response(self, code):
        return code, [self.counts.pop(0) if self.counts else None]


class TestNewMailCheck:

    def test_reports_growth_only(self):
        client = MailboxClient(Settings(log_to_file=False))
        client._imap = FakeIMAP([None, b"3", b"5", b"4"])
        client._exists = 3

        assert [client.has_new_mail() for _ in range(5)] == [False, False, True, False, False]

    def test_requires_connection(self):
        with pytest.raises(MailboxError):
            MailboxClient(Settings(log_to_file=False)).has_new_mail()
