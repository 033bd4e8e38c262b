"""Tests for the mailbox endpoints."""

from datetime import date

from config.settings import Settings
from conftest import FakeMailbox, make_raw_email, run
from services.response_correlator import ResponseCorrelator
from workers.email_poller import MailboxPoller


def install_poller(client, store, mailbox):
    poller = MailboxPoller(
        ResponseCorrelator(store),
        mailbox_factory=lambda: mailbox,
        config=Settings(email_reconnect_delay=0, log_to_file=False),
        today=lambda: date(2024, 2, 5)
    )
    client.app.state.email_poller = poller
    return poller


class TestEmailStatus:

    def test_admin_sees_status(self, client, admin_headers):
        response = client.get("/api/email/status", headers=admin_headers)

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["configured"] is False
        assert data["poller"] is None

    def test_user_forbidden(self, client, user_headers):
        assert client.get("/api/email/status", headers=user_headers).status_code == 403

    def test_status_reports_poller(self, client, admin_headers, store):
        install_poller(client, store, FakeMailbox())

        data = client.get("/api/email/status", headers=admin_headers).json()["data"]

        assert data["poller"]["state"] == "idle"


class TestEmailCheck:

    def test_not_configured(self, client, admin_headers):
        response = client.post("/api/email/check", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Email is not configured"

    def test_inline_check_correlates_reply(self, client, admin_headers, store, rfp_record):
        run(store.update_rfp_status(rfp_record["id"], "sent"))
        mailbox = FakeMailbox({
            "7": make_raw_email(f"Re: Office laptops [RFP:{rfp_record['id']}]", "Our quote is 48,000"),
        })
        install_poller(client, store, mailbox)

        response = client.post("/api/email/check", headers=admin_headers)

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["triggered"] is True
        assert data["summary"] == {"found": 1, "processed": 1, "matched": 1, "failed": 0}
        assert mailbox.seen == {"7"}

        rfp = run(store.get_rfp(rfp_record["id"]))
        assert rfp["status"] == "in_review"
        assert rfp["responses"][0]["vendor_email"] == "v@x.com"

    def test_mailbox_unavailable(self, client, admin_headers, store):
        install_poller(client, store, FakeMailbox(fail_on_connect=True))

        response = client.post("/api/email/check", headers=admin_headers)

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "MAILBOX_ERROR"
