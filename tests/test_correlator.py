"""Tests for inbound reply correlation."""

import pytest

from conftest import RecordingStore, run
from schemas.email import InboundEmail
from services.response_correlator import (
    ResponseCorrelator,
    extract_rfp_id,
    find_rfp_reference,
)

RFP_ID = "5f1d9c3b2a1e4f6789abc123"


def make_rfp(status="sent"):
    return {"id": RFP_ID, "title": "Laptops", "status": status, "responses": []}


class TestExtractRfpId:

    @pytest.mark.parametrize("text", [
        f"Re: RFP: {RFP_ID}",
        f"RFP {RFP_ID}",
        f"RFP#{RFP_ID}",
        f"New RFP: Laptops [RFP:{RFP_ID}]",
        f"rfp-{RFP_ID}",
        f"(RFP ({RFP_ID}) reply",
    ])
    def test_accepted_separators(self, text):
        assert extract_rfp_id(text) == RFP_ID

    def test_case_insensitive_and_lowercased(self):
        assert extract_rfp_id(f"re: Rfp: {RFP_ID.upper()}") == RFP_ID

    def test_no_token(self):
        assert extract_rfp_id("Thanks for reaching out") is None
        assert extract_rfp_id("") is None
        assert extract_rfp_id(None) is None

    def test_id_must_not_continue_as_hex(self):
        assert extract_rfp_id(f"RFP: {RFP_ID}a") is None

    def test_too_short_id(self):
        assert extract_rfp_id("RFP: 5f1d9c3b2a1e") is None

    def test_id_without_rfp_token_is_ignored(self):
        assert extract_rfp_id(f"Order {RFP_ID}") is None

    def test_first_match_wins(self):
        other = "aaaaaaaaaaaaaaaaaaaaaaaa"
        assert extract_rfp_id(f"RFP {RFP_ID} and RFP {other}") == RFP_ID


class TestFindRfpReference:

    def test_subject_takes_priority(self):
        other = "bbbbbbbbbbbbbbbbbbbbbbbb"
        assert find_rfp_reference(f"RFP: {RFP_ID}", f"RFP: {other}") == RFP_ID

    def test_falls_back_to_body(self):
        assert find_rfp_reference("Our quote", f"Regarding RFP {RFP_ID}") == RFP_ID

    def test_neither(self):
        assert find_rfp_reference("Hello", "World") is None


class TestResponseCorrelator:

    def test_sent_rfp_moves_to_in_review(self):
        store = RecordingStore([make_rfp("sent")])
        email = InboundEmail(**{"from": "v@x.com", "subject": f"Re: RFP: {RFP_ID}", "text": "We accept"})

        updated = run(ResponseCorrelator(store).process(email))

        assert updated["status"] == "in_review"
        assert len(updated["responses"]) == 1
        assert updated["responses"][0]["vendor_email"] == "v@x.com"
        assert updated["responses"][0]["content"] == "We accept"

    def test_later_status_is_not_changed(self):
        store = RecordingStore([make_rfp("in_review")])
        email = InboundEmail(**{"from": "v@x.com", "subject": f"Re: RFP: {RFP_ID}", "text": "We accept"})

        updated = run(ResponseCorrelator(store).process(email))

        assert updated["status"] == "in_review"
        assert len(updated["responses"]) == 1

    @pytest.mark.parametrize("status", ["draft", "evaluating", "awarded", "cancelled"])
    def test_other_statuses_untouched(self, status):
        store = RecordingStore([make_rfp(status)])
        email = InboundEmail(subject=f"RFP {RFP_ID}", text="Quote attached")

        updated = run(ResponseCorrelator(store).process(email))

        assert updated["status"] == status

    def test_no_reference_makes_no_store_call(self):
        store = RecordingStore([make_rfp()])
        email = InboundEmail(**{"from": "v@x.com", "subject": "Hello", "text": "Any news?"})

        assert run(ResponseCorrelator(store).process(email)) is None
        assert store.get_calls == []
        assert store.append_calls == []

    def test_malformed_reference_makes_no_store_call(self, monkeypatch):
        monkeypatch.setattr(
            "services.response_correlator.find_rfp_reference", lambda subject, text: "RFP-12345"
        )
        store = RecordingStore([make_rfp()])
        email = InboundEmail(subject="RFP-12345", text="Quote")

        assert run(ResponseCorrelator(store).process(email)) is None
        assert store.get_calls == []
        assert store.append_calls == []

    def test_unknown_rfp_is_not_mutated(self):
        store = RecordingStore([make_rfp()])
        email = InboundEmail(subject="RFP: cccccccccccccccccccccccc", text="Quote")

        assert run(ResponseCorrelator(store).process(email)) is None
        assert store.get_calls == ["cccccccccccccccccccccccc"]
        assert store.append_calls == []

    def test_duplicate_delivery_records_two_responses(self):
        store = RecordingStore([make_rfp("sent")])
        email = InboundEmail(**{"from": "v@x.com", "subject": f"RFP {RFP_ID}", "text": "Offer"})
        correlator = ResponseCorrelator(store)

        run(correlator.process(email))
        updated = run(correlator.process(email))

        assert len(updated["responses"]) == 2
        assert updated["status"] == "in_review"

    def test_transition_requested_is_sent_to_in_review(self):
        store = RecordingStore([make_rfp("sent")])
        run(ResponseCorrelator(store).process(InboundEmail(subject=f"RFP {RFP_ID}")))

        assert store.append_calls[0][2] == ("sent", "in_review")

    def test_attachments_are_recorded(self):
        store = RecordingStore([make_rfp()])
        email = InboundEmail(
            subject=f"RFP {RFP_ID}",
            attachments=[{"filename": "quote.pdf", "content_type": "application/pdf", "size": 10}]
        )

        updated = run(ResponseCorrelator(store).process(email))

        assert updated["responses"][0]["attachments"][0]["filename"] == "quote.pdf"

    def test_store_errors_propagate(self):
        store = RecordingStore([make_rfp()], fail_on_append=True)
        email = InboundEmail(subject=f"RFP {RFP_ID}")

        with pytest.raises(RuntimeError):
            run(ResponseCorrelator(store).process(email))


class TestCorrelatorWithDatabase:

    def test_reply_updates_stored_rfp(self, store, rfp_record):
        run(store.update_rfp_status(rfp_record["id"], "sent"))
        email = InboundEmail(**{
            "from": "v@x.com",
            "subject": f"Re: New RFP: Office laptops [RFP:{rfp_record['id']}]",
            "text": "Our offer is 45,000 USD",
        })

        run(ResponseCorrelator(store).process(email))
        stored = run(store.get_rfp(rfp_record["id"]))

        assert stored["status"] == "in_review"
        assert stored["responses"][0]["vendor_email"] == "v@x.com"
        events = [entry["event"] for entry in stored["timeline"]]
        assert events == ["created", "status_update", "status_update"]
