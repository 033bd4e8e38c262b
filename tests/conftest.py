"""Shared test fixtures for the RFP Manager test suite."""

import asyncio
import os
from email.message import EmailMessage

# Must be set before config.settings is imported
os.environ["LOG_TO_FILE"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["EMAIL_USER"] = ""
os.environ["EMAIL_PASSWORD"] = ""
os.environ["EMAIL_POLLING_ENABLED"] = "false"
os.environ["LLM_PROVIDER"] = "openai"
os.environ["OPENAI_API_KEY"] = ""
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ["GOOGLE_API_KEY"] = ""
os.environ["API_ENV"] = "test"

import pytest
from fastapi.testclient import TestClient

from config.settings import settings
from database.connection import init_db, close_db, get_db_context
from database.models import User
from api.auth.jwt import create_access_token
from api.auth.password import hash_password
from api.middleware.rate_limit import limiter


limiter.enabled = False


# ============================================================================
# Database
# ============================================================================

@pytest.fixture
def db(tmp_path):
    """Fresh SQLite database per test."""
    asyncio.run(close_db())
    settings.database_url = f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    asyncio.run(init_db())
    yield settings.database_url
    asyncio.run(close_db())


@pytest.fixture
def store(db):
    from services.rfp_store import RFPStore
    return RFPStore()


def run(coro):
    """Run a coroutine from a synchronous test."""
    return asyncio.run(coro)


async def _create_user(name: str, email: str, role: str = "user", is_active: bool = True) -> str:
    async with get_db_context() as session:
        user = User(
            name=name,
            email=email,
            password_hash=hash_password("secret123"),
            role=role,
            is_active=is_active
        )
        session.add(user)
        await session.flush()
        return user.id


def auth_headers(user_id: str, role: str) -> dict:
    token = create_access_token({"sub": user_id, "role": role})
    return {"Authorization": f"Bearer {token}"}


# ============================================================================
# API client
# ============================================================================

@pytest.fixture
def app(db):
    from api.main import app as fastapi_app
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def user_headers(db):
    user_id = run(_create_user("Regular User", "user@example.com"))
    return auth_headers(user_id, "user")


@pytest.fixture
def admin_headers(db):
    admin_id = run(_create_user("Admin", "admin@example.com", role="admin"))
    return auth_headers(admin_id, "admin")


@pytest.fixture
def vendor_record(store):
    return run(store.create_vendor({
        "name": "Acme Supplies",
        "email": "sales@acme-supplies.com",
        "company": "Acme Corp",
        "expertise": ["IT"],
    }))


@pytest.fixture
def rfp_record(store):
    return run(store.create_rfp({
        "title": "Office laptops",
        "description": "20 laptops with 16GB RAM",
        "budget_amount": 50000,
        "requirements": [{"description": "16GB RAM", "priority": "high"}],
    }, created_by="000000000000000000000001"))


# ============================================================================
# Fakes
# ============================================================================

class FakeLLM:
    """Completion client returning canned replies in order."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    def call(self, messages):
        self.calls.append(messages)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeSMTP:
    """Stands in for a connected smtplib.SMTP."""

    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []
        self.quit_called = False

    def send_message(self, message):
        if self.fail:
            import smtplib
            raise smtplib.SMTPRecipientsRefused({message["To"]: (550, b"no such user")})
        self.sent.append(message)

    def quit(self):
        self.quit_called = True


class FakeMailbox:
    """In-memory IMAP mailbox keyed by UID."""

    def __init__(self, messages=None, fail_on_connect=False):
        self.messages = dict(messages or {})
        self.seen = set()
        self.fetched = []
        self.searches = []
        self.connects = 0
        self.closed = 0
        self.fail_on_connect = fail_on_connect
        self.new_mail = False
        self.noops = 0
        self.noop_error = None

    def connect(self):
        from services.mailbox import MailboxError
        self.connects += 1
        if self.fail_on_connect:
            raise MailboxError("connection refused")

    def close(self):
        self.closed += 1

    def deliver(self, uid, raw):
        """Add a message and announce it the way a server answers NOOP."""
        self.messages[uid] = raw
        self.new_mail = True

    def has_new_mail(self):
        self.noops += 1
        if self.noop_error is not None:
            error, self.noop_error = self.noop_error, None
            raise error
        announced, self.new_mail = self.new_mail, False
        return announced

    def search_unseen_since(self, since):
        self.searches.append(since)
        return [uid for uid in self.messages if uid not in self.seen]

    def fetch(self, uid):
        self.fetched.append(uid)
        return self.messages[uid]

    def mark_seen(self, uid):
        self.seen.add(uid)


class RecordingStore:
    """Store double for the correlator that records every call."""

    def __init__(self, rfps=None, fail_on_append=False):
        self.rfps = {rfp["id"]: dict(rfp) for rfp in rfps or []}
        self.get_calls = []
        self.append_calls = []
        self.fail_on_append = fail_on_append

    async def get_rfp(self, rfp_id):
        self.get_calls.append(rfp_id)
        return self.rfps.get(rfp_id)

    async def append_rfp_response(self, rfp_id, response, status_transition=None):
        self.append_calls.append((rfp_id, response, status_transition))
        if self.fail_on_append:
            raise RuntimeError("database unavailable")
        rfp = self.rfps.get(rfp_id)
        if rfp is None:
            return None
        rfp["responses"] = [*rfp.get("responses", []), response]
        if status_transition and rfp["status"] == status_transition[0]:
            rfp["status"] = status_transition[1]
        return rfp


def make_raw_email(
    subject: str,
    body: str,
    sender: str = "Vendor <v@x.com>",
    attachment: bytes = None
) -> bytes:
    message = EmailMessage()
    message["From"] = sender
    message["To"] = "rfp@example.com"
    message["Subject"] = subject
    message["Date"] = "Mon, 05 Feb 2024 10:00:00 +0000"
    message["Message-ID"] = "<reply-1@x.com>"
    message.set_content(body)
    if attachment is not None:
        message.add_attachment(attachment, maintype="application", subtype="pdf", filename="quote.pdf")
    return message.as_bytes()
