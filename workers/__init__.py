"""
Workers Package

Background mailbox polling for inbound vendor replies.
"""

from workers.email_poller import MailboxPoller, PollerState, create_poller

__all__ = [
    "MailboxPoller",
    "PollerState",
    "create_poller",
]
