"""
Pytest fixtures for SwipeMail backend tests.
"""
import base64

import pytest

from app.models.session import Session, SessionUser
from app.services.session_service import SessionCodec, SessionCrypto

TEST_SECRET = "test-session-secret-0123456789"
NOW_MS = 1_700_000_000_000


def encode_body(text: str) -> str:
    """Gmail style body data: url-safe base64 without padding."""
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def build_gmail_message(message_id: str, internal_date: int = NOW_MS, body: str = "Hello there", **overrides) -> dict:
    message = {
        "id": message_id,
        "threadId": f"thread-{message_id}",
        "labelIds": ["INBOX", "UNREAD"],
        "snippet": f"Snippet of {message_id}",
        "internalDate": str(internal_date),
        "payload": {
            "mimeType": "text/plain",
            "headers": [
                {"name": "From", "value": "John Doe <john@example.com>"},
                {"name": "To", "value": "me@example.com"},
                {"name": "Subject", "value": f"Subject {message_id}"},
                {"name": "Date", "value": "Wed, 5 Feb 2025 10:30:00 +0000"},
            ],
            "body": {"data": encode_body(body)},
        },
    }
    message.update(overrides)
    return message


@pytest.fixture
def codec():
    """Session codec keyed with the test secret."""
    return SessionCodec(SessionCrypto.from_secret(TEST_SECRET))


@pytest.fixture
def make_session():
    """Factory for sessions; keyword arguments override fields."""
    def _make(**overrides) -> Session:
        fields = {
            "user": SessionUser(
                id="google-user-1",
                email="test@example.com",
                name="Test User",
                picture="https://example.com/avatar.jpg",
            ),
            "scope": "openid email https://www.googleapis.com/auth/gmail.modify",
            "access_token": "mock-access-token",
            "refresh_token": "mock-refresh-token",
            "access_token_expires_at": NOW_MS + 3600 * 1000,
        }
        fields.update(overrides)
        return Session(**fields)
    return _make


@pytest.fixture
def mock_session(make_session):
    """A session whose access token is valid for another hour."""
    return make_session()


@pytest.fixture
def mock_gmail_message():
    """Create a mock Gmail API message response."""
    return build_gmail_message("msg-abc123", body="This is the email body")


@pytest.fixture
def mock_gmail_multipart_message():
    """Create a mock Gmail API multipart message."""
    return {
        "id": "msg-multi123",
        "threadId": "thread-multi789",
        "labelIds": ["INBOX"],
        "snippet": "Multipart email snippet...",
        "internalDate": "1700000000000",
        "payload": {
            "headers": [
                {"name": "From", "value": "Jane Smith <jane@example.com>"},
                {"name": "Subject", "value": "Multipart Email"},
                {"name": "Date", "value": "Wed, 5 Feb 2025 11:00:00 +0000"},
            ],
            "mimeType": "multipart/alternative",
            "body": {"size": 0},
            "parts": [
                {
                    "mimeType": "text/plain",
                    "body": {"data": encode_body("Plain text body")},
                },
                {
                    "mimeType": "text/html",
                    "body": {"data": encode_body("<p>HTML body</p>")},
                },
            ],
        },
    }
