"""
Unit tests for Gmail Client.

Tests request construction and error mapping with a mocked transport.
"""
import json

import httpx
import pytest

from app.integrations.gmail_client import GmailClient
from app.utils.errors import AuthRequiredError, ErrorKind, ProviderApiError

BASE_URL = "https://gmail.test/gmail/v1/users/me"


def _client(handler, access_token="mock-access-token") -> GmailClient:
    return GmailClient(access_token, transport=httpx.MockTransport(handler), base_url=BASE_URL)


class TestGmailClientRequests:
    """Test what the client sends."""

    @pytest.mark.asyncio
    async def test_sends_bearer_token(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"messages": []})

        await _client(handler).call("/messages")

        assert seen[0].headers["Authorization"] == "Bearer mock-access-token"
        assert str(seen[0].url) == f"{BASE_URL}/messages"

    @pytest.mark.asyncio
    async def test_content_type_only_with_body(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={})

        client = _client(handler)
        await client.call("/labels")
        await client.call("/messages/x/modify", method="POST", json_data={"removeLabelIds": ["UNREAD"]})

        assert "content-type" not in seen[0].headers
        assert seen[1].headers["Content-Type"] == "application/json"

    @pytest.mark.asyncio
    async def test_explicit_content_type_wins(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={})

        await _client(handler).call(
            "/messages/x/modify",
            method="POST",
            json_data={"addLabelIds": ["STARRED"]},
            headers={"content-type": "application/json; charset=utf-8"},
        )

        assert seen[0].headers["Content-Type"] == "application/json; charset=utf-8"

    @pytest.mark.asyncio
    async def test_list_params_repeat_keys(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"messages": [{"id": "m1", "threadId": "t1"}]})

        result = await _client(handler).list_messages({"labelIds": ["INBOX", "UNREAD"], "maxResults": 20})

        assert seen[0].url.params.get_list("labelIds") == ["INBOX", "UNREAD"]
        assert seen[0].url.params["maxResults"] == "20"
        assert result["messages"][0]["id"] == "m1"

    @pytest.mark.asyncio
    async def test_get_message_quotes_id(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"id": "a/b"})

        await _client(handler).get_message("a/b", {"format": "full"})

        assert seen[0].url.raw_path.decode("ascii").startswith("/gmail/v1/users/me/messages/a%2Fb")
        assert seen[0].url.params["format"] == "full"

    @pytest.mark.asyncio
    async def test_list_labels(self):
        def handler(request):
            return httpx.Response(200, json={"labels": [{"id": "INBOX", "name": "INBOX", "type": "system"}]})

        labels = await _client(handler).list_labels()

        assert labels == [{"id": "INBOX", "name": "INBOX", "type": "system"}]

    @pytest.mark.asyncio
    async def test_list_labels_without_labels_key(self):
        labels = await _client(lambda request: httpx.Response(200, json={})).list_labels()
        assert labels == []

    @pytest.mark.asyncio
    async def test_modify_message_body(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"id": "m1"})

        await _client(handler).modify_message("m1", add_label_ids=[], remove_label_ids=["INBOX"])

        assert seen[0].method == "POST"
        assert seen[0].url.path.endswith("/messages/m1/modify")
        assert json.loads(seen[0].content) == {"removeLabelIds": ["INBOX"]}


class TestGmailClientResponses:
    """Test response and error handling."""

    @pytest.mark.asyncio
    async def test_empty_body_is_empty_dict(self):
        result = await _client(lambda request: httpx.Response(204)).call("/messages/x/modify", method="POST")
        assert result == {}

    @pytest.mark.asyncio
    async def test_error_status_carries_body_text(self):
        def handler(request):
            return httpx.Response(404, text="Requested entity was not found.")

        with pytest.raises(ProviderApiError) as exc_info:
            await _client(handler).get_message("missing")

        assert exc_info.value.kind == ErrorKind.PROVIDER_API
        assert exc_info.value.status == 404
        assert exc_info.value.message == "Requested entity was not found."

    @pytest.mark.asyncio
    async def test_error_without_body(self):
        with pytest.raises(ProviderApiError) as exc_info:
            await _client(lambda request: httpx.Response(500)).call("/labels")

        assert exc_info.value.message == "Gmail API error"
        assert exc_info.value.status == 500

    @pytest.mark.asyncio
    async def test_401_is_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(401, json={"error": {"code": 401}})

        with pytest.raises(ProviderApiError) as exc_info:
            await _client(handler).call("/labels")

        assert exc_info.value.status == 401
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ProviderApiError) as exc_info:
            await _client(handler).call("/labels")

        assert exc_info.value.status == 502

    @pytest.mark.asyncio
    async def test_missing_access_token(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={})

        with pytest.raises(AuthRequiredError):
            await _client(handler, access_token="").call("/labels")

        assert calls == []
