"""
Unit tests for message listing.

The Gmail client is mocked; these tests cover query construction,
concurrent detail fetching, partial failures and ordering.
"""
import pytest
from unittest.mock import AsyncMock, MagicMock

from app.integrations.gmail_client import GmailClient
from app.services.message_service import (
    EXCLUDE_PROMOTIONS_QUERY,
    METADATA_HEADERS,
    MessageAggregator,
    build_list_params,
    clamp_max_results,
)
from app.utils.errors import ProviderApiError
from conftest import NOW_MS, build_gmail_message


def _mock_client(identifiers, messages=None, failures=(), next_page_token=None):
    """GmailClient double: list returns identifiers; get_message fails for ids in failures."""
    messages = messages or {i: build_gmail_message(i) for i in identifiers}
    client = MagicMock(spec=GmailClient)
    listing = {"messages": [{"id": i, "threadId": f"t-{i}"} for i in identifiers]}
    if next_page_token:
        listing["nextPageToken"] = next_page_token
    client.list_messages = AsyncMock(return_value=listing)

    async def get_message(message_id, params=None):
        if message_id in failures:
            raise ProviderApiError("Requested entity was not found.", 404)
        return messages[message_id]

    client.get_message = AsyncMock(side_effect=get_message)
    return client


class TestClampMaxResults:
    """Test the page size limits."""

    @pytest.mark.parametrize("value, expected", [
        (None, 50),
        (0, 50),
        ("0", 50),
        ("abc", 50),
        ("inf", 50),
        (-5, 1),
        (1, 1),
        ("20", 20),
        ("12.7", 12),
        (100, 100),
        (500, 100),
    ])
    def test_clamp(self, value, expected):
        assert clamp_max_results(value) == expected


class TestBuildListParams:
    """Test the messages.list query."""

    def test_default_is_unread_inbox_without_promotions(self):
        params = build_list_params(None, None, None, None)

        assert params == {
            "maxResults": 50,
            "labelIds": ["INBOX", "UNREAD"],
            "q": EXCLUDE_PROMOTIONS_QUERY,
        }

    def test_read_mail_included_when_unread_only_is_false(self):
        params = build_list_params(None, 20, None, False)

        assert params["labelIds"] == ["INBOX"]
        assert params["q"] == EXCLUDE_PROMOTIONS_QUERY

    def test_explicit_label_filters_by_that_label_only(self):
        params = build_list_params("Label_7", 20, None, True)

        assert params == {"maxResults": 20, "labelIds": ["Label_7"]}

    def test_page_token_is_passed_through(self):
        params = build_list_params(None, 20, "page-2", None)
        assert params["pageToken"] == "page-2"


class TestMessageAggregator:
    """Test listing pages of messages."""

    @pytest.mark.asyncio
    async def test_empty_listing(self):
        client = _mock_client([], next_page_token="next")

        page = await MessageAggregator(client).list_messages()

        assert page.emails == []
        assert page.next_page_token == "next"
        client.get_message.assert_not_called()

    @pytest.mark.asyncio
    async def test_detail_fetch_uses_full_format(self):
        client = _mock_client(["m1"])

        await MessageAggregator(client).list_messages()

        client.get_message.assert_awaited_once_with(
            "m1", {"format": "full", "metadataHeaders": METADATA_HEADERS}
        )

    @pytest.mark.asyncio
    async def test_partial_failures_are_dropped(self):
        identifiers = ["m1", "m2", "m3", "m4", "m5"]
        messages = {
            i: build_gmail_message(i, internal_date=NOW_MS + offset)
            for offset, i in enumerate(identifiers)
        }
        client = _mock_client(identifiers, messages, failures={"m2", "m4"})

        page = await MessageAggregator(client).list_messages()

        assert [email.id for email in page.emails] == ["m5", "m3", "m1"]
        assert client.get_message.await_count == 5

    @pytest.mark.asyncio
    async def test_unparseable_message_is_dropped(self):
        identifiers = ["m1", "m2", "m3"]
        messages = {
            i: build_gmail_message(i, internal_date=NOW_MS + offset)
            for offset, i in enumerate(identifiers)
        }
        del messages["m2"]["id"]
        client = _mock_client(identifiers, messages)

        page = await MessageAggregator(client).list_messages()

        assert [email.id for email in page.emails] == ["m3", "m1"]

    @pytest.mark.asyncio
    async def test_nothing_parseable_raises(self):
        client = _mock_client(["m1"], {"m1": {"payload": {}}})

        with pytest.raises(ProviderApiError) as exc_info:
            await MessageAggregator(client).list_messages()

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_all_failures_raise(self):
        identifiers = ["m1", "m2", "m3", "m4", "m5"]
        client = _mock_client(identifiers, failures=set(identifiers))

        with pytest.raises(ProviderApiError) as exc_info:
            await MessageAggregator(client).list_messages()

        assert exc_info.value.message == "Failed to load Gmail messages"
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_list_failure_propagates(self):
        client = _mock_client([])
        client.list_messages.side_effect = ProviderApiError("Rate limit exceeded", 429)

        with pytest.raises(ProviderApiError) as exc_info:
            await MessageAggregator(client).list_messages()

        assert exc_info.value.status == 429

    @pytest.mark.asyncio
    async def test_equal_dates_keep_list_order(self):
        identifiers = ["m1", "m2", "m3"]
        messages = {i: build_gmail_message(i, internal_date=NOW_MS) for i in identifiers}
        client = _mock_client(identifiers, messages)

        page = await MessageAggregator(client).list_messages()

        assert [email.id for email in page.emails] == identifiers

    @pytest.mark.asyncio
    async def test_pagination_tokens(self):
        client = _mock_client(["m1"], next_page_token="page-3")

        page = await MessageAggregator(client).fetch_recent(page_token="page-2", max_results="10")

        params = client.list_messages.call_args.args[0]
        assert params["pageToken"] == "page-2"
        assert params["maxResults"] == 10
        assert page.next_page_token == "page-3"

    @pytest.mark.asyncio
    async def test_fetch_by_label(self):
        client = _mock_client(["m1"])

        page = await MessageAggregator(client).fetch_by_label("STARRED")

        params = client.list_messages.call_args.args[0]
        assert params["labelIds"] == ["STARRED"]
        assert "q" not in params
        assert page.emails[0].subject == "Subject m1"
