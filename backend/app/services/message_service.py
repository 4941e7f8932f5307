"""
Message listing.

One list call returns message ids, then every message is fetched in
full, concurrently. Messages that fail to fetch or parse are dropped as
long as at least one message loads. Pages are driven by the caller, who passes back
the nextPageToken it received.
"""
import asyncio
from typing import List, Optional

from app.integrations.gmail_client import GmailClient
from app.models.email import EmailMessage, MessagePage
from app.services.normalizer import normalize
from app.utils.errors import ProviderApiError
from app.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_RESULTS = 50
MAX_RESULTS_LIMIT = 100
METADATA_HEADERS = ["Subject", "From", "To", "Date"]
EXCLUDE_PROMOTIONS_QUERY = "-category:promotions"


def clamp_max_results(value) -> int:
    """Clamp to [1, 100]; missing, zero or non-numeric values become 50."""
    try:
        number = int(float(value)) if value is not None else 0
    except (TypeError, ValueError, OverflowError):
        number = 0
    if not number:
        number = DEFAULT_MAX_RESULTS
    return max(1, min(number, MAX_RESULTS_LIMIT))


def build_list_params(
    label_id: Optional[str],
    max_results,
    page_token: Optional[str],
    unread_only: Optional[bool],
) -> dict:
    """
    Build the messages.list query.

    An explicit label filters by exactly that label. Otherwise the inbox
    is listed (unread only unless unread_only is False) without the
    promotions category.
    """
    params = {"maxResults": clamp_max_results(max_results)}
    if label_id:
        params["labelIds"] = [label_id]
    else:
        if unread_only is None:
            unread_only = True
        params["labelIds"] = ["INBOX", "UNREAD"] if unread_only else ["INBOX"]
        params["q"] = EXCLUDE_PROMOTIONS_QUERY
    if page_token:
        params["pageToken"] = page_token
    return params


class MessageAggregator:
    """
    Lists messages for the signed-in user.

    Usage:
        aggregator = MessageAggregator(GmailClient(access_token))
        page = await aggregator.list_messages(max_results=20)
        next_page = await aggregator.list_messages(page_token=page.next_page_token)
    """

    def __init__(self, client: GmailClient):
        self.client = client

    async def list_messages(
        self,
        label_id: Optional[str] = None,
        max_results=DEFAULT_MAX_RESULTS,
        page_token: Optional[str] = None,
        unread_only: Optional[bool] = None,
    ) -> MessagePage:
        """
        Fetch one page of normalized messages, newest first.

        Raises:
            ProviderApiError: The list call failed, or every detail fetch failed
        """
        params = build_list_params(label_id, max_results, page_token, unread_only)
        list_response = await self.client.list_messages(params)

        identifiers = [m["id"] for m in list_response.get("messages") or [] if m.get("id")]
        next_page_token = list_response.get("nextPageToken")

        if not identifiers:
            logger.info("No messages matched")
            return MessagePage(emails=[], next_page_token=next_page_token)

        detail_params = {"format": "full", "metadataHeaders": METADATA_HEADERS}
        results = await asyncio.gather(
            *(self.client.get_message(message_id, detail_params) for message_id in identifiers),
            return_exceptions=True,
        )

        emails: List[EmailMessage] = []
        for message_id, result in zip(identifiers, results):
            if isinstance(result, Exception):
                logger.warning(f"Failed to fetch message {message_id}: {result}")
                continue
            try:
                emails.append(normalize(result))
            except Exception as e:
                logger.warning(f"Failed to parse message {message_id}: {type(e).__name__}")

        if not emails:
            raise ProviderApiError("Failed to load Gmail messages", 500)

        # sorted() is stable, so equal dates keep the list order
        emails = sorted(emails, key=lambda email: email.internal_date, reverse=True)

        logger.info(f"Fetched {len(emails)} of {len(identifiers)} messages")
        return MessagePage(emails=emails, next_page_token=next_page_token)

    async def fetch_recent(self, **options) -> MessagePage:
        return await self.list_messages(**options)

    async def fetch_by_label(self, label_id: str, **options) -> MessagePage:
        return await self.list_messages(label_id=label_id, **options)
