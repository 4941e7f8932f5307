"""
Gmail API client integration.

This module handles direct communication with Gmail API:
1. Authorized requests with uniform error mapping
2. Listing and fetching messages
3. Listing labels
4. Modifying message labels (read, archive, star)

Requests are never retried. A 401/403 may mean the user must sign in
again, so the caller decides what a failure means.

Gmail API Reference: https://developers.google.com/gmail/api/reference/rest
"""
from typing import List, Optional
from urllib.parse import quote

import httpx

from app.config import get_settings
from app.utils.logger import get_logger
from app.utils.errors import AuthRequiredError, ProviderApiError

logger = get_logger(__name__)


class GmailClient:
    """
    Gmail API client for the signed-in user.

    Usage:
        client = GmailClient(access_token)
        page = await client.list_messages({"labelIds": ["INBOX"]})
        message = await client.get_message(page["messages"][0]["id"])
        await client.modify_message(message_id, remove_label_ids=["UNREAD"])
    """

    def __init__(
        self,
        access_token: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        base_url: Optional[str] = None,
    ):
        """
        Initialize Gmail client with access token.

        Args:
            access_token: Valid Google OAuth access token with Gmail scopes
            transport: Optional httpx transport (tests use httpx.MockTransport)
            base_url: Override for the users/me API root
        """
        settings = get_settings()
        self.access_token = access_token
        self.base_url = (base_url or settings.gmail_api_base).rstrip("/")
        self.timeout = settings.http_timeout_seconds
        self.transport = transport

    async def call(
        self,
        endpoint: str,
        method: str = "GET",
        params: Optional[dict] = None,
        json_data: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> dict:
        """
        Make an authenticated request to Gmail API.

        Args:
            endpoint: API endpoint (relative to base URL)
            method: HTTP method
            params: Query parameters; list values repeat the key
            json_data: Request body
            headers: Extra headers; an explicit Content-Type wins

        Returns:
            Response JSON dict ({} for empty bodies)

        Raises:
            AuthRequiredError: No access token
            ProviderApiError: Non-2xx status or transport failure
        """
        if not self.access_token:
            raise AuthRequiredError("Missing Gmail access token")

        request_headers = {"Authorization": f"Bearer {self.access_token}"}
        request_headers.update(headers or {})
        has_content_type = any(k.lower() == "content-type" for k in request_headers)
        if json_data is not None and not has_content_type:
            request_headers["Content-Type"] = "application/json"

        url = f"{self.base_url}{endpoint}"
        async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
            try:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=request_headers,
                    json=json_data,
                    params=params,
                )
            except httpx.RequestError as e:
                logger.error(f"Gmail API request failed: {type(e).__name__}")
                raise ProviderApiError("Couldn't reach Gmail. Please try again.", 502) from e

        if not response.is_success:
            text = response.text
            logger.warning(f"Gmail API error: {response.status_code} on {method} {endpoint.split('?')[0]}")
            raise ProviderApiError(text or "Gmail API error", response.status_code)

        if not response.content:
            return {}
        return response.json()

    async def list_messages(self, params: dict) -> dict:
        """List message identifiers. Returns {messages: [{id, threadId}], nextPageToken}."""
        return await self.call("/messages", params=params)

    async def get_message(self, message_id: str, params: Optional[dict] = None) -> dict:
        """Fetch a single message."""
        return await self.call(f"/messages/{quote(message_id, safe='')}", params=params)

    async def list_labels(self) -> List[dict]:
        """All labels of the mailbox, as returned by Gmail."""
        response = await self.call("/labels")
        return response.get("labels", [])

    async def modify_message(
        self,
        message_id: str,
        add_label_ids: Optional[List[str]] = None,
        remove_label_ids: Optional[List[str]] = None,
    ) -> dict:
        """Add and/or remove labels on a message."""
        body = {}
        if add_label_ids:
            body["addLabelIds"] = add_label_ids
        if remove_label_ids:
            body["removeLabelIds"] = remove_label_ids
        return await self.call(
            f"/messages/{quote(message_id, safe='')}/modify",
            method="POST",
            json_data=body,
        )
