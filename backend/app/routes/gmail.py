"""
Gmail proxy routes: messages, labels and triage actions.

Every route resolves a fresh session first (get_current_session) and
talks to Gmail with the session's access token. Errors are AppErrors
and are turned into responses by the handlers in app.main.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from app.integrations.gmail_client import GmailClient
from app.models.email import EmailView, MessagePageResponse
from app.models.label import Label
from app.models.session import Session
from app.services.action_service import MessageAction, dispatch_action
from app.services.label_service import curate
from app.services.message_service import MessageAggregator
from app.services.sanitizer import format_body_for_display
from app.services.session_service import get_current_session
from app.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


def get_gmail_client(session: Session = Depends(get_current_session)) -> GmailClient:
    """Gmail client authorized with the request's fresh access token."""
    return GmailClient(session.access_token)


def _parse_unread_only(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    return value != "false"


@router.get("/messages", response_model=MessagePageResponse)
async def list_messages(
    label_id: Optional[str] = Query(None, alias="labelId"),
    max_results: Optional[str] = Query(None, alias="maxResults"),
    page_token: Optional[str] = Query(None, alias="pageToken"),
    unread_only: Optional[str] = Query(None, alias="unreadOnly"),
    client: GmailClient = Depends(get_gmail_client),
):
    """
    One page of messages, newest first.

    Without labelId the unread inbox (minus promotions) is listed; pass
    unreadOnly=false to include read mail. Each email carries a sanitized
    display rendering of its body.
    """
    aggregator = MessageAggregator(client)
    options = {
        "max_results": max_results,
        "page_token": page_token or None,
        "unread_only": _parse_unread_only(unread_only),
    }
    if label_id:
        page = await aggregator.fetch_by_label(label_id, **options)
    else:
        page = await aggregator.fetch_recent(**options)

    emails = [
        EmailView(
            **email.model_dump(),
            display=format_body_for_display(email.raw_body, email.snippet),
        )
        for email in page.emails
    ]
    return MessagePageResponse(emails=emails, next_page_token=page.next_page_token)


@router.get("/labels", response_model=List[Label])
async def list_labels(client: GmailClient = Depends(get_gmail_client)):
    """Labels for the label picker, system labels first."""
    return curate(await client.list_labels())


async def _run_action(action: MessageAction, message_id: Optional[str], client: GmailClient) -> dict:
    return await dispatch_action(client, action, message_id or "")


@router.post("/messages/mark-read")
async def mark_read(
    message_id: Optional[str] = Query(None, alias="messageId"),
    client: GmailClient = Depends(get_gmail_client),
):
    """Remove UNREAD from a message."""
    return await _run_action(MessageAction.MARK_READ, message_id, client)


@router.post("/messages/archive")
async def archive(
    message_id: Optional[str] = Query(None, alias="messageId"),
    client: GmailClient = Depends(get_gmail_client),
):
    """Remove INBOX from a message."""
    return await _run_action(MessageAction.ARCHIVE, message_id, client)


@router.post("/messages/star")
async def star(
    message_id: Optional[str] = Query(None, alias="messageId"),
    client: GmailClient = Depends(get_gmail_client),
):
    """Add STARRED to a message."""
    return await _run_action(MessageAction.STAR, message_id, client)
