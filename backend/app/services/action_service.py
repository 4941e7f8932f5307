"""
Triage actions. Each one is a single label modification on a message.
"""
from enum import Enum
from typing import List, NamedTuple

from app.integrations.gmail_client import GmailClient
from app.utils.errors import InvalidRequestError
from app.utils.logger import get_logger

logger = get_logger(__name__)


class LabelChange(NamedTuple):
    add: List[str]
    remove: List[str]


class MessageAction(str, Enum):
    MARK_READ = "mark-read"
    ARCHIVE = "archive"
    STAR = "star"


ACTION_LABEL_CHANGES = {
    MessageAction.MARK_READ: LabelChange(add=[], remove=["UNREAD"]),
    MessageAction.ARCHIVE: LabelChange(add=[], remove=["INBOX"]),
    MessageAction.STAR: LabelChange(add=["STARRED"], remove=[]),
}


async def dispatch_action(client: GmailClient, action: MessageAction, message_id: str) -> dict:
    """
    Apply a triage action to one message.

    Raises:
        InvalidRequestError: message_id is blank
        ProviderApiError: Gmail rejected the modification
    """
    if not message_id or not message_id.strip():
        raise InvalidRequestError("messageId is required")

    change = ACTION_LABEL_CHANGES[action]
    await client.modify_message(
        message_id,
        add_label_ids=change.add,
        remove_label_ids=change.remove,
    )
    logger.info(f"Applied {action.value} to message {message_id}")
    return {"success": True}
