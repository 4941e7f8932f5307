"""
Email-related Pydantic models.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List


class EmailMessage(BaseModel):
    """Normalized Gmail message returned to callers."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    thread_id: str = Field("", alias="threadId")
    subject: str
    from_: str = Field(alias="from")
    to: str = ""
    snippet: str = ""
    raw_body: str = Field("", alias="rawBody")
    plain_text_body: str = Field("", alias="plainTextBody")
    preview: str = ""
    date: str = ""
    internal_date: int = Field(0, alias="internalDate")
    label_ids: List[str] = Field(default_factory=list, alias="labelIds")


class EmailDisplay(BaseModel):
    """Display-time rendering of a message body."""
    html: str
    text: str


class MessagePage(BaseModel):
    """One page of messages plus the provider's continuation token."""
    model_config = ConfigDict(populate_by_name=True)

    emails: List[EmailMessage] = Field(default_factory=list)
    next_page_token: Optional[str] = Field(None, alias="nextPageToken")


class EmailView(EmailMessage):
    """EmailMessage plus its sanitized rendering, as sent to the browser."""
    display: EmailDisplay


class MessagePageResponse(BaseModel):
    """Response body of GET /api/gmail/messages."""
    model_config = ConfigDict(populate_by_name=True)

    emails: List[EmailView]
    next_page_token: Optional[str] = Field(None, alias="nextPageToken")
