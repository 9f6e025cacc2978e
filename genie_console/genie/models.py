"""Models for the Genie conversation API."""

from pydantic import BaseModel, Field

COMPLETED = "COMPLETED"


class StartedConversation(BaseModel):
    """Identifiers returned by the start-conversation call."""

    message_id: str
    conversation_id: str


class GenieQuery(BaseModel):
    query: str | None = None
    description: str | None = None


class GenieAttachment(BaseModel):
    attachment_id: str | None = None
    query: GenieQuery | None = None


class GenieMessage(BaseModel):
    """Raw message body returned by the message status call."""

    status: str
    attachments: list[GenieAttachment] | None = Field(default_factory=list)


class MessageStatus(BaseModel):
    """Status of a message, flattened from its first attachment."""

    status: str
    attachment_id: str = ""
    query: str = ""
    description: str = ""

    @property
    def is_completed(self) -> bool:
        return self.status == COMPLETED

    @classmethod
    def from_message(cls, message: GenieMessage) -> "MessageStatus":
        if not message.attachments:
            return cls(status=message.status)

        first = message.attachments[0]
        if first.attachment_id and first.query is not None:
            return cls(
                status=message.status,
                attachment_id=first.attachment_id,
                query=first.query.query or "",
                description=first.query.description or "",
            )
        return cls(status=message.status, attachment_id=first.attachment_id or "")


class GenieAnswer(BaseModel):
    conversation_id: str
    message_id: str
    status: MessageStatus
    result: str
