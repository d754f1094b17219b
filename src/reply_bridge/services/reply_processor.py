import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from reply_bridge.services.correlation import extract_correlation_id
from reply_bridge.services.email_parser import clean_reply
from reply_bridge.services.message_parts import InboundMessage, extract_body, first_recipient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessedEmailRecord:
    correlation_id: str
    sender: str
    recipient: str
    subject: str
    sent_at: Optional[datetime]
    body: str
    cleaned_reply: str
    message: InboundMessage = field(repr=False, compare=False)


def extract_message_correlation_id(message: InboundMessage) -> Optional[str]:
    recipient = first_recipient(message)
    if recipient is None:
        return None
    return extract_correlation_id(recipient)


def process_message(message: InboundMessage, *, drop_blank_lines: bool = False) -> Optional[ProcessedEmailRecord]:
    correlation_id = extract_message_correlation_id(message)
    if not correlation_id:
        logger.info(
            "Skipping message without correlation id",
            extra={"event": "reply_skipped_no_correlation_id", "message_id": message.message_id},
        )
        return None

    body = extract_body(message)
    if body is None:
        logger.info(
            "Skipping message without a text body",
            extra={
                "event": "reply_skipped_no_body",
                "message_id": message.message_id,
                "correlation_id": correlation_id,
            },
        )
        return None

    cleaned = clean_reply(body, drop_blank_lines=drop_blank_lines)
    logger.debug(
        "Extracted reply content",
        extra={
            "event": "reply_extracted",
            "message_id": message.message_id,
            "correlation_id": correlation_id,
            "body_length": len(body),
            "reply_length": len(cleaned),
        },
    )
    return ProcessedEmailRecord(
        correlation_id=correlation_id,
        sender=message.sender,
        recipient=first_recipient(message) or "",
        subject=message.subject,
        sent_at=message.sent_at,
        body=body,
        cleaned_reply=cleaned,
        message=message,
    )
