from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from email.message import Message
from email.utils import getaddresses, parseaddr, parsedate_to_datetime
from typing import Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeafPart:
    mime_type: str
    content: Optional[str] = None


@dataclass(frozen=True)
class MultiPart:
    mime_type: str
    parts: tuple[MessagePart, ...] = ()


MessagePart = Union[LeafPart, MultiPart]


@dataclass(frozen=True)
class InboundMessage:
    uid: str
    message_id: str
    sender: str
    recipients: tuple[str, ...]
    subject: str
    sent_at: Optional[datetime]
    body: MessagePart


def select_text(part: MessagePart) -> Optional[str]:
    """Pick the preferred text representation of a (possibly nested) part.

    ``text/*`` leaves yield their content untouched. ``multipart/alternative``
    prefers an html child, then whatever a nested part yields, then the first
    plain-text child. Any other ``multipart/*`` yields its first child that has
    text.
    """
    if isinstance(part, LeafPart):
        if part.mime_type.startswith("text/"):
            return part.content
        return None

    if part.mime_type == "multipart/alternative":
        return _select_alternative(part)

    if part.mime_type.startswith("multipart/"):
        for child in part.parts:
            text = select_text(child)
            if text is not None:
                return text
    return None


def _select_alternative(part: MultiPart) -> Optional[str]:
    for child in part.parts:
        if isinstance(child, LeafPart) and child.mime_type == "text/html" and child.content is not None:
            return child.content

    plain: Optional[str] = None
    for child in part.parts:
        if isinstance(child, LeafPart) and child.mime_type == "text/plain":
            if plain is None:
                plain = child.content
            continue
        text = select_text(child)
        if text is not None:
            return text
    return plain


def extract_body(message: InboundMessage) -> Optional[str]:
    return select_text(message.body)


def first_recipient(message: InboundMessage) -> Optional[str]:
    if not message.recipients:
        return None
    return message.recipients[0]


def _decode_leaf(part: Message) -> Optional[str]:
    if part.get_content_maintype() != "text":
        return None

    payload = part.get_payload(decode=True)
    if payload is None:
        return ""
    charset = part.get_content_charset() or "utf-8"
    try:
        return payload.decode(charset, errors="replace")
    except LookupError:
        logger.warning(
            "Unknown charset on message part; decoding as utf-8",
            extra={"event": "message_part_unknown_charset", "charset": charset},
        )
        return payload.decode("utf-8", errors="replace")


def to_message_part(part: Message) -> MessagePart:
    mime_type = part.get_content_type().lower()
    if part.is_multipart():
        children = part.get_payload() or []
        return MultiPart(mime_type=mime_type, parts=tuple(to_message_part(child) for child in children))
    return LeafPart(mime_type=mime_type, content=_decode_leaf(part))


def _parse_sent_at(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return parsedate_to_datetime(str(value))
    except (TypeError, ValueError):
        return None


def from_email_message(msg: Message, *, uid: str) -> InboundMessage:
    headers: list[str] = []
    for name in ("To", "Cc", "Bcc"):
        headers.extend(str(value) for value in msg.get_all(name, []))
    recipients = tuple(address for _, address in getaddresses(headers) if address)

    raw_sender = str(msg.get("From") or "")
    sender = parseaddr(raw_sender)[1] or raw_sender

    return InboundMessage(
        uid=uid,
        message_id=str(msg.get("Message-ID") or "").strip() or uid,
        sender=sender,
        recipients=recipients,
        subject=str(msg.get("Subject") or ""),
        sent_at=_parse_sent_at(msg.get("Date")),
        body=to_message_part(msg),
    )
