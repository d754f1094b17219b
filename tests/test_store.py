from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from reply_bridge.services.message_parts import InboundMessage, LeafPart
from reply_bridge.services.reply_processor import ProcessedEmailRecord
from reply_bridge.services.store import Store


def _store(tmp_path: Path) -> Store:
    store = Store(tmp_path / "nested" / "replies.db")
    store.init_db()
    return store


def _record(message_id: str, correlation_id: str = "REQ-1") -> ProcessedEmailRecord:
    message = InboundMessage(
        uid="1",
        message_id=message_id,
        sender="alice@example.org",
        recipients=(f"notify+{correlation_id}@example.org",),
        subject="Re: hello",
        sent_at=datetime(2021, 6, 7, 20, 50, tzinfo=timezone.utc),
        body=LeafPart("text/plain", "Yes.\n> old"),
    )
    return ProcessedEmailRecord(
        correlation_id=correlation_id,
        sender=message.sender,
        recipient=message.recipients[0],
        subject=message.subject,
        sent_at=message.sent_at,
        body="Yes.\n> old",
        cleaned_reply="Yes.",
        message=message,
    )


def test_save_reply_is_idempotent_per_message(tmp_path: Path) -> None:
    store = _store(tmp_path)

    assert not store.is_processed("<a@example.org>")
    assert store.save_reply(_record("<a@example.org>")) is True
    assert store.save_reply(_record("<a@example.org>")) is False
    assert store.is_processed("<a@example.org>")


def test_list_replies_filters_by_correlation_id(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.save_reply(_record("<a@example.org>", "REQ-1"))
    store.save_reply(_record("<b@example.org>", "REQ-2"))
    store.save_reply(_record("<c@example.org>", "REQ-1"))

    replies = store.list_replies("REQ-1")

    assert [reply.message_id for reply in replies] == ["<a@example.org>", "<c@example.org>"]
    assert replies[0].cleaned_reply == "Yes."
    assert replies[0].body == "Yes.\n> old"
    assert replies[0].sent_at == "2021-06-07T20:50:00+00:00"
    assert store.list_replies("REQ-404") == []
