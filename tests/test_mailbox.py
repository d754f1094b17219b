from __future__ import annotations

from typing import Any

import pytest

from reply_bridge.config import ImapConfig
from reply_bridge.services.mailbox import ImapMailbox, MailboxError

_RAW_REPLY = (
    b"From: Alice <alice@example.org>\r\n"
    b"To: notify+REQ-7@example.org\r\n"
    b"Subject: Re: Request 7\r\n"
    b"Message-ID: <reply-7@example.org>\r\n"
    b"Date: Mon, 07 Jun 2021 20:50:00 +0000\r\n"
    b"Content-Type: text/plain; charset=utf-8\r\n"
    b"\r\n"
    b"Fine by me.\r\n"
)


class _FakeImap:
    def __init__(self, host: str, port: int, *, select_status: str = "OK") -> None:
        self.host = host
        self.port = port
        self.select_status = select_status
        self.commands: list[tuple[Any, ...]] = []
        self.selected: list[str] = []
        self.expunged = False
        self.logged_out = False

    def login(self, username: str, password: str) -> tuple[str, list[bytes]]:
        self.commands.append(("LOGIN", username))
        return "OK", [b"logged in"]

    def select(self, folder: str) -> tuple[str, list[bytes]]:
        self.selected.append(folder)
        return self.select_status, [b"1"]

    def uid(self, command: str, *args: Any) -> tuple[str, list[Any]]:
        self.commands.append((command, *args))
        if command == "SEARCH":
            return "OK", [b"1 2"]
        if command == "FETCH":
            if args[0] == "2":
                return "OK", [None]
            return "OK", [(b"1 (UID 1 RFC822 {200}", _RAW_REPLY), b")"]
        return "OK", [b""]

    def expunge(self) -> tuple[str, list[bytes]]:
        self.expunged = True
        return "OK", [b""]

    def close(self) -> tuple[str, list[bytes]]:
        return "OK", [b""]

    def logout(self) -> tuple[str, list[bytes]]:
        self.logged_out = True
        return "BYE", [b""]


def _config() -> ImapConfig:
    return ImapConfig(
        host="imap.example.org",
        port=993,
        username="notify@example.org",
        password="secret",
        inbox_folder="INBOX",
        processed_folder="Processed Replies",
        error_folder="Errors",
    )


def test_fetch_parses_messages_and_skips_empty_fetches() -> None:
    connections: list[_FakeImap] = []

    def factory(host: str, port: int) -> _FakeImap:
        conn = _FakeImap(host, port)
        connections.append(conn)
        return conn

    with ImapMailbox(_config(), imap_factory=factory) as mailbox:
        messages = mailbox.connect_and_fetch("INBOX")

    conn = connections[0]
    assert (conn.host, conn.port) == ("imap.example.org", 993)
    assert conn.selected == ["INBOX"]
    assert len(messages) == 1
    message = messages[0]
    assert message.uid == "1"
    assert message.message_id == "<reply-7@example.org>"
    assert message.recipients == ("notify+REQ-7@example.org",)
    assert conn.expunged
    assert conn.logged_out


def test_move_copies_then_flags_deleted() -> None:
    conn = _FakeImap("imap.example.org", 993)

    with ImapMailbox(_config(), imap_factory=lambda host, port: conn) as mailbox:
        message = mailbox.connect_and_fetch("INBOX")[0]
        mailbox.move_message(message, "INBOX", "Processed Replies")

    assert ("COPY", "1", '"Processed Replies"') in conn.commands
    assert ("STORE", "1", "+FLAGS", r"(\Deleted)") in conn.commands
    assert conn.selected == ["INBOX"]


def test_connect_failure_raises_mailbox_error() -> None:
    def factory(host: str, port: int) -> _FakeImap:
        raise OSError("connection refused")

    with pytest.raises(MailboxError):
        with ImapMailbox(_config(), imap_factory=factory):
            pass


def test_select_failure_raises_mailbox_error() -> None:
    conn = _FakeImap("imap.example.org", 993, select_status="NO")

    with pytest.raises(MailboxError):
        with ImapMailbox(_config(), imap_factory=lambda host, port: conn) as mailbox:
            mailbox.connect_and_fetch("Missing")

    assert conn.logged_out
