from __future__ import annotations

import email
import imaplib
import logging
from email import policy
from typing import Any, Callable, Optional, Protocol

from reply_bridge.config import ImapConfig
from reply_bridge.services.message_parts import InboundMessage, from_email_message

logger = logging.getLogger(__name__)

_TRANSPORT_ERRORS = (imaplib.IMAP4.error, OSError)


class MailboxError(RuntimeError):
    pass


class Mailbox(Protocol):
    def connect_and_fetch(self, folder: str) -> list[InboundMessage]: ...

    def move_message(self, message: InboundMessage, from_folder: str, to_folder: str) -> None: ...


def _quote_folder(folder: str) -> str:
    if folder.startswith('"') and folder.endswith('"'):
        return folder
    if any(char in folder for char in ' ()"\\{%*'):
        escaped = folder.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return folder


class ImapMailbox:
    """IMAP-over-SSL mailbox. Use as a context manager; one instance per poll cycle."""

    def __init__(self, config: ImapConfig, *, imap_factory: Optional[Callable[..., Any]] = None) -> None:
        self.config = config
        self._imap_factory = imap_factory or imaplib.IMAP4_SSL
        self._conn: Any = None
        self._selected: Optional[str] = None

    def __enter__(self) -> "ImapMailbox":
        self.connect()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def connect(self) -> None:
        if self._conn is not None:
            return
        if not self.config.host:
            raise MailboxError("IMAP host is not configured")
        try:
            conn = self._imap_factory(self.config.host, self.config.port)
            conn.login(self.config.username, self.config.password)
        except _TRANSPORT_ERRORS as exc:
            raise MailboxError(f"IMAP connect failed for host='{self.config.host}'") from exc
        self._conn = conn
        logger.info(
            "Connected to IMAP server",
            extra={"event": "imap_connected", "host": self.config.host, "port": self.config.port},
        )

    def _select(self, folder: str) -> None:
        if self._selected == folder:
            return
        self.connect()
        try:
            status, _ = self._conn.select(_quote_folder(folder))
        except _TRANSPORT_ERRORS as exc:
            raise MailboxError(f"IMAP select failed for folder='{folder}'") from exc
        if status != "OK":
            raise MailboxError(f"IMAP select failed for folder='{folder}'. Check folder name.")
        self._selected = folder

    def _uid(self, command: str, *args: Any) -> list[Any]:
        try:
            status, data = self._conn.uid(command, *args)
        except _TRANSPORT_ERRORS as exc:
            raise MailboxError(f"IMAP {command} failed") from exc
        if status != "OK":
            raise MailboxError(f"IMAP {command} returned {status}")
        return data or []

    def connect_and_fetch(self, folder: str) -> list[InboundMessage]:
        self._select(folder)
        data = self._uid("SEARCH", None, "ALL")
        uids = data[0].split() if data and data[0] else []

        messages: list[InboundMessage] = []
        for raw_uid in uids:
            uid = raw_uid.decode() if isinstance(raw_uid, bytes) else str(raw_uid)
            fetched = self._uid("FETCH", uid, "(RFC822)")
            raw = next((item[1] for item in fetched if isinstance(item, tuple) and len(item) > 1), None)
            if raw is None:
                logger.warning(
                    "IMAP fetch returned no message body",
                    extra={"event": "imap_fetch_empty", "folder": folder, "uid": uid},
                )
                continue
            try:
                parsed = email.message_from_bytes(raw, policy=policy.default)
                messages.append(from_email_message(parsed, uid=uid))
            except Exception:
                logger.warning(
                    "Skipping message that could not be parsed",
                    extra={"event": "imap_message_unparseable", "folder": folder, "uid": uid},
                    exc_info=True,
                )

        logger.info(
            "Fetched messages from IMAP folder",
            extra={"event": "imap_fetch_complete", "folder": folder, "count": len(messages)},
        )
        return messages

    def move_message(self, message: InboundMessage, from_folder: str, to_folder: str) -> None:
        self._select(from_folder)
        self._uid("COPY", message.uid, _quote_folder(to_folder))
        self._uid("STORE", message.uid, "+FLAGS", r"(\Deleted)")
        logger.info(
            "Moved message to folder",
            extra={
                "event": "imap_message_moved",
                "message_id": message.message_id,
                "from_folder": from_folder,
                "to_folder": to_folder,
            },
        )

    def close(self) -> None:
        conn, self._conn = self._conn, None
        if conn is None:
            return
        try:
            if self._selected is not None:
                conn.expunge()
                conn.close()
        except _TRANSPORT_ERRORS:
            logger.warning("IMAP expunge on close failed", extra={"event": "imap_close_failed"}, exc_info=True)
        finally:
            self._selected = None
            try:
                conn.logout()
            except _TRANSPORT_ERRORS:
                logger.warning("IMAP logout failed", extra={"event": "imap_logout_failed"}, exc_info=True)
