from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, ContextManager, Optional

from reply_bridge.services.reply_processor import ProcessedEmailRecord, process_message

if TYPE_CHECKING:
    from reply_bridge.config import ImapConfig
    from reply_bridge.services.mailbox import Mailbox
    from reply_bridge.services.message_parts import InboundMessage
    from reply_bridge.services.store import Store

logger = logging.getLogger(__name__)


class PollInProgressError(RuntimeError):
    pass


@dataclass
class PollResult:
    records: list[ProcessedEmailRecord] = field(default_factory=list)
    fetched: int = 0
    processed: int = 0
    duplicates: int = 0
    skipped: int = 0
    moved_processed: int = 0
    moved_error: int = 0

    def summary(self) -> dict[str, Any]:
        return {
            "fetched": self.fetched,
            "processed": self.processed,
            "duplicates": self.duplicates,
            "skipped": self.skipped,
            "moved_processed": self.moved_processed,
            "moved_error": self.moved_error,
        }


class ReplyPoller:
    """Runs poll cycles against one mailbox; cycles never overlap."""

    def __init__(
        self,
        config: "ImapConfig",
        mailbox_factory: Callable[["ImapConfig"], ContextManager["Mailbox"]],
        *,
        store: Optional["Store"] = None,
        drop_blank_lines: bool = False,
    ) -> None:
        self.config = config
        self.mailbox_factory = mailbox_factory
        self.store = store
        self.drop_blank_lines = drop_blank_lines
        self._lock = threading.Lock()

    def handle_message(
        self,
        mailbox: "Mailbox",
        message: "InboundMessage",
        move_after_process: bool,
    ) -> Optional[ProcessedEmailRecord]:
        record = process_message(message, drop_blank_lines=self.drop_blank_lines)
        # Save precedes the move.
        if record is not None and self.store is not None:
            self.store.save_reply(record)
        if not move_after_process:
            return record

        destination = self.config.processed_folder if record else self.config.error_folder
        if destination:
            mailbox.move_message(message, self.config.inbox_folder, destination)
        return record

    def poll(self, move_after_process: bool = False) -> PollResult:
        if not self._lock.acquire(blocking=False):
            raise PollInProgressError(f"a poll of '{self.config.inbox_folder}' is already running")
        try:
            return self._poll(move_after_process)
        finally:
            self._lock.release()

    def _poll(self, move_after_process: bool) -> PollResult:
        result = PollResult()
        with self.mailbox_factory(self.config) as mailbox:
            messages = mailbox.connect_and_fetch(self.config.inbox_folder)
            result.fetched = len(messages)

            for message in messages:
                if self.store is not None and self.store.is_processed(message.message_id):
                    result.duplicates += 1
                    if move_after_process and self.config.processed_folder:
                        mailbox.move_message(message, self.config.inbox_folder, self.config.processed_folder)
                        result.moved_processed += 1
                    continue

                record = self.handle_message(mailbox, message, move_after_process)
                if record is None:
                    result.skipped += 1
                    if move_after_process and self.config.error_folder:
                        result.moved_error += 1
                    continue

                result.records.append(record)
                result.processed += 1
                if move_after_process and self.config.processed_folder:
                    result.moved_processed += 1

        logger.info(
            "Poll cycle complete",
            extra={"event": "poll_cycle_complete", "folder": self.config.inbox_folder, **result.summary()},
        )
        return result
