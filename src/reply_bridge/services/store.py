import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from reply_bridge.services.reply_processor import ProcessedEmailRecord


@dataclass
class StoredReply:
    reply_id: int
    message_id: str
    correlation_id: str
    sender: str
    recipient: str
    subject: str
    sent_at: Optional[str]
    body: str
    cleaned_reply: str
    processed_at: str


class Store:
    def __init__(self, database_path: Path) -> None:
        self.database_path = database_path
        self.database_path.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.database_path)

    def init_db(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS processed_replies (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    message_id TEXT NOT NULL UNIQUE,
                    correlation_id TEXT NOT NULL,
                    sender TEXT NOT NULL,
                    recipient TEXT NOT NULL,
                    subject TEXT NOT NULL DEFAULT '',
                    sent_at TEXT,
                    body TEXT NOT NULL,
                    cleaned_reply TEXT NOT NULL,
                    processed_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_processed_replies_correlation
                ON processed_replies(correlation_id)
                """
            )
            conn.commit()

    def is_processed(self, message_id: str) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM processed_replies WHERE message_id = ?",
                (message_id,),
            ).fetchone()
            return row is not None

    def save_reply(self, record: ProcessedEmailRecord) -> bool:
        sent_at = record.sent_at.isoformat() if record.sent_at else None
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO processed_replies(
                    message_id, correlation_id, sender, recipient, subject, sent_at, body, cleaned_reply
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.message.message_id,
                    record.correlation_id,
                    record.sender,
                    record.recipient,
                    record.subject,
                    sent_at,
                    record.body,
                    record.cleaned_reply,
                ),
            )
            conn.commit()
            return cursor.rowcount > 0

    def list_replies(self, correlation_id: str) -> list[StoredReply]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT id, message_id, correlation_id, sender, recipient, subject, sent_at,
                       body, cleaned_reply, processed_at
                FROM processed_replies
                WHERE correlation_id = ?
                ORDER BY id ASC
                """,
                (correlation_id,),
            ).fetchall()

        return [
            StoredReply(
                reply_id=int(row[0]),
                message_id=str(row[1]),
                correlation_id=str(row[2]),
                sender=str(row[3]),
                recipient=str(row[4]),
                subject=str(row[5] or ""),
                sent_at=row[6],
                body=str(row[7]),
                cleaned_reply=str(row[8]),
                processed_at=str(row[9]),
            )
            for row in rows
        ]
