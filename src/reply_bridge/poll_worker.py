from __future__ import annotations

import argparse
import json
from typing import Any, Optional

from reply_bridge.config import Settings, get_settings
from reply_bridge.services.alerts import AlertService
from reply_bridge.services.logging_config import configure_logging
from reply_bridge.services.mailbox import ImapMailbox, MailboxError
from reply_bridge.services.poller import ReplyPoller
from reply_bridge.services.store import Store


def run(
    settings: Settings,
    move_after_process: bool,
    *,
    mailbox_factory: Any = None,
    alert_service: Optional[AlertService] = None,
) -> tuple[int, dict[str, Any]]:
    store = Store(settings.database_file)
    store.init_db()
    poller = ReplyPoller(
        settings.imap_config(),
        mailbox_factory or ImapMailbox,
        store=store,
        drop_blank_lines=settings.drop_blank_lines,
    )

    try:
        result = poller.poll(move_after_process=move_after_process)
    except MailboxError as exc:
        alerts = alert_service or AlertService(settings)
        alerts.notify(
            alert_type="poll_transport_error",
            summary="Mailbox poll cycle failed",
            context={"folder": settings.inbox_folder},
            error=exc,
        )
        return 2, {"status": "error", "error": str(exc)}

    payload = {
        "status": "ok",
        **result.summary(),
        "correlation_ids": [record.correlation_id for record in result.records],
    }
    return 0, payload


def main() -> int:
    parser = argparse.ArgumentParser(description="Run one reply-bridge mailbox poll cycle.")
    parser.add_argument(
        "--move",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Move handled messages to the processed/error folders (defaults to MOVE_AFTER_PROCESS).",
    )
    args = parser.parse_args()

    settings = get_settings()
    configure_logging(settings.log_level)
    move = settings.move_after_process if args.move is None else args.move

    code, payload = run(settings, move)
    print(json.dumps(payload, indent=2, sort_keys=True))
    return code


if __name__ == "__main__":
    raise SystemExit(main())
