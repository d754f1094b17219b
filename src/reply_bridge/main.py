import email
import logging
from dataclasses import asdict
from email import policy
from typing import Any, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from reply_bridge.config import Settings, get_settings
from reply_bridge.services.alerts import AlertService
from reply_bridge.services.correlation import new_correlation_id
from reply_bridge.services.email_parser import clean_reply
from reply_bridge.services.logging_config import configure_logging
from reply_bridge.services.mail_sender import MailSendError, SmtpSender
from reply_bridge.services.mailbox import ImapMailbox, MailboxError
from reply_bridge.services.message_parts import extract_body, from_email_message
from reply_bridge.services.poller import PollInProgressError, ReplyPoller
from reply_bridge.services.reply_processor import (
    ProcessedEmailRecord,
    extract_message_correlation_id,
    process_message,
)
from reply_bridge.services.store import Store

logger = logging.getLogger(__name__)


class ExtractTextRequest(BaseModel):
    text: str


class ExtractMessageRequest(BaseModel):
    raw_message: str


class PollRequest(BaseModel):
    move_after_process: Optional[bool] = None


class SendRequest(BaseModel):
    to: str
    subject: str
    body: str
    correlation_id: Optional[str] = None


def _record_payload(record: ProcessedEmailRecord) -> dict[str, Any]:
    return {
        "correlation_id": record.correlation_id,
        "message_id": record.message.message_id,
        "sender": record.sender,
        "recipient": record.recipient,
        "subject": record.subject,
        "sent_at": record.sent_at.isoformat() if record.sent_at else None,
        "body": record.body,
        "cleaned_reply": record.cleaned_reply,
    }


def create_app(
    settings: Optional[Settings] = None,
    *,
    mailbox_factory: Any = None,
    sender: Optional[SmtpSender] = None,
    alert_service: Optional[AlertService] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    store = Store(settings.database_file)
    store.init_db()
    poller = ReplyPoller(
        settings.imap_config(),
        mailbox_factory or ImapMailbox,
        store=store,
        drop_blank_lines=settings.drop_blank_lines,
    )
    sender = sender or SmtpSender(settings.smtp_config())
    alert_service = alert_service or AlertService(settings)

    app = FastAPI(title="Reply Bridge", version="0.1.0")

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "env": settings.app_env}

    @app.post("/extract/text")
    def extract_text(request: ExtractTextRequest) -> dict[str, str]:
        return {"cleaned_reply": clean_reply(request.text, drop_blank_lines=settings.drop_blank_lines)}

    @app.post("/extract/message")
    def extract_message(request: ExtractMessageRequest) -> dict[str, Any]:
        parsed = email.message_from_string(request.raw_message, policy=policy.default)
        message = from_email_message(parsed, uid="dry-run")

        record = process_message(message, drop_blank_lines=settings.drop_blank_lines)
        if record is not None:
            return {"status": "ok", **_record_payload(record)}
        if not extract_message_correlation_id(message):
            return {"status": "skipped", "reason": "missing_correlation_id"}
        if extract_body(message) is None:
            return {"status": "skipped", "reason": "missing_text_body"}
        return {"status": "skipped", "reason": "unprocessable"}

    @app.post("/poll")
    def poll(request: Optional[PollRequest] = None) -> dict[str, Any]:
        move = settings.move_after_process
        if request is not None and request.move_after_process is not None:
            move = request.move_after_process

        logger.info("Starting poll cycle", extra={"event": "poll_requested", "move_after_process": move})
        try:
            result = poller.poll(move_after_process=move)
        except PollInProgressError as exc:
            raise HTTPException(status_code=409, detail="poll already in progress") from exc
        except MailboxError as exc:
            alert_service.notify(
                alert_type="poll_transport_error",
                summary="Mailbox poll cycle failed",
                context={"folder": settings.inbox_folder},
                error=exc,
            )
            raise HTTPException(status_code=502, detail="mailbox unavailable") from exc

        return {
            "status": "ok",
            **result.summary(),
            "replies": [_record_payload(record) for record in result.records],
        }

    @app.get("/replies/{correlation_id}")
    def replies(correlation_id: str) -> dict[str, Any]:
        stored = store.list_replies(correlation_id)
        return {"correlation_id": correlation_id, "replies": [asdict(reply) for reply in stored]}

    @app.post("/send")
    def send(request: SendRequest) -> dict[str, str]:
        correlation_id = request.correlation_id or new_correlation_id()
        try:
            sender.send(request.to, request.subject, request.body, correlation_id)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except MailSendError as exc:
            alert_service.notify(
                alert_type="smtp_send_error",
                summary="Outbound notification could not be delivered",
                context={"recipient": request.to, "correlation_id": correlation_id},
                error=exc,
            )
            raise HTTPException(status_code=502, detail="mail delivery failed") from exc
        return {"status": "sent", "correlation_id": correlation_id}

    logger.info("Application startup complete", extra={"event": "startup_complete"})
    return app
