from __future__ import annotations

import smtplib
from email.message import EmailMessage

import pytest

from reply_bridge.config import SmtpConfig
from reply_bridge.services import mail_sender
from reply_bridge.services.correlation import extract_correlation_id
from reply_bridge.services.mail_sender import MailSendError, SmtpSender


class _FakeSMTP:
    instances: list["_FakeSMTP"] = []
    fail_on_send = False

    def __init__(self, host: str, port: int, timeout: float) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout
        self.started_tls = False
        self.login_args: tuple[str, str] | None = None
        self.sent: list[EmailMessage] = []
        _FakeSMTP.instances.append(self)

    def __enter__(self) -> "_FakeSMTP":
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    def starttls(self) -> None:
        self.started_tls = True

    def login(self, username: str, password: str) -> None:
        self.login_args = (username, password)

    def send_message(self, msg: EmailMessage) -> None:
        if _FakeSMTP.fail_on_send:
            raise smtplib.SMTPRecipientsRefused({})
        self.sent.append(msg)


@pytest.fixture
def fake_smtp(monkeypatch: pytest.MonkeyPatch) -> type[_FakeSMTP]:
    _FakeSMTP.instances = []
    _FakeSMTP.fail_on_send = False
    monkeypatch.setattr(mail_sender.smtplib, "SMTP", _FakeSMTP)
    return _FakeSMTP


def _config(host: str = "smtp.example.org") -> SmtpConfig:
    return SmtpConfig(
        host=host,
        port=587,
        username="notify@example.org",
        password="secret",
        personal_name="Notifications",
    )


def test_send_embeds_correlation_id_in_reply_to(fake_smtp: type[_FakeSMTP]) -> None:
    msg = SmtpSender(_config()).send("alice@example.org", "Request 7", "Please confirm.", "REQ-7")

    server = fake_smtp.instances[0]
    assert (server.host, server.port) == ("smtp.example.org", 587)
    assert server.started_tls
    assert server.login_args == ("notify@example.org", "secret")
    assert server.sent == [msg]
    assert msg["To"] == "alice@example.org"
    assert msg["Subject"] == "Request 7"
    assert msg["From"] == "Notifications <notify@example.org>"
    assert "notify+REQ-7@example.org" in str(msg["Reply-To"])
    assert extract_correlation_id(str(msg["Reply-To"])) == "REQ-7"
    assert msg.get_content().strip() == "Please confirm."


def test_send_wraps_smtp_failures(fake_smtp: type[_FakeSMTP]) -> None:
    fake_smtp.fail_on_send = True

    with pytest.raises(MailSendError):
        SmtpSender(_config()).send("alice@example.org", "Request 7", "Please confirm.", "REQ-7")


def test_send_requires_host(fake_smtp: type[_FakeSMTP]) -> None:
    with pytest.raises(MailSendError):
        SmtpSender(_config(host="")).send("alice@example.org", "Request 7", "Body", "REQ-7")
    assert fake_smtp.instances == []
