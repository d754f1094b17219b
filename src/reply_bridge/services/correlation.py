import re
import uuid
from typing import Optional

CORRELATION_ID_PATTERN = re.compile(r"\+(?P<token>[A-Za-z0-9\-_]+)@")
_TOKEN_PATTERN = re.compile(r"[A-Za-z0-9\-_]+")


def new_correlation_id() -> str:
    return str(uuid.uuid4())


def build_reply_to_address(address: str, correlation_id: str) -> str:
    if not _TOKEN_PATTERN.fullmatch(correlation_id or ""):
        raise ValueError(f"correlation id {correlation_id!r} may only contain letters, digits, '-' and '_'")

    local_part, separator, domain = (address or "").rpartition("@")
    if not separator or not local_part or not domain:
        raise ValueError(f"invalid mailbox address {address!r}")
    return f"{local_part}+{correlation_id}@{domain}"


def extract_correlation_id(address: str) -> Optional[str]:
    match = CORRELATION_ID_PATTERN.search(address or "")
    if not match:
        return None
    return match.group("token")
