import re

from reply_bridge.services.quote_patterns import QUOTE_BOUNDARY_RE

_QUOTE_MARKER = ">"

_OPEN = r"(?:<|&lt;)"
_CLOSE = r"(?:>|&gt;?)"
_QUOTE = r"(?:\"|&quot;)"


def _block(tag: str) -> re.Pattern[str]:
    # Greedy: spans up to the last closing tag.
    return re.compile(rf"{_OPEN}{tag}\b.*{_OPEN}/{tag}{_CLOSE}", re.DOTALL | re.IGNORECASE)


MARKUP_PASSES: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("blockquote", _block("blockquote")),
    (
        "gmail_extra",
        re.compile(rf"{_OPEN}div class={_QUOTE}gmail_extra{_QUOTE}.*", re.DOTALL | re.IGNORECASE),
    ),
    ("style", _block("style")),
    ("script", _block("script")),
    ("head", _block("head")),
    (
        "document_tags",
        re.compile(r"<(?:html|body|span)\b[^>]*>|</(?:html|body|span)>", re.IGNORECASE),
    ),
    ("attributes", re.compile(r" class=\"[^\"]*\"| style=\"[^\"]*\"", re.IGNORECASE)),
)


def strip_plain_quotes(text: str, *, drop_blank_lines: bool = False) -> str:
    """Drop lines that start with the ``>`` quote marker.

    CRLF and lone CR line endings count as plain newlines. Blank lines are kept
    unless ``drop_blank_lines`` is set. Trailing empty lines are discarded
    either way.
    """
    normalized = (text or "").replace("\r\n", "\n").replace("\r", "\n")
    lines = normalized.split("\n")
    while lines and lines[-1] == "":
        lines.pop()

    kept: list[str] = []
    for line in lines:
        if drop_blank_lines and line == "":
            continue
        if line.startswith(_QUOTE_MARKER):
            continue
        kept.append(line)

    return "\n".join(kept)


def strip_markup(text: str) -> str:
    stripped = text or ""
    for _name, pattern in MARKUP_PASSES:
        stripped = pattern.sub("", stripped)
    return stripped


def truncate_at_quote_boundary(text: str) -> str:
    text = text or ""
    match = QUOTE_BOUNDARY_RE.search(text)
    if not match:
        return text
    return text[: match.start()]


def clean_reply(text: str, *, drop_blank_lines: bool = False) -> str:
    """Reduce a raw reply body to the text the sender actually typed.

    Quote-marked lines go first, then HTML noise, and only then the
    quoted-history heuristics, which expect readable text.
    """
    cleaned = strip_plain_quotes(text, drop_blank_lines=drop_blank_lines)
    cleaned = strip_markup(cleaned)
    return truncate_at_quote_boundary(cleaned)
