"""Sub-grammars used to spot where quoted history begins in a reply.

Every piece is a plain pattern string so it can be composed into larger
expressions; the ``*_RE`` constants compile the interesting ones on their own
(case-insensitive, ``^`` at every line start) so each grammar can be exercised
in isolation.
"""

import re

_FLAGS = re.IGNORECASE | re.MULTILINE

SPACERS = r"[\s,/.\-]"

TIME = r"(?:[0-2])?[0-9]:[0-5][0-9](?::[0-5][0-9])?(?:\s?[AP]M)?"

WEEKDAY = (
    r"(?:Mon(?:day)?|Tue(?:sday)?|Wed(?:nesday)?|Thu(?:rsday)?"
    r"|Fri(?:day)?|Sat(?:urday)?|Sun(?:day)?)"
)

# Spacers only ever precede an ordinal.
DAY_OF_MONTH = rf"[0-3]?[0-9](?:{SPACERS}*(?:th|st|nd|rd))?"

MONTH = (
    r"(?:Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|Jun(?:e)?|Jul(?:y)?"
    r"|Aug(?:ust)?|Sep(?:tember)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?|[0-1]?[0-9])"
)

# Mail dates live in the 1000s and 2000s.
YEAR = r"(?:[1-2]?[0-9])[0-9][0-9]"

DATE = (
    rf"(?:{WEEKDAY}{SPACERS}+)?"
    rf"(?:{DAY_OF_MONTH}{SPACERS}+{MONTH}|{MONTH}{SPACERS}+{DAY_OF_MONTH})"
    rf"{SPACERS}+{YEAR}"
)

DATE_TIME = (
    rf"(?:{DATE}(?:[\s,]*(?:(?:at|@)\s*)?{TIME})?"
    rf"|{TIME}[\s,]*(?:on\s*)?{DATE})"
)

# ----Original Message---- or just a row of dashes
LEAD_IN_LINE = r"(?<!-)-+[ \t]*(?:Original(?:\sMessage)?[ \t]*)?-+"

# Rest of a line, minus trailing blanks.
_REST = r"[^\n]*(?<![ \t\r])"

# Labels may be wrapped in *bold* or <b>/<strong> tags.
_LABEL_OPEN = r"(?:<(?:b|strong)>)?\*?\b"
_LABEL_CLOSE = r"\*?:(?:</(?:b|strong)>)?\*?"

DATE_LINE = rf"{_LABEL_OPEN}(?:date|sent|time){_LABEL_CLOSE}\s*{DATE_TIME}{_REST}"

_HEADER_LABEL = rf"{_LABEL_OPEN}(?:from|subject|b?cc|to){_LABEL_CLOSE}"

# A lone label only counts at the start of a line or right after a tag.
_LINE_START = r"(?:^|(?<=>))[ \t]*"

HEADER_LINE = rf"{_LINE_START}{_HEADER_LABEL}{_REST}"

HEADER_PAIR_LINE = rf"{_HEADER_LABEL}[^\n]*{_HEADER_LABEL}{_REST}"

# On Mon, Jun 7, 2010 at 8:50 PM, Simon <simon@example.org> wrote:
GMAIL_PREAMBLE = rf"\bOn\s+{DATE_TIME}[^\n]*(?:\n[^\n]*)?\bwrote:"

HEADER_BLOCK = (
    rf"(?:{LEAD_IN_LINE}\s*)?"
    rf"(?:(?:{HEADER_PAIR_LINE}|{HEADER_LINE}|{DATE_LINE})\s*){{2,6}}"
)

QUOTE_BOUNDARY = rf"(?:{HEADER_BLOCK})|(?:{GMAIL_PREAMBLE})"

TIME_RE = re.compile(TIME, _FLAGS)
DATE_RE = re.compile(DATE, _FLAGS)
DATE_TIME_RE = re.compile(DATE_TIME, _FLAGS)
LEAD_IN_LINE_RE = re.compile(LEAD_IN_LINE, _FLAGS)
DATE_LINE_RE = re.compile(DATE_LINE, _FLAGS)
HEADER_LINE_RE = re.compile(HEADER_LINE, _FLAGS)
GMAIL_PREAMBLE_RE = re.compile(GMAIL_PREAMBLE, _FLAGS)
QUOTE_BOUNDARY_RE = re.compile(QUOTE_BOUNDARY, _FLAGS)
