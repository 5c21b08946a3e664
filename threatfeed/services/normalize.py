import re

from threatfeed.schemas.common import Severity

MAX_DESCRIPTION_UNITS = 7
# A sentence ends at a terminator run followed by whitespace or the end of the
# text, so "v1.2" and ".NET" stay whole. Matches tile the whole input.
SENTENCE_PATTERN = re.compile(r".+?(?:[.!?]+(?=\s|\Z)|\Z)", re.DOTALL)
TERMINATORS = (".", "!", "?")

# First match wins, so order is priority.
SEVERITY_KEYWORDS: tuple[tuple[str, Severity], ...] = (
    ("critical", Severity.critical),
    ("high", Severity.high),
    ("medium", Severity.medium),
    ("low", Severity.low),
)

# Single-digit precision only; "7.25" is rejected rather than read as 7.2.
CVSS_PATTERN = re.compile(r"CVSS(?:\s*Score)?[:\s]*([0-9]\.[0-9])(?![0-9])", re.IGNORECASE)
SCORE_PATTERN = re.compile(r"score\s*([0-9]\.[0-9])(?![0-9])", re.IGNORECASE)


def _squash(text: str) -> str:
    return " ".join(text.split())


def ensure_long_description(candidate: str | None, fallback: str | None = "") -> str:
    """Build a terminated one-paragraph description from article text.

    The first seven non-blank lines of the chosen text are joined, then the
    paragraph is cut to its first seven sentence fragments. Both caps apply
    to every input, so the output of one pass is never shortened by the next
    and no sentence is repeated. The result always ends with a sentence
    terminator.
    """
    text = candidate if candidate and candidate.strip() else fallback
    if not text or not text.strip():
        return ""

    lines = [_squash(line) for line in text.splitlines() if line.strip()]
    paragraph = " ".join(lines[:MAX_DESCRIPTION_UNITS])
    fragments = [_squash(fragment) for fragment in SENTENCE_PATTERN.findall(paragraph)]
    fragments = [fragment for fragment in fragments if fragment]

    description = " ".join(fragments[:MAX_DESCRIPTION_UNITS])
    if not description.endswith(TERMINATORS):
        description += "."
    return description


def classify_severity(text: str | None) -> Severity:
    if not text:
        return Severity.medium
    lowered = text.lower()
    for keyword, severity in SEVERITY_KEYWORDS:
        if keyword in lowered:
            return severity
    return Severity.medium


def extract_cvss(text: str | None) -> float | None:
    if not text:
        return None
    for pattern in (CVSS_PATTERN, SCORE_PATTERN):
        match = pattern.search(text)
        if match:
            return float(match.group(1))
    return None
