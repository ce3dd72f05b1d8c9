"""Secret detection and masking for clip content."""

import re
from dataclasses import dataclass
from enum import Enum


class SensitiveType(Enum):
    """Kinds of secret-shaped content the classifier recognizes."""

    API_KEY = "api_key"
    HEX_TOKEN = "hex_token"
    PASSWORD = "password"
    PRIVATE_KEY = "private_key"
    JWT = "jwt"


@dataclass
class SensitiveMatch:
    """A detected secret inside a piece of text."""

    sensitive_type: SensitiveType
    start: int
    end: int
    original: str
    masked: str


PATTERNS: dict[SensitiveType, list[re.Pattern]] = {
    SensitiveType.API_KEY: [
        re.compile(r"sk-proj-[a-zA-Z0-9_-]{20,}", re.ASCII),  # OpenAI project keys
        re.compile(r"sk-[a-zA-Z0-9]{20,}", re.ASCII),  # OpenAI
        re.compile(r"AKIA[A-Z0-9]{16}", re.ASCII),  # AWS access key
        re.compile(r"ghp_[a-zA-Z0-9]{36}", re.ASCII),  # GitHub PAT
        re.compile(r"gho_[a-zA-Z0-9]{36}", re.ASCII),  # GitHub OAuth
        re.compile(r"github_pat_[a-zA-Z0-9_]{22,}", re.ASCII),  # GitHub fine-grained PAT
        re.compile(r"xox[baprs]-[a-zA-Z0-9-]{10,}", re.ASCII),  # Slack
        re.compile(r"AIza[a-zA-Z0-9_-]{35}", re.ASCII),  # Google
        re.compile(r"(?:sk|rk|pk)_(?:live|test)_[a-zA-Z0-9]{24,}", re.ASCII),  # Stripe
    ],
    SensitiveType.HEX_TOKEN: [
        re.compile(r"\b(?:[a-fA-F0-9]{64}|[a-fA-F0-9]{40}|[a-fA-F0-9]{32})\b", re.ASCII),
    ],
    SensitiveType.PASSWORD: [
        re.compile(r"password\s*[:=]\s*['\"]?(\S+?)['\"]?(?=\s|$)", re.IGNORECASE),
    ],
    SensitiveType.PRIVATE_KEY: [
        re.compile(r"-----BEGIN (?:[A-Z]+ )?PRIVATE KEY-----", re.ASCII),
    ],
    SensitiveType.JWT: [
        re.compile(r"eyJ[a-zA-Z0-9_-]{5,}\.eyJ[a-zA-Z0-9_-]{5,}\.[a-zA-Z0-9_-]{5,}", re.ASCII),
    ],
}


def _mask_value(value: str, sensitive_type: SensitiveType) -> str:
    if sensitive_type == SensitiveType.PRIVATE_KEY:
        return "[Private Key]"

    if sensitive_type == SensitiveType.PASSWORD:
        return "••••••••"

    if sensitive_type == SensitiveType.JWT:
        return value[:10] + "••••••••"

    # Keys and hex tokens keep a short prefix and the last four characters
    if len(value) > 12:
        prefix_len = min(8, len(value) // 4)
        return value[:prefix_len] + "••••••••" + value[-4:]

    return "••••••••"


def detect_sensitive(text: str) -> list[SensitiveMatch]:
    """Find secret-shaped substrings in text.

    Args:
        text: The text to scan.

    Returns:
        Non-overlapping matches ordered by position.
    """
    matches: list[SensitiveMatch] = []

    for sensitive_type, patterns in PATTERNS.items():
        for pattern in patterns:
            for match in pattern.finditer(text):
                # Password patterns capture only the value in group 1
                if sensitive_type == SensitiveType.PASSWORD and match.lastindex:
                    original = match.group(1)
                    start, end = match.start(1), match.end(1)
                else:
                    original = match.group(0)
                    start, end = match.start(), match.end()

                matches.append(SensitiveMatch(
                    sensitive_type=sensitive_type,
                    start=start,
                    end=end,
                    original=original,
                    masked=_mask_value(original, sensitive_type),
                ))

    matches.sort(key=lambda m: (m.start, -(m.end - m.start)))
    non_overlapping: list[SensitiveMatch] = []
    last_end = -1
    for match in matches:
        if match.start >= last_end:
            non_overlapping.append(match)
            last_end = match.end

    return non_overlapping


def mask_text(text: str, matches: list[SensitiveMatch] | None = None) -> str:
    """Replace every detected secret in text with its masked form."""
    if matches is None:
        matches = detect_sensitive(text)

    if not matches:
        return text

    result = []
    last_pos = 0
    for match in matches:
        result.append(text[last_pos:match.start])
        result.append(match.masked)
        last_pos = match.end
    result.append(text[last_pos:])

    return "".join(result)


def is_sensitive(text: str) -> bool:
    """Return True if any secret pattern matches text."""
    for patterns in PATTERNS.values():
        for pattern in patterns:
            if pattern.search(text):
                return True
    return False

