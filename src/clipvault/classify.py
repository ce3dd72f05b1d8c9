"""Content classification shared by capture callers and the engine."""

import re
from dataclasses import dataclass

from clipvault.models import ContentType
from clipvault.redact import is_sensitive

URL_PATTERN = re.compile(r"^https?://\S+$", re.IGNORECASE)
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[\d\s\-+().]+$")
MIN_PHONE_DIGITS = 7

CODE_PATTERNS: list[re.Pattern] = [
    # Language keyword at line start
    re.compile(
        r"^\s*(?:function|const|let|var|import|export|class|def|return|if|for|while"
        r"|public|private|package|func|fn)\s",
        re.MULTILINE,
    ),
    re.compile(r"^\s*#include\s*[<\"]", re.MULTILINE),
    # SQL verb at line start
    re.compile(r"^\s*(?:SELECT|INSERT|UPDATE|DELETE|CREATE|ALTER|DROP)\s", re.MULTILINE),
    # Leading comment marker
    re.compile(r"^\s*(?://|/\*|#!|<!--)"),
]
BRACKET_PAIR = re.compile(r"\{[^{}]*\}|\([^()]*\)|\[[^\[\]]*\]")
INDENTED_LINE = re.compile(r"^(?:\t| {2,})\S", re.MULTILINE)


@dataclass(frozen=True)
class Classification:
    type: ContentType
    is_sensitive: bool


def _is_phone(content: str) -> bool:
    if not PHONE_PATTERN.match(content):
        return False
    return sum(ch.isdigit() for ch in content) >= MIN_PHONE_DIGITS


def _is_code(content: str) -> bool:
    if any(pattern.search(content) for pattern in CODE_PATTERNS):
        return True
    multiline = "\n" in content
    if multiline and BRACKET_PAIR.search(content):
        return True
    return multiline and len(INDENTED_LINE.findall(content)) >= 2


def detect_type(content: str) -> ContentType:
    """Return the first matching type: url, email, phone, code, then text."""
    text = content.strip()
    if URL_PATTERN.match(text):
        return ContentType.URL
    if EMAIL_PATTERN.match(text):
        return ContentType.EMAIL
    if _is_phone(text):
        return ContentType.PHONE
    if _is_code(content):
        return ContentType.CODE
    return ContentType.TEXT


def classify(content: str) -> Classification:
    return Classification(type=detect_type(content), is_sensitive=is_sensitive(content))
