"""
Email helpers for notification text.

A mention is "@" immediately followed by an email-shaped token, e.g.
"Hello @studentagnes@gmail.com". Bare emails without the marker are not
mentions.
"""

from __future__ import annotations

import re

# local@domain: no whitespace, no extra "@", at least one "." in the domain.
_EMAIL_BODY = r"[^\s@]+@[^\s@]+\.[^\s@]+"

# Matches the varchar(255) email columns.
MAX_EMAIL_LENGTH = 255

EMAIL_RE = re.compile(_EMAIL_BODY)
MENTION_RE = re.compile(rf"@({_EMAIL_BODY})")


def is_valid_email(value: str) -> bool:
    value = value or ""
    if len(value) > MAX_EMAIL_LENGTH:
        return False
    return EMAIL_RE.fullmatch(value) is not None


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def extract_mentions(text: str) -> list[str]:
    """
    Return mentioned emails in order of appearance, without the leading "@".

    Duplicates are kept; callers de-duplicate. "@@a@b.com" yields ["a@b.com"].
    """
    if not text:
        return []
    return [match.group(1) for match in MENTION_RE.finditer(text)]
