# app/services/meeting_link.py
from __future__ import annotations

import re
from urllib.parse import urlparse

MEET_CODE_PATTERN = re.compile(r"([a-z]{3}-[a-z]{4}-[a-z]{3})", re.IGNORECASE)
BARE_CODE_PATTERN = re.compile(r"[a-z\-\s]+", re.IGNORECASE)

# Bare codes typed without dashes ("abcdefghij") are accepted from this length on.
MIN_BARE_CODE_LENGTH = 9


def resolve_meet_code(link: str | None) -> str | None:
    """
    Extract a normalized meet code from a meeting URL or a bare code.

    - "https://meet.google.com/abc-defg-hij?authuser=0" -> "abc-defg-hij"
    - "meet.google.com/ABC-DEFG-HIJ"                    -> "abc-defg-hij"
    - "abc-defg-hij"                                    -> "abc-defg-hij"
    - "abcdefghij"                                      -> "abcdefghij"

    Returns None when nothing resembling a code can be found.
    """
    if not link or not isinstance(link, str):
        return None

    trimmed = link.strip()
    if not trimmed:
        return None

    candidate_url = trimmed if trimmed.lower().startswith("http") else f"https://{trimmed}"
    try:
        path = urlparse(candidate_url).path
    except ValueError:
        path = ""

    segments = [segment for segment in path.split("/") if segment]
    if segments and MEET_CODE_PATTERN.fullmatch(segments[-1]):
        return segments[-1].lower()

    match = MEET_CODE_PATTERN.search(trimmed)
    if match:
        return match.group(1).lower()

    # Only bare codes reach this point; URLs without a code are rejected.
    if BARE_CODE_PATTERN.fullmatch(trimmed):
        letters_only = re.sub(r"[^a-z]", "", trimmed, flags=re.IGNORECASE).lower()
        if len(letters_only) >= MIN_BARE_CODE_LENGTH:
            return letters_only

    return None
