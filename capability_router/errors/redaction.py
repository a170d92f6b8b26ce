from __future__ import annotations

import re

_SENSITIVE_PATTERNS = (
    re.compile(r"\bgh[pousr]_[A-Za-z0-9]{8,}"),
    re.compile(r"\bgithub_pat_[A-Za-z0-9_]{8,}"),
    re.compile(r"\bbearer\s+[A-Za-z0-9._\-]{8,}", re.IGNORECASE),
    re.compile(r"\b(?:token|password|secret)\s*[=:]\s*\S+", re.IGNORECASE),
)


def contains_sensitive_text(text: str) -> bool:
    return any(p.search(text) for p in _SENSITIVE_PATTERNS)


def sanitize_cli_error_message(stderr: str, exit_code: int, *, binary: str = "gh") -> str:
    """Turn raw subprocess stderr into a message safe to surface in an envelope."""
    text = (stderr or "").strip()
    if not text:
        return f"{binary} exited with code {exit_code}"
    if contains_sensitive_text(text):
        return f"{binary} command failed; stderr redacted for safety"
    return text
