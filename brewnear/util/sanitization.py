"""Sanitisation helpers.

This module provides simple utilities to strip potentially unsafe
HTML tags from user-supplied text fields and to trim whitespace.
Use these functions before storing free-form comments, descriptions
or links in the database to reduce the risk of XSS when those values
are rendered by the web client.
"""
import re

TAG_RE = re.compile(r"<[^>]+>")
UNSAFE_CHARS_RE = re.compile(r"[<>'\"&]")
SCRIPT_PROTOCOL_RE = re.compile(r"(javascript|data|vbscript):", re.IGNORECASE)
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_UNSAFE_RE = re.compile(r"[^\d+\s\-()]")

BLOCKED_URL_PREFIXES = ("javascript:", "data:", "vbscript:", "file:")
ALLOWED_URL_PREFIXES = ("http://", "https://", "/", "./", "../")


def strip_tags(text: str) -> str:
    """Remove HTML tags from the given string.

    Parameters
    ----------
    text: str
        The input string that may contain HTML tags.

    Returns
    -------
    str
        The cleaned string with tags removed and whitespace trimmed.
    """
    if not text:
        return ""
    no_tags = TAG_RE.sub("", text)
    return no_tags.strip()


def sanitize_text(text: str) -> str:
    """Strip tags, HTML special characters and script protocols."""
    if not text or not isinstance(text, str):
        return ""
    cleaned = UNSAFE_CHARS_RE.sub("", TAG_RE.sub("", text))
    return SCRIPT_PROTOCOL_RE.sub("", cleaned).strip()


def sanitize_url(url: str) -> str:
    """Return the trimmed URL if it is http(s) or relative, else ``""``."""
    if not url or not isinstance(url, str):
        return ""
    lowered = url.strip().lower()
    if lowered.startswith(BLOCKED_URL_PREFIXES):
        return ""
    if lowered.startswith(ALLOWED_URL_PREFIXES):
        return url.strip()
    return ""


def sanitize_email(email: str) -> str:
    if not email or not isinstance(email, str):
        return ""
    trimmed = email.strip().lower()
    return trimmed if EMAIL_RE.match(trimmed) else ""


def sanitize_phone(phone: str) -> str:
    """Keep digits, ``+``, spaces, dashes and parentheses."""
    if not phone or not isinstance(phone, str):
        return ""
    return PHONE_UNSAFE_RE.sub("", phone).strip()
