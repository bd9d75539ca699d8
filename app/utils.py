"""Utility helpers for the Mediadex service."""

from __future__ import annotations

import re
import unicodedata

SUBJECT_STRIP_RE = re.compile(r"[^\w\s]", re.UNICODE)
WHITESPACE_RE = re.compile(r"\s+")


def slugify(value: str) -> str:
    """Return a URL-friendly slug."""

    value = unicodedata.normalize("NFKD", value)
    value = value.encode("ascii", "ignore").decode("ascii")
    value = re.sub(r"[^a-zA-Z0-9]+", "-", value)
    value = value.strip("-")
    value = re.sub(r"-+", "-", value)
    return value.lower()


def clean_subject(value: str) -> str:
    """Turn a genre token into a plain subject phrase.

    Hyphens and underscores become spaces and remaining punctuation is
    dropped, so ``science-fiction`` reads ``science fiction``.
    """

    text = value.replace("-", " ").replace("_", " ")
    text = SUBJECT_STRIP_RE.sub("", text)
    return WHITESPACE_RE.sub(" ", text).strip()
