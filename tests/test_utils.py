from __future__ import annotations

from app.utils import clean_subject, slugify


def test_slugify_normalises_accents_and_punctuation() -> None:
    assert slugify("Science Fiction") == "science-fiction"
    assert slugify("Café & Bar") == "cafe-bar"
    assert slugify("  --Action--  ") == "action"


def test_slugify_returns_empty_for_symbols_only() -> None:
    assert slugify("!!!") == ""


def test_clean_subject_turns_tokens_into_phrases() -> None:
    assert clean_subject("science-fiction") == "science fiction"
    assert clean_subject("self_help!") == "self help"
    assert clean_subject("  young   adult ") == "young adult"
