from __future__ import annotations

import re

from selfheal.core.descriptor import intent_evidence

_NON_ALNUM = re.compile(r"[^a-z0-9 ]")
_SPACES = re.compile(r"\s+")

MIN_TOKEN_LENGTH = 3
TOKEN_OVERLAP_THRESHOLD = 0.6


def normalize_tokens(value: str | None) -> str:
    if not value:
        return ""
    lowered = _NON_ALNUM.sub(" ", value.lower())
    return _SPACES.sub(" ", lowered).strip()


def fuzzy_token_match(haystack: str | None, needle: str | None) -> bool:
    normalized_haystack = normalize_tokens(haystack)
    normalized_needle = normalize_tokens(needle)
    if not normalized_needle:
        return True
    if normalized_needle in normalized_haystack:
        return True
    haystack_tokens = set(normalized_haystack.split(" "))
    needle_tokens = {token for token in normalized_needle.split(" ") if len(token) >= MIN_TOKEN_LENGTH}
    if not needle_tokens:
        return True
    hits = sum(1 for token in needle_tokens if token in haystack_tokens)
    return hits / len(needle_tokens) >= TOKEN_OVERLAP_THRESHOLD


def mentions_intent(text: str | None, intent: str | None) -> bool:
    """True when ``text`` carries the intent or one of its accepted synonyms."""

    evidence = intent_evidence(intent)
    if not evidence:
        return True
    if not normalize_tokens(text):
        return False
    return any(fuzzy_token_match(text, word) for word in evidence)
