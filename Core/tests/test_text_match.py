from __future__ import annotations

from selfheal.utils.text_match import fuzzy_token_match, mentions_intent, normalize_tokens


def test_normalize_tokens_strips_punctuation_and_case():
    assert normalize_tokens("  E-Mail   Address: ") == "e mail address"
    assert normalize_tokens(None) == ""


def test_substring_containment_is_an_immediate_match():
    assert fuzzy_token_match("Enter your Password here", "password")
    assert fuzzy_token_match("user_name", "user name")


def test_token_overlap_requires_sixty_percent():
    # 2 of 3 long tokens present
    assert fuzzy_token_match("shipping street address", "billing street address")
    # 1 of 3
    assert not fuzzy_token_match("shipping city", "billing city address")


def test_short_needle_tokens_are_ignored():
    assert fuzzy_token_match("anything", "")
    assert fuzzy_token_match("anything", "a b")


def test_mentions_intent_accepts_synonyms():
    assert mentions_intent("Password pwd", "password")
    assert mentions_intent("input name pwd", "password")
    assert mentions_intent("passcode field", "password")
    assert mentions_intent("Your e-mail", "email")


def test_mentions_intent_rejects_unrelated_text():
    assert not mentions_intent("Username", "password")
    assert not mentions_intent("Enter PIN", "password")
    assert not mentions_intent("", "email")
    assert mentions_intent("anything", "")
