"""Parsing of failed XPath locators into the shape the healer reasons about.

Everything in here is a pure function of the locator text. Malformed input
never raises; it produces empty values instead.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from selenium.webdriver.common.by import By

_LITERAL_PATTERN = re.compile(r"'([^']+)'|\"([^\"]+)\"")
_TAG_PATTERN = re.compile(r"^[A-Za-z][\w-]*$")
_SEGMENT_BREAK = re.compile(r"[\[/()\s|]")
_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_WORD_PATTERN = re.compile(r"[a-z]+|[0-9]+")

# Ordered: the first concept found in a literal wins.
STRONG_TOKENS: tuple[str, ...] = (
    "password",
    "username",
    "email",
    "phone",
    "otp",
    "zip",
    "address",
    "card",
    "cvv",
    "search",
    "quantity",
    "cart",
    "login",
    "submit",
)

_SYNONYMS: dict[str, str] = {
    "pwd": "password",
    "passcode": "password",
    "passwd": "password",
    "pin": "password",
    "user": "username",
    "userid": "username",
    "uname": "username",
    "mail": "email",
    "mobile": "phone",
    "tel": "phone",
    "telephone": "phone",
    "postcode": "zip",
    "postal": "zip",
    "addr": "address",
    "cvc": "cvv",
    "query": "search",
    "qty": "quantity",
    "basket": "cart",
    "signin": "login",
    "logon": "login",
}

# Words accepted as proof that an element carries a given concept.
_EVIDENCE: dict[str, tuple[str, ...]] = {
    "password": ("password", "passcode", "pwd"),
    "username": ("username", "userid", "user"),
    "email": ("email", "mail"),
    "phone": ("phone", "mobile", "telephone"),
    "zip": ("zip", "postcode", "postal"),
    "address": ("address", "addr"),
    "cvv": ("cvv", "cvc"),
    "search": ("search", "query"),
    "quantity": ("quantity", "qty"),
    "cart": ("cart", "basket"),
    "login": ("login", "signin", "sign in", "log in"),
}


@dataclass(frozen=True, slots=True)
class LocatorDescriptor:
    raw_expression: str
    inferred_tag: str = ""
    best_text_hint: str = ""
    intent_token: str = ""


def is_xpath_locator(locator) -> bool:
    """Accepts Selenium ``(By, value)`` tuples; anything else is unsupported."""

    if not isinstance(locator, tuple) or len(locator) != 2:
        return False
    by, value = locator
    return by == By.XPATH and isinstance(value, str) and bool(value.strip())


def quoted_literals(expression: str | None) -> list[str]:
    if not expression:
        return []
    return [single or double for single, double in _LITERAL_PATTERN.findall(expression)]


def infer_tag(expression: str | None) -> str:
    stripped = (expression or "").strip().lstrip("(").lstrip("./")
    if not stripped:
        return ""
    segment = _SEGMENT_BREAK.split(stripped, maxsplit=1)[0]
    return segment.lower() if _TAG_PATTERN.match(segment) else ""


def extract_best_hint(expression: str | None) -> str:
    literals = quoted_literals(expression)
    return literals[0] if literals else ""


def extract_intent_token(expression: str | None) -> str:
    """First strong token or synonym that appears as a whole word of a literal.

    Words split on punctuation, digits and camelCase boundaries, so ``userEmail``
    yields ``email`` while ``Discard`` or ``Headphones`` yield nothing.
    """

    for literal in quoted_literals(expression):
        words = _words(literal)
        for token in STRONG_TOKENS:
            if token in words:
                return token
        for word in words:
            if word in _SYNONYMS:
                return word
    return ""


def normalize_intent(token: str | None) -> str:
    cleaned = (token or "").strip().lower()
    return _SYNONYMS.get(cleaned, cleaned)


def intent_evidence(token: str | None) -> tuple[str, ...]:
    canonical = normalize_intent(token)
    if not canonical:
        return ()
    return _EVIDENCE.get(canonical, (canonical,))


def xpath_literal(text: str) -> str:
    if "'" not in text:
        return f"'{text}'"
    if '"' not in text:
        return f'"{text}"'
    parts = [f"'{part}'" for part in text.split("'")]
    return "concat(" + ", \"'\", ".join(parts) + ")"


def parse_descriptor(expression: str | None) -> LocatorDescriptor:
    raw = (expression or "").strip()
    return LocatorDescriptor(
        raw_expression=raw,
        inferred_tag=infer_tag(raw),
        best_text_hint=extract_best_hint(raw),
        intent_token=normalize_intent(extract_intent_token(raw)),
    )


def _words(literal: str) -> list[str]:
    split = _CAMEL_BOUNDARY.sub(r"\1 \2", literal)
    return _WORD_PATTERN.findall(split.lower())
